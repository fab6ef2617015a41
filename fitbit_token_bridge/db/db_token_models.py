"""
Credential tables - just the data structure, no logic.

fitbit_tokens holds one row per credential record. Its `owner_id` column is
the legacy scalar owner; the current schema's owner set lives in
fitbit_token_owners, which doubles as the owner -> record index.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from ..constants import TOKEN_OWNERS_TABLE, TOKENS_TABLE
from .db_base import TimestampMixin
from .db_config import Base


class FitbitTokenRecord(Base, TimestampMixin):
    """One credential record, legacy or current schema."""

    __tablename__ = TOKENS_TABLE

    key = Column(String(128), primary_key=True)
    external_id = Column(String(128), nullable=True, index=True)
    owner_id = Column(String(128), nullable=True)

    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(BigInteger, nullable=True)  # epoch milliseconds

    owners = relationship(
        "FitbitTokenOwner",
        back_populates="record",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class FitbitTokenOwner(Base):
    """Membership of one owner id in a record's owner set."""

    __tablename__ = TOKEN_OWNERS_TABLE

    record_key = Column(
        String(128), ForeignKey(f"{TOKENS_TABLE}.key", ondelete="CASCADE"), primary_key=True
    )
    owner_id = Column(String(128), primary_key=True)

    record = relationship("FitbitTokenRecord", back_populates="owners")

    __table_args__ = (Index("ix_token_owner_lookup", "owner_id"),)
