"""
Pydantic schemas for credential records and Fitbit token responses.
"""

from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenFields(BaseModel):
    """The scalar token fields every write overwrites."""

    model_config = ConfigDict(frozen=True)

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = Field(None, description="Epoch milliseconds")


class TokenRecord(BaseModel):
    """
    Read model of one credential record.

    `owners` is None when the record has no owner set (legacy or incomplete
    records); `owner_id` is the legacy scalar owner.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    external_id: Optional[str] = None
    owner_id: Optional[str] = None
    owners: Optional[FrozenSet[str]] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    @property
    def is_current_schema(self) -> bool:
        return self.owners is not None

    @property
    def is_legacy_schema(self) -> bool:
        return not self.is_current_schema and bool(self.owner_id) and bool(self.external_id)

    @property
    def token_fields(self) -> TokenFields:
        return TokenFields(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at,
        )

    @classmethod
    def from_row(cls, row) -> "TokenRecord":
        """Build from a FitbitTokenRecord row (owners loaded)."""
        owner_ids = frozenset(owner.owner_id for owner in row.owners)
        return cls(
            key=row.key,
            external_id=row.external_id,
            owner_id=row.owner_id,
            owners=owner_ids or None,
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expires_at=row.expires_at,
        )


class TokenResponse(BaseModel):
    """Successful answer of the Fitbit token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, description="Fitbit user id (the external id)")
    expires_in: int = Field(..., ge=0, description="Lifetime of the access token in seconds")
    scope: Optional[str] = None
    token_type: Optional[str] = None

    def to_token_fields(self, now_ms: int) -> TokenFields:
        return TokenFields(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=now_ms + self.expires_in * 1000,
        )
