"""
SQLAlchemy models and database management for the credential store.
"""

from .db_base import TimestampMixin, utc_now
from .db_config import Base, DatabaseManager, import_all_models, init_db
from .db_token_models import FitbitTokenOwner, FitbitTokenRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "utc_now",
    "DatabaseManager",
    "import_all_models",
    "init_db",
    "FitbitTokenRecord",
    "FitbitTokenOwner",
]
