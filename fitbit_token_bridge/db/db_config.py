from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig
from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


class DatabaseManager:
    """
    Owns the engine and session factory for one credential store.

    Constructed explicitly and handed to whoever needs it; there is no
    process-wide instance.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _create_engine(self):
        if self.config.is_sqlite:
            connect_args = {"check_same_thread": False}
            if ":memory:" in self.config.url or self.config.url.rstrip("/") == "sqlite:":
                # Every session must see the same in-memory database
                return create_engine(
                    self.config.url,
                    echo=self.config.echo,
                    connect_args=connect_args,
                    poolclass=StaticPool,
                )
            return create_engine(self.config.url, echo=self.config.echo, connect_args=connect_args)
        return create_engine(
            self.config.url,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
        )

    def create_tables(self) -> None:
        import_all_models()
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_token_models import FitbitTokenRecord, FitbitTokenOwner  # noqa

    configure_mappers()


def init_db(db_manager: DatabaseManager) -> None:
    """
    Initialize the database, creating all tables.

    Args:
        db_manager: DatabaseManager instance to use for table creation
    """
    get_logger().info("Initializing credential store schema", extra={"database": db_manager.config.masked_url()})
    db_manager.create_tables()
