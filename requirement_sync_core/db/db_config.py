"""
Engine and session management for the secret store database.

The connection string comes from ``AppConfig.database``. SQLite is used by
the tests (``sqlite:///:memory:`` shares one connection across sessions);
PostgreSQL with pgcrypto is used when deployed.
"""

from typing import Any, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig, get_config
from ..exceptions import ErrorCode, ServiceError
from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


def _is_memory_sqlite(connection_string: str) -> bool:
    url = make_url(connection_string)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class DatabaseManager:
    """Owns the engine and the scoped session factory for the secret store."""

    def __init__(self, config: Optional[DatabaseConfig] = None, development_mode: bool = False):
        self.config = config or get_config().database
        self.development_mode = development_mode
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def _create_engine(self) -> Engine:
        connection_string = self.config.connection_string
        if make_url(connection_string).get_backend_name() == "sqlite":
            connect_args = {"check_same_thread": False}
            if _is_memory_sqlite(connection_string):
                # One shared connection, otherwise each session sees an empty database
                return create_engine(
                    connection_string,
                    echo=self.config.echo,
                    connect_args=connect_args,
                    poolclass=StaticPool,
                )
            return create_engine(
                connection_string, echo=self.config.echo, connect_args=connect_args
            )
        return create_engine(
            connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        if not self.development_mode:
            raise ServiceError(
                "Cannot drop secret store tables outside development mode",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="drop_tables",
            )
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        return self.scoped_session()

    def close(self) -> None:
        self.scoped_session.remove()
        self.engine.dispose()


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_secret_models import SecretEntry  # noqa

    configure_mappers()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager, initializing it from configuration on first use.

    Raises:
        ServiceError: If the database cannot be reached or the tables cannot be created
    """
    if _db_manager is None:
        return initialize_db()
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    """Install a database manager; tests use this to inject SQLite."""
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """Create the global database manager and the secret store tables."""
    global _db_manager

    manager = DatabaseManager(config)
    get_logger().info("Initializing secret store database", extra={"dialect": manager.dialect})

    import_all_models()
    try:
        manager.create_tables()
    except Exception as e:
        manager.close()
        raise ServiceError(
            "Secret store database is not reachable",
            error_code=ErrorCode.DATABASE_ERROR,
            operation="initialize_db",
            cause=e,
        ) from e

    _db_manager = manager
    return _db_manager


def close_db() -> None:
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
