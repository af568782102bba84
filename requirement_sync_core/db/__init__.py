"""Secret store persistence: SQLAlchemy engine, sessions and models."""

from .db_config import (
    Base,
    DatabaseManager,
    close_db,
    get_db_manager,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_secret_models import SecretEntry, SecretValue

__all__ = [
    "Base",
    "DatabaseManager",
    "SecretEntry",
    "SecretValue",
    "close_db",
    "get_db_manager",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
]
