# tokenable/storage/__init__.py

"""Storage module initialization.

Shared SQLite connection handling and schema creation for the token store.
"""

from .sqlite_base import (
    get_sqlite_db_connection,
    init_sqlite_db,
    close_sqlite_db_connection,
    ensure_schema,
    open_sqlite_connection
)

# Export public API for database operations
__all__ = [
    "get_sqlite_db_connection",
    "init_sqlite_db",
    "close_sqlite_db_connection",
    "ensure_schema",
    "open_sqlite_connection"
]
