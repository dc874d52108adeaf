# tokenable/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..settings import settings

logger = logging.getLogger(__name__)

# Global connection instance to ensure single connection per application lifecycle
_db_connection: Optional[sqlite3.Connection] = None


def open_sqlite_connection(database: str) -> sqlite3.Connection:
    """Open a connection configured the way every store expects it (named rows, shared across threads)."""
    conn = sqlite3.connect(
        database,
        timeout=settings.sqlite_timeout_seconds,
        check_same_thread=False
    )
    conn.row_factory = sqlite3.Row
    return conn


async def get_sqlite_db_connection() -> sqlite3.Connection:
    """
    Get or create a SQLite database connection with proper initialization.

    Uses a singleton pattern to maintain a single connection throughout
    the application lifecycle. Ensures the database directory exists
    and initializes the schema on first connection.

    Returns:
        sqlite3.Connection: The database connection instance

    Raises:
        sqlite3.Error: If database connection fails
    """
    global _db_connection
    if _db_connection is None:
        try:
            db_path = Path(settings.sqlite_db_path).resolve()
            # Ensure the database directory structure exists
            db_path.parent.mkdir(parents=True, exist_ok=True)

            logger.info(f"Attempting to connect to SQLite DB at: {db_path}")
            _db_connection = open_sqlite_connection(str(db_path))
            logger.info(f"Successfully connected to SQLite DB: {db_path}")

            # Initialize database schema if tables don't exist
            await init_sqlite_db(_db_connection)
        except sqlite3.Error as e:
            logger.error(
                f"Error connecting to SQLite database at {settings.sqlite_db_path}: {e}",
                exc_info=True
            )
            raise
    return _db_connection


def ensure_schema(db_conn: sqlite3.Connection) -> None:
    """Create the token table and its indexes. Safe to call repeatedly."""
    cursor = db_conn.cursor()

    # Personal access tokens; only the SHA-256 of the secret is stored
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS personal_access_tokens (
        id TEXT PRIMARY KEY,
        name TEXT,
        secret_hash TEXT NOT NULL,
        owner_type TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        expires_at TEXT,
        last_used_at TEXT
    )
    ''')
    cursor.execute('''
    CREATE UNIQUE INDEX IF NOT EXISTS personal_access_tokens_secret_hash_index
        ON personal_access_tokens (secret_hash)
    ''')
    cursor.execute('''
    CREATE INDEX IF NOT EXISTS personal_access_tokens_owner_index
        ON personal_access_tokens (owner_type, owner_id)
    ''')
    cursor.execute('''
    CREATE INDEX IF NOT EXISTS personal_access_tokens_expires_at_index
        ON personal_access_tokens (expires_at)
    ''')
    db_conn.commit()
    logger.debug("Ensured 'personal_access_tokens' table and indexes exist.")


async def init_sqlite_db(conn: Optional[sqlite3.Connection] = None):
    """
    Initialize the SQLite database schema by creating all required tables.

    Args:
        conn: Optional database connection. If None, uses the global connection.
    """
    db_conn = conn or await get_sqlite_db_connection()
    ensure_schema(db_conn)
    logger.info("SQLite database schema initialized/verified.")


async def close_sqlite_db_connection():
    """
    Properly close the global SQLite database connection.

    Should be called during application shutdown to ensure
    proper cleanup of database resources.
    """
    global _db_connection
    if _db_connection is not None:
        logger.info("Closing SQLite DB connection.")
        _db_connection.close()
        _db_connection = None
        logger.info("SQLite DB connection closed.")
