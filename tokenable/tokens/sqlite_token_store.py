# tokenable/tokens/sqlite_token_store.py
import sqlite3
import logging
from datetime import datetime
from typing import List, Optional

from .errors import DuplicateTokenHashError, TokenStoreError
from .models import OwnerRef, TokenRecord, as_utc, utcnow
from .storage_interfaces import AbstractTokenStore
from ..settings import settings
from ..storage.sqlite_base import ensure_schema, get_sqlite_db_connection

logger = logging.getLogger(__name__)


def _to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    # Fixed-width UTC ISO strings compare lexicographically in time order
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")


def _from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


class SQLiteTokenStore(AbstractTokenStore):
    """SQLite implementation for storing and managing personal access tokens."""

    def __init__(self, connection: Optional[sqlite3.Connection] = None, purge_batch_size: Optional[int] = None):
        """
        Args:
            connection: Dedicated connection to use. Defaults to the shared
                application connection from `storage.sqlite_base`.
            purge_batch_size: Rows deleted per transaction by `delete_expired_tokens`.
        """
        self._connection = connection
        self.purge_batch_size = purge_batch_size or settings.purge_batch_size

    async def _get_connection(self) -> sqlite3.Connection:
        if self._connection is not None:
            return self._connection
        return await get_sqlite_db_connection()

    async def initialize(self) -> None:
        """Initialize the token store by ensuring the connection and schema exist."""
        conn = await self._get_connection()
        ensure_schema(conn)
        logger.info("SQLiteTokenStore initialized.")

    async def teardown(self) -> None:
        """Clean up resources - the shared connection is managed globally."""
        logger.info("SQLiteTokenStore teardown (connection managed by owner).")

    async def _execute_query(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a write query with transaction management, mapping sqlite errors to store errors."""
        conn = await self._get_connection()
        try:
            cursor = conn.cursor()
            logger.debug(f"Executing SQL: {query.strip()}")
            cursor.execute(query, params)
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "secret_hash" in str(e):
                logger.warning("Rejected token write: secret_hash already exists.")
                raise DuplicateTokenHashError() from e
            logger.error(f"SQLite integrity error executing query: {e}", exc_info=True)
            raise TokenStoreError(detail=f"Token storage write failed: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query.strip()}': {e}", exc_info=True)
            conn.rollback()
            raise TokenStoreError(detail=f"Token storage write failed: {e}") from e
        return cursor

    async def _fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a SELECT query and return all rows."""
        conn = await self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite error during fetch for query '{query.strip()}': {e}", exc_info=True)
            raise TokenStoreError(detail=f"Token storage read failed: {e}") from e

    async def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        rows = await self._fetchall(query, params)
        return rows[0] if rows else None

    def _row_to_record(self, row: sqlite3.Row) -> TokenRecord:
        return TokenRecord(
            id=row["id"],
            name=row["name"],
            secret_hash=row["secret_hash"],
            owner_type=row["owner_type"],
            owner_id=row["owner_id"],
            created_at=_from_db_timestamp(row["created_at"]),
            expires_at=_from_db_timestamp(row["expires_at"]),
            last_used_at=_from_db_timestamp(row["last_used_at"])
        )

    async def save_token(self, record: TokenRecord) -> None:
        """
        Save a record with upsert behaviour keyed on id.

        created_at, secret_hash and the owner are written on insert only;
        an update may change the name, expiry and last-used timestamp.
        """
        query = '''
            INSERT INTO personal_access_tokens
                (id, name, secret_hash, owner_type, owner_id, created_at, expires_at, last_used_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name=excluded.name,
                expires_at=excluded.expires_at,
                last_used_at=excluded.last_used_at
        '''
        params = (
            record.id,
            record.name,
            record.secret_hash,
            record.owner_type,
            record.owner_id,
            _to_db_timestamp(record.created_at),
            _to_db_timestamp(record.expires_at),
            _to_db_timestamp(record.last_used_at)
        )
        await self._execute_query(query, params)
        logger.debug(f"Saved token '{record.id}' for owner '{record.owner}'.")

    async def remove_token(self, record: TokenRecord) -> bool:
        """Delete a record by id. Deleting an absent record is a no-op."""
        cursor = await self._execute_query("DELETE FROM personal_access_tokens WHERE id = ?", (record.id,))
        return cursor.rowcount > 0

    async def update_last_used(self, token_id: str, last_used_at: datetime) -> bool:
        """Plain UPDATE so a concurrently revoked row stays deleted."""
        cursor = await self._execute_query(
            "UPDATE personal_access_tokens SET last_used_at = ? WHERE id = ?",
            (_to_db_timestamp(last_used_at), token_id)
        )
        if cursor.rowcount == 0:
            logger.debug(f"Token '{token_id}' no longer exists; last_used_at not recorded.")
        return cursor.rowcount > 0

    async def get_token_by_hash(self, secret_hash: str) -> Optional[TokenRecord]:
        """Retrieve a record by secret hash (served by the unique index)."""
        row = await self._fetchone("SELECT * FROM personal_access_tokens WHERE secret_hash = ?", (secret_hash,))
        return self._row_to_record(row) if row else None

    async def get_token_by_id(self, token_id: str) -> Optional[TokenRecord]:
        row = await self._fetchone("SELECT * FROM personal_access_tokens WHERE id = ?", (token_id,))
        return self._row_to_record(row) if row else None

    async def get_tokens_by_owner(self, owner: OwnerRef) -> List[TokenRecord]:
        query = '''
            SELECT * FROM personal_access_tokens
            WHERE owner_type = ? AND owner_id = ?
            ORDER BY created_at
        '''
        rows = await self._fetchall(query, (owner.owner_type, owner.owner_id))
        return [self._row_to_record(row) for row in rows]

    async def get_active_tokens_by_owner(self, owner: OwnerRef, now: Optional[datetime] = None) -> List[TokenRecord]:
        """Retrieve an owner's unexpired records, filtered in SQL."""
        query = '''
            SELECT * FROM personal_access_tokens
            WHERE owner_type = ? AND owner_id = ?
              AND (expires_at IS NULL OR expires_at > ?)
            ORDER BY created_at
        '''
        params = (owner.owner_type, owner.owner_id, _to_db_timestamp(now or utcnow()))
        rows = await self._fetchall(query, params)
        return [self._row_to_record(row) for row in rows]

    async def delete_tokens_by_owner(self, owner: OwnerRef) -> int:
        query = "DELETE FROM personal_access_tokens WHERE owner_type = ? AND owner_id = ?"
        cursor = await self._execute_query(query, (owner.owner_type, owner.owner_id))
        logger.info(f"Deleted {cursor.rowcount} token(s) for owner '{owner}'.")
        return cursor.rowcount

    async def delete_expired_tokens(self, now: Optional[datetime] = None) -> int:
        """
        Delete expired records in batches of `purge_batch_size`.

        Each batch is its own transaction, so a long purge never holds the
        write lock for the whole table and can be interrupted between batches.
        """
        cutoff = _to_db_timestamp(now or utcnow())
        query = '''
            DELETE FROM personal_access_tokens WHERE id IN (
                SELECT id FROM personal_access_tokens
                WHERE expires_at IS NOT NULL AND expires_at <= ?
                LIMIT ?
            )
        '''
        total = 0
        while True:
            cursor = await self._execute_query(query, (cutoff, self.purge_batch_size))
            total += cursor.rowcount
            logger.debug(f"Purged batch of {cursor.rowcount} expired token(s).")
            if cursor.rowcount < self.purge_batch_size:
                break
        logger.info(f"Deleted {total} expired token(s) with expiry at or before {cutoff}.")
        return total


# Global singleton instance management
_sqlite_token_store_instance: Optional[SQLiteTokenStore] = None


async def get_sqlite_token_store() -> SQLiteTokenStore:
    """Get or create the singleton SQLite token store instance."""
    global _sqlite_token_store_instance
    if _sqlite_token_store_instance is None:
        _sqlite_token_store_instance = SQLiteTokenStore()
        await _sqlite_token_store_instance.initialize()
    return _sqlite_token_store_instance
