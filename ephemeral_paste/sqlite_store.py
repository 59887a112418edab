"""
Row-store backend: one SQLite row per paste.
"""
import logging
from typing import Optional

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from ephemeral_paste.database import PasteStore
from ephemeral_paste.errors import PasteNotFound, PasteUnavailable, StorageError
from ephemeral_paste.models import Paste, is_available

logger = logging.getLogger(__name__)

CREATE_SQL = """
PRAGMA journal_mode=WAL;
CREATE TABLE IF NOT EXISTS pastes (
  id TEXT PRIMARY KEY,
  content TEXT NOT NULL,
  created_at INTEGER NOT NULL,
  expires_at INTEGER,
  max_views INTEGER,
  views INTEGER DEFAULT 0
);
"""

SELECT_SQL = "SELECT id, content, created_at, expires_at, max_views, views FROM pastes WHERE id = ?"

# sqlite3 raises OverflowError, not an sqlite3.Error, when binding ints beyond int64.
SQLITE_ERRORS = (aiosqlite.Error, OverflowError)


def _row_to_paste(row: Optional[aiosqlite.Row]) -> Optional[Paste]:
    if row is None:
        return None
    try:
        return Paste(**dict(row))
    except PydanticValidationError as e:
        logger.error(f"Corrupt row for paste {row['id']}: {e}")
        raise StorageError(f"corrupt row for paste {row['id']}") from e


class SqlitePasteStore(PasteStore):
    """
    Pastes in a SQLite table.

    Every call opens its own connection in autocommit mode. The view
    increment runs inside ``BEGIN IMMEDIATE`` so readers of the same row
    queue on SQLite's write lock.
    """

    name = "sqlite"

    def __init__(self, path: str, timeout: float = 5.0):
        self.path = path
        self.timeout = timeout

    def _connect(self):
        return aiosqlite.connect(self.path, timeout=self.timeout, isolation_level=None)

    async def init(self) -> None:
        """Create the schema if missing."""
        try:
            async with self._connect() as db:
                await db.executescript(CREATE_SQL)
        except SQLITE_ERRORS as e:
            raise StorageError(f"failed to initialise {self.path}") from e
        logger.info(f"SQLite paste store ready at {self.path}")

    async def put(self, paste: Paste) -> None:
        try:
            async with self._connect() as db:
                await db.execute(
                    "INSERT OR REPLACE INTO pastes (id, content, created_at, expires_at, max_views, views) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (paste.id, paste.content, paste.created_at, paste.expires_at, paste.max_views, paste.views),
                )
        except SQLITE_ERRORS as e:
            logger.error(f"Error saving paste {paste.id}: {e}")
            raise StorageError(f"failed to save paste {paste.id}") from e

    async def get(self, paste_id: str) -> Paste:
        try:
            async with self._connect() as db:
                db.row_factory = aiosqlite.Row
                cur = await db.execute(SELECT_SQL, (paste_id,))
                paste = _row_to_paste(await cur.fetchone())
        except SQLITE_ERRORS as e:
            logger.error(f"Error fetching paste {paste_id}: {e}")
            raise StorageError(f"failed to fetch paste {paste_id}") from e
        if paste is None:
            raise PasteNotFound(paste_id)
        return paste

    async def increment_views_and_check(self, paste_id: str, now: int) -> Paste:
        try:
            async with self._connect() as db:
                db.row_factory = aiosqlite.Row
                await db.execute("BEGIN IMMEDIATE")
                try:
                    cur = await db.execute(SELECT_SQL, (paste_id,))
                    paste = _row_to_paste(await cur.fetchone())
                    if paste is None:
                        raise PasteNotFound(paste_id)
                    if not is_available(paste, now):
                        raise PasteUnavailable(paste_id)
                    await db.execute("UPDATE pastes SET views = views + 1 WHERE id = ?", (paste_id,))
                except Exception:
                    await db.execute("ROLLBACK")
                    raise
                await db.execute("COMMIT")
                return paste
        except SQLITE_ERRORS as e:
            logger.error(f"Error incrementing views for {paste_id}: {e}")
            raise StorageError(f"failed to record view of paste {paste_id}") from e

    async def ping(self) -> bool:
        try:
            async with self._connect() as db:
                await db.execute("SELECT 1")
            return True
        except SQLITE_ERRORS as e:
            logger.error(f"Health check failed: {e}")
        return False
