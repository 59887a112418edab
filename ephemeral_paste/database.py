"""
Storage layer for paste records.
Defines the store contract and the key-value backends: Redis, with an
in-memory fallback for development.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict

from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from ephemeral_paste.config import Settings
from ephemeral_paste.errors import PasteNotFound, PasteUnavailable, StorageError
from ephemeral_paste.models import Paste, is_available

logger = logging.getLogger(__name__)


def paste_key(paste_id: str) -> str:
    """Key-value layout: one entry per paste under ``paste:<id>``."""
    return f"paste:{paste_id}"


def decode_paste(raw, paste_id: str) -> Paste:
    """Parse a stored JSON value, treating a corrupt record as a storage failure."""
    try:
        return Paste.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error(f"Corrupt record for paste {paste_id}: {e}")
        raise StorageError(f"corrupt record for paste {paste_id}") from e


class PasteStore(ABC):
    """Keyed persistence of pastes with an atomic view counter."""

    name = "abstract"

    @abstractmethod
    async def put(self, paste: Paste) -> None:
        """Insert or overwrite the record at ``paste.id``."""

    @abstractmethod
    async def get(self, paste_id: str) -> Paste:
        """Return the current record, or raise PasteNotFound."""

    @abstractmethod
    async def increment_views_and_check(self, paste_id: str, now: int) -> Paste:
        """
        Atomically check availability at ``now`` and record one view.

        Returns:
            The paste as it was before the increment

        Raises:
            PasteNotFound: If no record exists
            PasteUnavailable: If the record fails the availability predicate
            StorageError: If the medium fails
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Cheap round-trip to the medium."""

    async def close(self) -> None:
        """Release connections held by the store."""


class InMemoryPasteStore(PasteStore):
    """In-process store for development/testing (when Redis unavailable)."""

    name = "memory"

    def __init__(self):
        self.store: Dict[str, str] = {}
        # Only ids with a read in flight hold an entry.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    async def put(self, paste: Paste) -> None:
        self.store[paste_key(paste.id)] = paste.model_dump_json()

    async def get(self, paste_id: str) -> Paste:
        raw = self.store.get(paste_key(paste_id))
        if raw is None:
            raise PasteNotFound(paste_id)
        return decode_paste(raw, paste_id)

    async def increment_views_and_check(self, paste_id: str, now: int) -> Paste:
        key = paste_key(paste_id)
        if key not in self.store:
            raise PasteNotFound(paste_id)

        # Serializes increments for this key only.
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                paste = await self.get(paste_id)
                if not is_available(paste, now):
                    raise PasteUnavailable(paste_id)
                self.store[key] = paste.viewed().model_dump_json()
                return paste
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    async def ping(self) -> bool:
        return True


class RedisPasteStore(PasteStore):
    """Pastes as JSON strings in Redis, counted with WATCH/MULTI/EXEC."""

    name = "redis"

    def __init__(self, redis: Redis, expiry_grace_seconds: int = 3600):
        self.redis = redis
        self.expiry_grace_seconds = expiry_grace_seconds

    async def put(self, paste: Paste) -> None:
        # Redis-side expiry only garbage-collects; availability is decided by is_available.
        px = None
        if paste.expires_at is not None:
            px = paste.expires_at - paste.created_at + self.expiry_grace_seconds * 1000
        try:
            await self.redis.set(paste_key(paste.id), paste.model_dump_json(), px=px)
        except RedisError as e:
            logger.error(f"Error saving paste {paste.id}: {e}")
            raise StorageError(f"failed to save paste {paste.id}") from e

    async def get(self, paste_id: str) -> Paste:
        try:
            raw = await self.redis.get(paste_key(paste_id))
        except RedisError as e:
            logger.error(f"Error fetching paste {paste_id}: {e}")
            raise StorageError(f"failed to fetch paste {paste_id}") from e
        if raw is None:
            raise PasteNotFound(paste_id)
        return decode_paste(raw, paste_id)

    async def increment_views_and_check(self, paste_id: str, now: int) -> Paste:
        key = paste_key(paste_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        raw = await pipe.get(key)
                        if raw is None:
                            raise PasteNotFound(paste_id)
                        paste = decode_paste(raw, paste_id)
                        if not is_available(paste, now):
                            raise PasteUnavailable(paste_id)
                        pipe.multi()
                        pipe.set(key, paste.viewed().model_dump_json(), keepttl=True)
                        await pipe.execute()
                        return paste
                    except WatchError:
                        # Another reader changed the key first; re-read and decide again.
                        logger.debug(f"Concurrent update on paste {paste_id}, retrying")
        except RedisError as e:
            logger.error(f"Error incrementing views for {paste_id}: {e}")
            raise StorageError(f"failed to record view of paste {paste_id}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.error(f"Health check failed: {e}")
        return False

    async def close(self) -> None:
        await self.redis.aclose()


async def create_store(settings: Settings) -> PasteStore:
    """
    Build the store selected by ``STORE_BACKEND``.

    Falls back to the in-memory store when Redis is unreachable and
    ``ALLOW_MEMORY_FALLBACK`` is set.
    """
    backend = settings.STORE_BACKEND
    if backend == "memory":
        return InMemoryPasteStore()

    if backend == "sqlite":
        from ephemeral_paste.sqlite_store import SqlitePasteStore

        store = SqlitePasteStore(settings.SQLITE_PATH)
        await store.init()
        return store

    if backend != "redis":
        raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")

    logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await redis.ping()
    except (RedisError, OSError) as e:
        await redis.aclose()
        logger.error(f"❌ Error connecting to Redis: {type(e).__name__}: {str(e)}")
        if not settings.ALLOW_MEMORY_FALLBACK:
            raise StorageError("Redis is unreachable") from e
        logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
        return InMemoryPasteStore()

    logger.info("✓ Redis connected successfully")
    return RedisPasteStore(redis, expiry_grace_seconds=settings.REDIS_EXPIRY_GRACE_SECONDS)
