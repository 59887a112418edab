"""
Paste lifecycle engine.
Builds new paste records, evaluates availability and consumes views.
All I/O goes through the injected store.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ephemeral_paste.database import PasteStore
from ephemeral_paste.errors import ValidationError
from ephemeral_paste.models import Paste, is_available

logger = logging.getLogger(__name__)

__all__ = ["PasteLifecycle", "PasteRead", "is_available", "now_ms", "format_timestamp", "MAX_TIMESTAMP_MS"]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Latest instant datetime can represent (9999-12-31T23:59:59.999Z).
MAX_TIMESTAMP_MS = (datetime.max.replace(tzinfo=timezone.utc) - EPOCH) // timedelta(milliseconds=1)


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def format_timestamp(ms: Optional[int]) -> Optional[str]:
    """Render a ms timestamp as ISO 8601 UTC, e.g. 1970-01-01T00:00:11.000Z."""
    if ms is None:
        return None
    moment = EPOCH + timedelta(milliseconds=ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class PasteRead:
    """What a successful read hands back to the caller."""

    content: str
    remaining_views: Optional[int]
    expires_at: Optional[int]


class PasteLifecycle:
    """Create and read pastes against a store."""

    is_available = staticmethod(is_available)

    def __init__(self, store: PasteStore):
        self.store = store

    async def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        now: Optional[int] = None,
    ) -> Paste:
        """
        Validate input and store a new paste.

        Args:
            content: Text content, must not be blank
            ttl_seconds: Optional time-to-live in seconds
            max_views: Optional maximum view count
            now: Creation time in ms (defaults to the wall clock)

        Returns:
            The stored paste

        Raises:
            ValidationError: If any input is malformed
            StorageError: If the store write fails
        """
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("empty content")
        if ttl_seconds is not None and not _is_positive_int(ttl_seconds):
            raise ValidationError("invalid ttl")
        if max_views is not None and not _is_positive_int(max_views):
            raise ValidationError("invalid max_views")

        if now is None:
            now = now_ms()

        expires_at = None
        if ttl_seconds is not None:
            expires_at = now + ttl_seconds * 1000
            if expires_at > MAX_TIMESTAMP_MS:
                raise ValidationError("invalid ttl")

        paste = Paste(
            id=secrets.token_urlsafe(16),
            content=content,
            created_at=now,
            expires_at=expires_at,
            max_views=max_views,
            views=0,
        )
        await self.store.put(paste)
        logger.info(f"Paste {paste.id} created (ttl={ttl_seconds}, max_views={max_views})")
        return paste

    async def read(self, paste_id: str, now: Optional[int] = None) -> PasteRead:
        """
        Consume one view of a paste.

        Raises:
            PasteNotFound: If no such paste exists
            PasteUnavailable: If the paste expired or ran out of views
            StorageError: If the store fails
        """
        if now is None:
            now = now_ms()

        before = await self.store.increment_views_and_check(paste_id, now)

        remaining_views = None
        if before.max_views is not None:
            remaining_views = before.max_views - (before.views + 1)

        return PasteRead(
            content=before.content,
            remaining_views=remaining_views,
            expires_at=before.expires_at,
        )
