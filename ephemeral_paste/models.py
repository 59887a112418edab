"""
Pydantic models for the paste record and request/response validation.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator


class Paste(BaseModel):
    """A stored paste. Instances are frozen; a view produces a new copy."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique paste ID")
    content: str = Field(..., description="Paste text content")
    created_at: int = Field(..., description="Creation time (ms since epoch)")
    expires_at: Optional[int] = Field(None, description="Expiry time (ms since epoch, null if no TTL)")
    max_views: Optional[int] = Field(None, ge=1, description="View limit (null if unlimited)")
    views: int = Field(0, ge=0, description="Successful reads so far")

    @model_validator(mode="after")
    def _check_expiry(self) -> "Paste":
        if self.expires_at is not None and self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    def viewed(self) -> "Paste":
        """Return a copy with one more view recorded."""
        return self.model_copy(update={"views": self.views + 1})


def is_available(paste: Paste, now: int) -> bool:
    """
    Availability predicate shared by the engine and every store.

    A paste is available at ``now`` (ms since epoch) while it has not reached
    its expiry time and has views left.
    """
    if paste.expires_at is not None and now >= paste.expires_at:
        return False
    if paste.max_views is not None and paste.views >= paste.max_views:
        return False
    return True


class PasteCreate(BaseModel):
    """Schema for creating a new paste."""
    content: str = Field(..., description="Text content (required, non-empty)")
    ttl_seconds: Optional[StrictInt] = Field(None, description="Optional TTL in seconds")
    max_views: Optional[StrictInt] = Field(None, description="Optional view limit")


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    url: str = Field(..., description="Shareable URL to view the paste")


class PasteView(BaseModel):
    """Schema for viewing/fetching a paste."""
    content: str = Field(..., description="Paste text content")
    remaining_views: Optional[int] = Field(None, description="Views left (null if unlimited)")
    expires_at: Optional[str] = Field(None, description="Expiry timestamp (ISO 8601, null if no TTL)")


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
