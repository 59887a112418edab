"""
Error taxonomy for the paste lifecycle.

Routes translate these into HTTP responses; the engine never retries.
"""


class PasteError(Exception):
    """Base class for every paste lifecycle failure."""


class ValidationError(PasteError):
    """Malformed create input (client error)."""


class PasteGone(PasteError):
    """The paste cannot be shown. Outside callers must not learn why."""

    def __init__(self, paste_id: str):
        super().__init__(paste_id)
        self.paste_id = paste_id


class PasteNotFound(PasteGone):
    """No record exists for the id."""


class PasteUnavailable(PasteGone):
    """The record exists but is expired or out of views."""


class StorageError(PasteError):
    """The storage medium failed (connection loss, disk error)."""
