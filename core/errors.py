"""Domain errors raised by the catalog, metadata and decode layers.

Infrastructure code catches library exceptions at its boundary and re-raises
one of these so callers only deal with a single hierarchy.
"""

from __future__ import annotations


class LightViewerError(Exception):
    """Base class for all viewer errors; carries the offending path."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        message = f"{path}: {reason}" if reason else path
        super().__init__(message)


class IOFailure(LightViewerError):
    """A directory could not be listed (missing, not a directory, denied)."""


class UnreadableFile(LightViewerError):
    """A file could not be opened or identified as an image."""


class DecodeFailure(LightViewerError):
    """A thumbnail or full-resolution decode failed."""
