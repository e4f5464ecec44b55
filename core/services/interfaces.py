"""Core service interfaces and shared data structures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from core.models import MetadataRecord, ThumbnailResult


@dataclass
class DeleteResult:
    """Outcome of a delete operation.

    Attributes:
        success_paths: Paths successfully moved to the trash.
        failed: Tuples of (path, reason) for failures.
    """

    success_paths: list[str]
    failed: list[tuple[str, str]]


class IMetadataExtractor(Protocol):
    """Reads one file's metadata; None when the image carries none."""

    def extract(self, path: str) -> MetadataRecord | None:
        ...


class IThumbnailProvider(Protocol):
    """Memoizing, asynchronous thumbnail source."""

    def request(self, path: str, callback=None) -> ThumbnailResult:
        ...

    def cancel(self, path: str) -> bool:
        ...

    def invalidate(self, path: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def shutdown(self, wait: bool = True) -> None:
        ...


class IDeleteService(Protocol):
    """Moves files to a recoverable trash."""

    def delete_to_recycle(self, paths: list[str]) -> DeleteResult:
        ...
