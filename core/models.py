"""Core domain models for catalog entries, metadata and viewer state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterator


@dataclass(frozen=True)
class CatalogEntry:
    """A single image file found by a folder scan."""

    path: str
    name: str
    size: int
    mtime_ns: int


@dataclass(frozen=True)
class FolderCatalog:
    """Ordered, immutable list of the image files of one directory.

    A re-scan produces a new object; entries are never changed in place.
    """

    directory: str = ""
    entries: tuple[CatalogEntry, ...] = ()
    _positions: dict[str, int] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        positions = {entry.path: idx for idx, entry in enumerate(self.entries)}
        object.__setattr__(self, "_positions", positions)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> CatalogEntry:
        return self.entries[index]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def locate(self, path: str) -> int | None:
        """Return the position of `path`, or None when it is not catalogued."""
        return self._positions.get(path)

    def without(self, path: str) -> FolderCatalog:
        """Return a copy of this catalog with `path` removed."""
        if path not in self._positions:
            return self
        kept = tuple(entry for entry in self.entries if entry.path != path)
        return FolderCatalog(directory=self.directory, entries=kept)


@dataclass(frozen=True)
class MetadataRecord:
    """Normalized camera and shot metadata of one image.

    Every field is independently optional. Aperture is the linear f-number,
    shutter speed is in seconds and exposure bias in EV.
    """

    camera_make: str | None = None
    camera_model: str | None = None
    lens_make: str | None = None
    lens_model: str | None = None
    focal_length: float | None = None
    focal_length_35mm: float | None = None
    aperture: float | None = None
    shutter_speed: float | None = None
    iso: int | None = None
    exposure_bias: float | None = None
    date_time_original: datetime | None = None
    date_time_digitized: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    image_width: int | None = None
    image_height: int | None = None
    color_space: str | None = None
    file_size: int | None = None
    file_name: str | None = None

    @property
    def has_gps(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class SlideshowState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class ViewMode(Enum):
    SINGLE = "single"
    GRID = "grid"
    SLIDESHOW = "slideshow"


class ThumbnailStatus(Enum):
    READY = "ready"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class ThumbnailResult:
    """State of a thumbnail request as seen by the caller.

    Attributes:
        path: Catalog path the thumbnail belongs to.
        status: READY, PENDING or FAILED.
        image: Decoded image when READY.
        error: Failure reason when FAILED.
    """

    path: str
    status: ThumbnailStatus
    image: Any = None
    error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is ThumbnailStatus.READY
