"""Navigation cursor over a `FolderCatalog`."""

from __future__ import annotations

from core.models import CatalogEntry, FolderCatalog


class NavigationCursor:
    """Tracks the current position within a catalog.

    The index is None exactly when the catalog is empty; otherwise it is
    always within ``[0, len(catalog))``.
    """

    def __init__(self, catalog: FolderCatalog | None = None) -> None:
        self._catalog = catalog or FolderCatalog()
        self._index: int | None = None if self._catalog.is_empty else 0

    @property
    def catalog(self) -> FolderCatalog:
        return self._catalog

    @property
    def index(self) -> int | None:
        return self._index

    @property
    def current_path(self) -> str | None:
        entry = self.current_entry()
        return entry.path if entry else None

    def current_entry(self) -> CatalogEntry | None:
        if self._index is None:
            return None
        return self._catalog[self._index]

    def ensure_position(self) -> None:
        """Point at the first entry if the cursor has no position yet."""
        if self._index is None and not self._catalog.is_empty:
            self._index = 0

    def advance(self, delta: int) -> int | None:
        """Move by `delta` without wrapping.

        Returns the new index, or None (no-op) when the target falls outside
        the catalog.
        """
        if self._index is None:
            return None
        target = self._index + delta
        if 0 <= target < len(self._catalog):
            self._index = target
            return target
        return None

    def step_wrapping(self, delta: int) -> int | None:
        """Move by `delta`, wrapping around both ends (slideshow policy)."""
        if self._catalog.is_empty:
            return None
        start = 0 if self._index is None else self._index
        self._index = (start + delta) % len(self._catalog)
        return self._index

    def sync_to(self, path: str) -> bool:
        """Jump to `path` if catalogued; otherwise leave the cursor unchanged."""
        idx = self._catalog.locate(path)
        if idx is None:
            return False
        self._index = idx
        return True

    def resync(self, catalog: FolderCatalog) -> None:
        """Adopt a replacement catalog, keeping the current file if still present."""
        previous = self.current_path
        self._catalog = catalog
        if catalog.is_empty:
            self._index = None
            return
        idx = catalog.locate(previous) if previous else None
        self._index = idx if idx is not None else 0

    def reconcile_removal(self, catalog: FolderCatalog) -> None:
        """Adopt `catalog` after the current entry was removed from it.

        Lands on the entry that followed the removed one, or on the new last
        entry when the removed one was last.
        """
        old_index = self._index
        self._catalog = catalog
        if catalog.is_empty:
            self._index = None
        elif old_index is None:
            self._index = 0
        else:
            self._index = min(old_index, len(catalog) - 1)
