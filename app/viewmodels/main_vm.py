"""ViewModel owning the folder session: catalog, cursor, slideshow and loaders.

Every state mutation happens on the interactive context. Blocking work (folder
scans, metadata extraction) runs on a small worker pool and its results come
back through `dispatch`; a result whose request has been superseded by a
newer one is dropped instead of overwriting fresher state.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
import os
from typing import Any

from loguru import logger

from core.errors import IOFailure, LightViewerError
from core.models import (
    CatalogEntry,
    FolderCatalog,
    MetadataRecord,
    SlideshowState,
    ThumbnailResult,
    ViewMode,
)
from core.services.catalog_service import scan_directory
from core.services.interfaces import IDeleteService, IMetadataExtractor, IThumbnailProvider
from core.services.navigation import NavigationCursor
from core.services.slideshow import DEFAULT_INTERVAL, SlideshowController
from infrastructure.thumbnail_cache import Dispatch, call_directly

Listener = Callable[[str], None]

# Change notifications passed to listeners
CATALOG_CHANGED = "catalog"
CURSOR_CHANGED = "cursor"
SLIDESHOW_CHANGED = "slideshow"
MODE_CHANGED = "mode"
METADATA_CHANGED = "metadata"


class BrowserVM:
    """Main application view-model.

    Exposes the operations the presentation layer needs and notifies
    listeners with one of the ``*_CHANGED`` names after each mutation.
    """

    def __init__(
        self,
        extractor: IMetadataExtractor,
        thumbnails: IThumbnailProvider,
        delete_service: IDeleteService | None = None,
        dispatch: Dispatch | None = None,
        scanner: Callable[[str], FolderCatalog] = scan_directory,
        slideshow_interval: float = DEFAULT_INTERVAL,
        io_workers: int = 2,
    ) -> None:
        """Create a BrowserVM.

        Args:
            extractor: Metadata extractor with `extract(path)`.
            thumbnails: Thumbnail cache with `request(path, callback)`.
            delete_service: Optional trash service used by `delete_current`.
            dispatch: Runs a callable on the interactive context; defaults to
                calling it directly on the worker thread.
            scanner: Folder scanner returning a `FolderCatalog`.
            slideshow_interval: Initial slideshow interval in seconds.
            io_workers: Worker threads for scans and metadata reads.
        """
        self._extractor = extractor
        self._thumbnails = thumbnails
        self._deleter = delete_service
        self._dispatch = dispatch or call_directly
        self._scanner = scanner
        self._pool = ThreadPoolExecutor(max_workers=max(1, io_workers), thread_name_prefix="io")
        self._listeners: list[Listener] = []

        self.cursor = NavigationCursor()
        self.slideshow = SlideshowController(self.cursor, slideshow_interval)
        self.mode = ViewMode.SINGLE
        self.metadata: MetadataRecord | None = None
        self.metadata_error: str | None = None

        self._scan_generation = 0
        self._metadata_generation = 0

    # Observers
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, what: str) -> None:
        for listener in list(self._listeners):
            listener(what)

    # Catalog
    @property
    def catalog(self) -> FolderCatalog:
        return self.cursor.catalog

    def scan_folder(self, path: str) -> FolderCatalog:
        """Scan `path` synchronously and make it the current catalog.

        Raises:
            IOFailure: The directory cannot be read; the catalog is unchanged.
        """
        self._scan_generation += 1
        catalog = self._scanner(path)
        self._replace_catalog(catalog)
        return catalog

    def load_folder(
        self,
        path: str,
        select: str | None = None,
        on_error: Callable[[IOFailure], None] | None = None,
    ) -> int:
        """Scan `path` on a worker and apply the result on the interactive context.

        Args:
            path: Directory to scan.
            select: Optional file path to put the cursor on once loaded.
            on_error: Called with the `IOFailure` if the scan fails.

        Returns:
            The generation number of this request.
        """
        self._scan_generation += 1
        generation = self._scan_generation

        def work() -> None:
            try:
                catalog = self._scanner(path)
            except IOFailure as ex:
                self._dispatch(lambda err=ex: self._scan_failed(generation, err, on_error))
                return
            self._dispatch(lambda: self._scan_done(generation, catalog, select))

        self._pool.submit(work)
        return generation

    def open_file(self, path: str, on_error: Callable[[IOFailure], None] | None = None) -> int:
        """Load the folder containing `path` and select that file."""
        file_path = os.path.abspath(path)
        return self.load_folder(os.path.dirname(file_path), select=file_path, on_error=on_error)

    def _scan_done(self, generation: int, catalog: FolderCatalog, select: str | None) -> None:
        if generation != self._scan_generation:
            logger.warning("Discarding stale scan of {}", catalog.directory)
            return
        self._replace_catalog(catalog, select)

    def _scan_failed(
        self,
        generation: int,
        error: IOFailure,
        on_error: Callable[[IOFailure], None] | None,
    ) -> None:
        if generation != self._scan_generation:
            logger.warning("Discarding stale scan failure: {}", error)
            return
        if on_error is not None:
            on_error(error)

    def _replace_catalog(self, catalog: FolderCatalog, select: str | None = None) -> None:
        if catalog.directory != self.catalog.directory:
            self._thumbnails.clear()
        self.cursor.resync(catalog)
        if catalog.is_empty:
            self._end_slideshow()
        if select:
            self.cursor.sync_to(select)
        self._notify(CATALOG_CHANGED)
        self._notify(CURSOR_CHANGED)

    def current_entry(self) -> CatalogEntry | None:
        return self.cursor.current_entry()

    def remove_entry(self, path: str) -> None:
        """Drop `path` from the catalog after it was deleted elsewhere."""
        new_catalog = self.catalog.without(path)
        if new_catalog is self.catalog:
            return
        if path == self.cursor.current_path:
            self.cursor.reconcile_removal(new_catalog)
        else:
            self.cursor.resync(new_catalog)
        self._thumbnails.cancel(path)
        self._thumbnails.invalidate(path)
        if new_catalog.is_empty:
            self._end_slideshow()
        self._notify(CATALOG_CHANGED)
        self._notify(CURSOR_CHANGED)

    def delete_current(self) -> bool:
        """Move the current file to the trash and drop it from the catalog."""
        entry = self.current_entry()
        if entry is None or self._deleter is None:
            return False
        result = self._deleter.delete_to_recycle([entry.path])
        if entry.path not in result.success_paths:
            for path, reason in result.failed:
                logger.error("Delete failed for {}: {}", path, reason)
            return False
        self.remove_entry(entry.path)
        return True

    # Navigation
    def navigate(self, delta: int) -> bool:
        """Move the cursor by `delta`.

        Outside a slideshow the cursor stops at the ends; during a slideshow
        it wraps and the current interval restarts.
        """
        if self.slideshow.is_active:
            moved = self.slideshow.step(delta)
        else:
            moved = self.cursor.advance(delta)
        if moved is None:
            return False
        self._notify(CURSOR_CHANGED)
        return True

    def select(self, path: str) -> bool:
        if not self.cursor.sync_to(path):
            return False
        if self.slideshow.is_active:
            self.slideshow.restart_interval()
        self._notify(CURSOR_CHANGED)
        return True

    # Metadata
    def extract_metadata(self, path: str) -> MetadataRecord | None:
        """Read metadata synchronously; raises `UnreadableFile` for non-images."""
        return self._extractor.extract(path)

    def load_metadata(self, path: str | None = None) -> int:
        """Extract metadata for `path` (default: current entry) on a worker.

        The result lands in `metadata` / `metadata_error` unless a newer
        request was made in the meantime.
        """
        if path is None:
            entry = self.current_entry()
            path = entry.path if entry else None
        self._metadata_generation += 1
        generation = self._metadata_generation
        if path is None:
            self._metadata_done(generation, None, None)
            return generation

        def work() -> None:
            try:
                record = self._extractor.extract(path)
                error = None
            except LightViewerError as ex:
                record, error = None, ex.reason or str(ex)
            self._dispatch(lambda: self._metadata_done(generation, record, error))

        self._pool.submit(work)
        return generation

    def _metadata_done(
        self, generation: int, record: MetadataRecord | None, error: str | None
    ) -> None:
        if generation != self._metadata_generation:
            logger.debug("Discarding stale metadata result")
            return
        self.metadata = record
        self.metadata_error = error
        self._notify(METADATA_CHANGED)

    # Thumbnails
    def request_thumbnail(
        self, path: str, callback: Callable[[ThumbnailResult], None] | None = None
    ) -> ThumbnailResult:
        return self._thumbnails.request(path, callback)

    # Slideshow
    def start_slideshow(self) -> bool:
        if not self.slideshow.start():
            return False
        self._notify(SLIDESHOW_CHANGED)
        self._notify(CURSOR_CHANGED)
        return True

    def pause_slideshow(self) -> None:
        self.slideshow.pause()
        self._notify(SLIDESHOW_CHANGED)

    def resume_slideshow(self) -> None:
        self.slideshow.resume()
        self._notify(SLIDESHOW_CHANGED)

    def toggle_slideshow(self) -> None:
        self.slideshow.toggle_play_pause()
        self._notify(SLIDESHOW_CHANGED)

    def stop_slideshow(self) -> None:
        self._end_slideshow(force=True)

    def _end_slideshow(self, force: bool = False) -> None:
        """Stop the slideshow and fall back from SLIDESHOW to SINGLE mode.

        Without `force` nothing is notified when no slideshow was running.
        """
        if not force and not self.slideshow.is_active and self.mode is not ViewMode.SLIDESHOW:
            return
        self.slideshow.stop()
        if self.mode is ViewMode.SLIDESHOW:
            self.mode = ViewMode.SINGLE
            self._notify(MODE_CHANGED)
        self._notify(SLIDESHOW_CHANGED)

    def set_slideshow_interval(self, seconds: float) -> float:
        interval = self.slideshow.set_interval(seconds)
        self._notify(SLIDESHOW_CHANGED)
        return interval

    def adjust_slideshow_interval(self, step: int) -> float:
        """Lengthen (step > 0) or shorten the interval by one second."""
        if step > 0:
            interval = self.slideshow.increase_interval()
        else:
            interval = self.slideshow.decrease_interval()
        self._notify(SLIDESHOW_CHANGED)
        return interval

    def tick(self, delta_seconds: float) -> bool:
        """Forward a timer tick; returns True when the slideshow advanced."""
        if not self.slideshow.tick(delta_seconds):
            return False
        self._notify(CURSOR_CHANGED)
        return True

    @property
    def slideshow_state(self) -> SlideshowState:
        return self.slideshow.state

    # View mode
    def set_mode(self, mode: ViewMode) -> bool:
        """Switch view mode; entering SLIDESHOW starts it, leaving it stops it."""
        if mode is self.mode:
            return True
        if mode is ViewMode.SLIDESHOW:
            if not self.start_slideshow():
                return False
        elif self.mode is ViewMode.SLIDESHOW:
            self.slideshow.stop()
            self._notify(SLIDESHOW_CHANGED)
        self.mode = mode
        self._notify(MODE_CHANGED)
        return True

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
        self._thumbnails.shutdown(wait=False)

    def describe(self) -> dict[str, Any]:
        """Small state summary used for status lines and logs."""
        return {
            "directory": self.catalog.directory,
            "count": len(self.catalog),
            "index": self.cursor.index,
            "slideshow": self.slideshow.state.value,
            "mode": self.mode.value,
        }
