"""Concurrent, memoized thumbnail decoding keyed by catalog path.

Decodes run on a bounded `ThreadPoolExecutor`. Each path has at most one
decode in flight; later requests for the same path attach their callback to
it. Results are delivered through a `dispatch` callable so the UI layer can
marshal them onto its own thread (see `app.views.image_tasks.UiDispatcher`).
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
import threading
from typing import Any, Protocol

from loguru import logger

from core.errors import DecodeFailure
from core.models import ThumbnailResult, ThumbnailStatus

ThumbnailCallback = Callable[[ThumbnailResult], None]
Dispatch = Callable[[Callable[[], None]], None]


class ThumbnailDecoder(Protocol):
    def decode(self, path: str, max_dimension: int) -> Any:
        ...


def call_directly(fn: Callable[[], None]) -> None:
    """Dispatch that runs the callback on whichever thread completed the decode."""
    fn()


class _LRUCache:
    def __init__(self, capacity: int) -> None:
        self._cap = max(1, int(capacity or 1))
        self._data: OrderedDict[str, Any] = OrderedDict()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str) -> Any | None:
        """Return cached image for key, moving it to the MRU position."""
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def put(self, key: str, image: Any) -> None:
        """Insert or update `key`, evicting the least recently used over capacity."""
        self._data[key] = image
        self._data.move_to_end(key)
        while len(self._data) > self._cap:
            evicted, _ = self._data.popitem(last=False)
            logger.debug("Thumbnail evicted: {}", evicted)

    def pop(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


@dataclass
class _PendingDecode:
    future: Future
    callbacks: list[ThumbnailCallback] = field(default_factory=list)


class ThumbnailCache:
    """Memoizes thumbnail decodes with at most one decode per path in flight.

    Failures are cached as terminal until `invalidate(path)` is called.
    """

    def __init__(
        self,
        decoder: ThumbnailDecoder,
        max_dimension: int = 300,
        max_workers: int = 4,
        capacity: int = 512,
        dispatch: Dispatch | None = None,
    ) -> None:
        self._decoder = decoder
        self._max_dimension = int(max_dimension)
        self._dispatch = dispatch or call_directly
        self._lock = threading.Lock()
        self._ready = _LRUCache(capacity)
        self._failed: dict[str, str] = {}
        self._pending: dict[str, _PendingDecode] = {}
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)), thread_name_prefix="thumb"
        )

    @property
    def max_dimension(self) -> int:
        return self._max_dimension

    def get(self, path: str) -> ThumbnailResult | None:
        """Return the memoized result for `path` without starting a decode."""
        with self._lock:
            return self._lookup(path)

    def request(self, path: str, callback: ThumbnailCallback | None = None) -> ThumbnailResult:
        """Return a cached result, or start (or join) a decode for `path`.

        When the returned status is PENDING, `callback` is invoked later with
        the final READY or FAILED result.
        """
        with self._lock:
            cached = self._lookup(path)
            if cached is not None and cached.status is not ThumbnailStatus.PENDING:
                return cached
            pending = self._pending.get(path)
            if pending is None:
                try:
                    future = self._pool.submit(self._run, path)
                except RuntimeError:
                    logger.debug("Thumbnail request after shutdown: {}", path)
                    return ThumbnailResult(
                        path=path,
                        status=ThumbnailStatus.FAILED,
                        error="thumbnail cache is shut down",
                    )
                pending = _PendingDecode(future=future)
                self._pending[path] = pending
            if callback is not None:
                pending.callbacks.append(callback)
        return ThumbnailResult(path=path, status=ThumbnailStatus.PENDING)

    def cancel(self, path: str) -> bool:
        """Drop a decode that has not started yet; its callbacks are not called."""
        with self._lock:
            pending = self._pending.get(path)
            if pending is None or not pending.future.cancel():
                return False
            del self._pending[path]
        logger.debug("Thumbnail decode cancelled: {}", path)
        return True

    def invalidate(self, path: str) -> None:
        """Forget the ready image or failure marker so the next request re-decodes."""
        with self._lock:
            self._ready.pop(path)
            self._failed.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            for path, pending in list(self._pending.items()):
                if pending.future.cancel():
                    del self._pending[path]
            self._ready.clear()
            self._failed.clear()

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=True)

    def _lookup(self, path: str) -> ThumbnailResult | None:
        image = self._ready.get(path)
        if image is not None:
            return ThumbnailResult(path=path, status=ThumbnailStatus.READY, image=image)
        if path in self._failed:
            return ThumbnailResult(
                path=path, status=ThumbnailStatus.FAILED, error=self._failed[path]
            )
        if path in self._pending:
            return ThumbnailResult(path=path, status=ThumbnailStatus.PENDING)
        return None

    def _run(self, path: str) -> ThumbnailResult:
        try:
            image = self._decoder.decode(path, self._max_dimension)
            result = ThumbnailResult(path=path, status=ThumbnailStatus.READY, image=image)
        except DecodeFailure as ex:
            result = ThumbnailResult(path=path, status=ThumbnailStatus.FAILED, error=ex.reason)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.error("Thumbnail task failed for {}: {}", path, ex)
            result = ThumbnailResult(path=path, status=ThumbnailStatus.FAILED, error=str(ex))

        with self._lock:
            pending = self._pending.pop(path, None)
            if result.is_ready:
                self._ready.put(path, result.image)
            else:
                self._failed[path] = result.error or "decode failed"
            callbacks = list(pending.callbacks) if pending else []

        for callback in callbacks:
            self._dispatch(lambda cb=callback: cb(result))
        return result
