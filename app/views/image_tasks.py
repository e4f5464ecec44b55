"""Qt glue for background image work.

`UiDispatcher` marshals callables from worker threads onto the GUI thread
with a queued signal, and `QImageDecoder` turns decoded Pillow images into
`QImage` on the worker so the GUI thread only wraps them in a pixmap.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from PIL import Image
from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot
from PySide6.QtGui import QImage
from loguru import logger

from core.errors import DecodeFailure
from infrastructure.image_service import DEFAULT_THUMB_SIDE, ImageDecoder


def pil_to_qimage(pil_img: Image.Image) -> QImage | None:
    """Convert a Pillow image to `QImage` and detach from the source buffer."""
    try:
        mode = pil_img.mode
        if mode not in ("RGBA", "RGB"):
            pil_img = pil_img.convert("RGBA")
            mode = pil_img.mode
        if mode == "RGB":
            data = pil_img.tobytes("raw", "RGB")
            qimg = QImage(
                data, pil_img.width, pil_img.height, pil_img.width * 3, QImage.Format_RGB888
            )
        else:
            data = pil_img.tobytes("raw", "RGBA")
            qimg = QImage(
                data, pil_img.width, pil_img.height, pil_img.width * 4, QImage.Format_RGBA8888
            )
        if qimg is None or qimg.isNull():
            return None
        return qimg.copy()
    except (ValueError, TypeError) as ex:
        logger.debug("PIL->QImage convert failed: {}", ex)
        return None


class QImageDecoder:
    """Wraps `ImageDecoder` so cache workers produce ready-to-paint `QImage`s."""

    def __init__(self, decoder: ImageDecoder | None = None) -> None:
        self._decoder = decoder or ImageDecoder()

    def decode(self, path: str, max_dimension: int = DEFAULT_THUMB_SIDE) -> QImage:
        return self._convert(path, self._decoder.decode(path, max_dimension))

    def load_full(self, path: str) -> QImage:
        return self._convert(path, self._decoder.load_full(path))

    @staticmethod
    def _convert(path: str, image: Image.Image) -> QImage:
        qimg = pil_to_qimage(image)
        if qimg is None:
            raise DecodeFailure(path, "QImage conversion failed")
        return qimg


class UiDispatcher(QObject):
    """Runs callables on the thread this object lives in (the GUI thread).

    Emitting from a worker thread makes Qt queue the call into the GUI event
    loop, which is what `ThumbnailCache` and `BrowserVM` need for `dispatch`.
    """

    _invoke = Signal(object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._invoke.connect(self._run)

    def post(self, fn: Callable[[], Any]) -> None:
        self._invoke.emit(fn)

    def __call__(self, fn: Callable[[], Any]) -> None:
        self.post(fn)

    @Slot(object)
    def _run(self, fn: Callable[[], Any]) -> None:
        try:
            fn()
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.exception("UI callback failed: {}", ex)


class _ImageTask(QRunnable):
    """QRunnable for background full-size image loading.

    Emits `receiver.imageLoaded(token, path, image)` upon completion, with
    `image` None when the decode failed. The receiver is expected to own a Qt
    `Signal(str, str, object)` named `imageLoaded`.
    """

    def __init__(
        self, *, path: str, side: int, decoder: QImageDecoder, receiver: QObject, token: str
    ) -> None:
        super().__init__()
        self._path = path
        self._side = side
        self._decoder = decoder
        self._receiver = receiver
        self._token = token

    def run(self) -> None:  # type: ignore[override]
        try:
            if self._side > 0:
                img = self._decoder.decode(self._path, self._side)
            else:
                img = self._decoder.load_full(self._path)
        except DecodeFailure as ex:
            logger.debug("Preview decode failed: {}", ex)
            img = None
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.error("Image task failed for {}: {}", self._path, ex)
            img = None
        self._receiver.imageLoaded.emit(self._token, self._path, img)  # type: ignore[attr-defined]


class ImageTaskRunner:
    """Dispatches single-image loads to the global thread pool.

    Tokens have the form "single|{path}|{side}"; the receiver compares the
    token of each completion with its latest request and drops stale ones.
    """

    def __init__(self, *, decoder: QImageDecoder, receiver: QObject) -> None:
        self._decoder = decoder
        self._receiver = receiver
        self._pool = QThreadPool.globalInstance()

    def request_single_preview(self, path: str, side: int = 0) -> str:
        """Request a preview of `path` bounded by `side` (0 = full size). Returns the token."""
        token = f"single|{path}|{side}"
        task = _ImageTask(
            path=path, side=side, decoder=self._decoder, receiver=self._receiver, token=token
        )
        self._pool.start(task)
        return token
