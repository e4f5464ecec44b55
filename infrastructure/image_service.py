"""Image decoding for thumbnails and the single-image view.

Pillow handles the common formats and HEIC/HEIF via pillow-heif. RAW files
try the camera's embedded preview through rawpy first, which is far cheaper
than demosaicing and good enough for grid cells.
"""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, ImageOps
from loguru import logger
from pillow_heif import register_heif_opener
import rawpy

from core.errors import DecodeFailure
from infrastructure.metadata_service import RAW_EXTENSIONS

register_heif_opener()

DEFAULT_THUMB_SIDE = 300

_RESAMPLE = Image.Resampling.LANCZOS


class ImageDecoder:
    """Decodes orientation-corrected Pillow images, optionally size-bounded."""

    def decode(self, path: str, max_dimension: int = DEFAULT_THUMB_SIDE) -> Image.Image:
        """Return an image whose longer side does not exceed `max_dimension`.

        A `max_dimension` of 0 or less decodes at full resolution.

        Raises:
            DecodeFailure: The file cannot be decoded.
        """
        if Path(path).suffix.lower() in RAW_EXTENSIONS:
            preview = self._load_raw_preview(path)
            if preview is not None:
                return self._finish(preview, max_dimension)

        try:
            with Image.open(path) as im:
                if max_dimension and max_dimension > 0:
                    # thumbnail() lets JPEG decode at a reduced scale via draft mode
                    im.thumbnail((max_dimension, max_dimension), _RESAMPLE)
                else:
                    im.load()
                return self._finish(im, 0)
        except (OSError, ValueError, Image.DecompressionBombError) as ex:
            logger.debug("Pillow decode failed for {}: {}", path, ex)
            raise DecodeFailure(path, str(ex)) from ex

    def load_full(self, path: str) -> Image.Image:
        """Decode `path` at full resolution for the single-image view."""
        return self.decode(path, 0)

    def _finish(self, im: Image.Image, max_dimension: int) -> Image.Image:
        """Apply EXIF orientation, bound the size and detach from the file."""
        out = ImageOps.exif_transpose(im)
        if max_dimension and max_dimension > 0:
            out.thumbnail((max_dimension, max_dimension), _RESAMPLE)
        return out

    def _load_raw_preview(self, path: str) -> Image.Image | None:
        """Return the embedded JPEG/bitmap preview of a RAW file, if any."""
        try:
            with rawpy.imread(path) as raw:
                thumb = raw.extract_thumb()
        except (rawpy.LibRawError, OSError, ValueError) as ex:
            logger.debug("rawpy preview unavailable for {}: {}", path, ex)
            return None

        try:
            if thumb.format == rawpy.ThumbFormat.JPEG:
                with Image.open(io.BytesIO(thumb.data)) as im:
                    im.load()
                    return im.copy()
            if thumb.format == rawpy.ThumbFormat.BITMAP:
                return Image.fromarray(thumb.data)
        except (OSError, ValueError) as ex:
            logger.debug("RAW preview decode failed for {}: {}", path, ex)
        return None

