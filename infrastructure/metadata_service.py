"""EXIF/TIFF/GPS metadata extraction into `MetadataRecord`.

Reading is split in two steps. `MetadataExtractor.read_properties` opens the
file with Pillow (HEIC/HEIF through pillow-heif, RAW containers through
rawpy as a fallback) and returns plain property dictionaries keyed by group:
``{TIFF}``, ``{Exif}``, ``{GPS}`` and ``{ExifAux}``. `build_record` then turns
those dictionaries into a normalized record without touching the file.
"""

from __future__ import annotations

from datetime import datetime
import math
import os
from pathlib import Path
import re
from typing import Any
import xml.etree.ElementTree as ET

from PIL import Image
from loguru import logger
from pillow_heif import register_heif_opener
import rawpy

from core.errors import UnreadableFile
from core.models import MetadataRecord

register_heif_opener()

EXIF_DT_FMT = "%Y:%m:%d %H:%M:%S"
_EXIF_DT_RE = re.compile(r"\d{4}:\d{2}:\d{2} \d{2}:\d{2}:\d{2}")

RAW_EXTENSIONS = {".raw", ".cr2", ".cr3", ".nef", ".arw", ".orf", ".rw2", ".dng"}

# Sub-IFD pointers inside IFD0
EXIF_IFD_POINTER = 0x8769
GPS_IFD_POINTER = 0x8825
XMP_TAG = 700

TIFF_TAGS = {271: "Make", 272: "Model"}
EXIF_TAGS = {
    33434: "ExposureTime",
    33437: "FNumber",
    34855: "ISOSpeedRatings",
    36867: "DateTimeOriginal",
    36868: "DateTimeDigitized",
    37380: "ExposureBiasValue",
    37386: "FocalLength",
    41989: "FocalLengthIn35mmFilm",
    42035: "LensMake",
    42036: "LensModel",
}
GPS_TAGS = {
    1: "GPSLatitudeRef",
    2: "GPSLatitude",
    3: "GPSLongitudeRef",
    4: "GPSLongitude",
    5: "GPSAltitudeRef",
    6: "GPSAltitude",
}

XMP_NS = {
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "aux": "http://ns.adobe.com/exif/1.0/aux/",
}

_COLOR_MODELS = {
    "1": "Gray",
    "L": "Gray",
    "LA": "Gray",
    "I": "Gray",
    "I;16": "Gray",
    "F": "Gray",
    "RGB": "RGB",
    "RGBA": "RGB",
    "RGBX": "RGB",
    "P": "RGB",
    "PA": "RGB",
    "YCbCr": "RGB",
    "CMYK": "CMYK",
    "LAB": "Lab",
}


def parse_exif_datetime(value: Any) -> datetime | None:
    """Parse an EXIF "YYYY:MM:DD HH:MM:SS" string; None for any other layout."""
    text = _to_text(value)
    if not text or not _EXIF_DT_RE.fullmatch(text):
        return None
    try:
        return datetime.strptime(text, EXIF_DT_FMT)
    except ValueError:
        # e.g. the "0000:00:00 00:00:00" placeholder some cameras write
        return None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).replace("\x00", "").strip()
    return text or None


def _to_float(value: Any) -> float | None:
    """Convert EXIF numeric values (IFDRational, (num, den), int, str) to float."""
    if value is None or isinstance(value, (bytes, bytearray)):
        return None
    if isinstance(value, (tuple, list)):
        if len(value) == 2 and all(isinstance(v, (int, float)) for v in value):
            num, den = value
            return float(num) / float(den) if den else None
        return _to_float(value[0]) if len(value) == 1 else None
    try:
        result = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return result if math.isfinite(result) else None


def _first_int(value: Any) -> int | None:
    if isinstance(value, (tuple, list)):
        if not value:
            return None
        value = value[0]
    number = _to_float(value)
    return int(number) if number is not None else None


def _coordinate(value: Any, ref: Any, negative_ref: str) -> float | None:
    """Combine a GPS magnitude (decimal or D/M/S triple) with its hemisphere."""
    if value is None or ref is None:
        return None
    if isinstance(value, (tuple, list)) and len(value) == 3:
        parts = [_to_float(v) for v in value]
        if any(p is None for p in parts):
            return None
        degrees, minutes, seconds = parts  # type: ignore[misc]
        magnitude = degrees + minutes / 60.0 + seconds / 3600.0
    else:
        magnitude = _to_float(value)
        if magnitude is None:
            return None
    return -magnitude if (_to_text(ref) or "").upper() == negative_ref else magnitude


def _altitude(value: Any, ref: Any) -> float | None:
    altitude = _to_float(value)
    if altitude is None:
        return None
    if isinstance(ref, (bytes, bytearray)):
        ref = ref[0] if ref else 0
    try:
        below_sea_level = int(ref or 0) == 1
    except (TypeError, ValueError):
        below_sea_level = False
    return -altitude if below_sea_level else altitude


def build_record(
    properties: dict[str, Any],
    file_size: int | None = None,
    file_name: str | None = None,
) -> MetadataRecord:
    """Normalize property dictionaries into a `MetadataRecord`.

    Precedence: container dimensions, then the EXIF group, then camera
    make/model from TIFF, then GPS, then the auxiliary lens model only when
    EXIF did not provide one.
    """
    values: dict[str, Any] = {
        "image_width": _first_int(properties.get("PixelWidth")),
        "image_height": _first_int(properties.get("PixelHeight")),
        "color_space": _to_text(properties.get("ColorModel")),
    }

    exif = properties.get("{Exif}") or {}
    if exif:
        focal_35 = _to_float(exif.get("FocalLengthIn35mmFilm"))
        values.update(
            shutter_speed=_to_float(exif.get("ExposureTime")),
            aperture=_to_float(exif.get("FNumber")),
            iso=_first_int(exif.get("ISOSpeedRatings")),
            focal_length=_to_float(exif.get("FocalLength")),
            # 0 means "unknown" in EXIF
            focal_length_35mm=focal_35 or None,
            exposure_bias=_to_float(exif.get("ExposureBiasValue")),
            date_time_original=parse_exif_datetime(exif.get("DateTimeOriginal")),
            date_time_digitized=parse_exif_datetime(exif.get("DateTimeDigitized")),
            lens_model=_to_text(exif.get("LensModel")),
            lens_make=_to_text(exif.get("LensMake")),
        )

    tiff = properties.get("{TIFF}") or {}
    if tiff:
        values.update(
            camera_make=_to_text(tiff.get("Make")),
            camera_model=_to_text(tiff.get("Model")),
        )

    gps = properties.get("{GPS}") or {}
    if gps:
        values.update(
            latitude=_coordinate(gps.get("GPSLatitude"), gps.get("GPSLatitudeRef"), "S"),
            longitude=_coordinate(gps.get("GPSLongitude"), gps.get("GPSLongitudeRef"), "W"),
            altitude=_altitude(gps.get("GPSAltitude"), gps.get("GPSAltitudeRef")),
        )

    aux = properties.get("{ExifAux}") or {}
    if aux and not values.get("lens_model"):
        values["lens_model"] = _to_text(aux.get("LensModel"))

    return MetadataRecord(file_size=file_size, file_name=file_name, **values)


def _named(ifd: Any, names: dict[int, str]) -> dict[str, Any]:
    return {names[tag]: value for tag, value in dict(ifd).items() if tag in names}


def _xmp_text(im: Image.Image, base_ifd: Any) -> str | None:
    packet = im.info.get("xmp") or im.info.get("XML:com.adobe.xmp") or base_ifd.get(XMP_TAG)
    if isinstance(packet, (tuple, list)):
        packet = bytes(packet)
    return _to_text(packet)


def _aux_lens(xmp: str | None) -> str | None:
    """Return aux:Lens from an XMP packet, as attribute or element of rdf:Description."""
    if not xmp:
        return None
    try:
        root = ET.fromstring(xmp)
    except ET.ParseError as ex:
        logger.debug("XMP parse failed: {}", ex)
        return None
    for desc in root.iter(f"{{{XMP_NS['rdf']}}}Description"):
        value = desc.get(f"{{{XMP_NS['aux']}}}Lens")
        if value is None:
            node = desc.find("aux:Lens", XMP_NS)
            value = node.text if node is not None else None
        lens = _to_text(value)
        if lens:
            return lens
    return None


class MetadataExtractor:
    """Reads embedded image properties and builds `MetadataRecord` objects."""

    def extract(self, path: str) -> MetadataRecord | None:
        """Return the metadata record for `path`.

        Returns None when the image is valid but carries no embedded
        property dictionaries.

        Raises:
            UnreadableFile: The file cannot be opened or is not an image.
        """
        properties = self.read_properties(path)
        if not self._has_embedded(properties):
            logger.debug("No embedded metadata in {}", path)
            return None
        try:
            size: int | None = os.path.getsize(path)
        except OSError as ex:
            logger.debug("getsize failed for {}: {}", path, ex)
            size = None
        return build_record(properties, file_size=size, file_name=Path(path).name)

    def read_properties(self, path: str) -> dict[str, Any]:
        """Open `path` and collect its property dictionaries.

        Raises:
            UnreadableFile: When neither Pillow nor LibRaw can identify it.
        """
        try:
            with Image.open(path) as im:
                return self._read_pillow(im, path)
        except (OSError, ValueError, Image.DecompressionBombError) as ex:
            if Path(path).suffix.lower() in RAW_EXTENSIONS:
                raw_props = self._read_raw(path)
                if raw_props is not None:
                    return raw_props
            logger.debug("Metadata open failed for {}: {}", path, ex)
            raise UnreadableFile(path, str(ex)) from ex

    @staticmethod
    def _has_embedded(properties: dict[str, Any]) -> bool:
        groups = ("{TIFF}", "{Exif}", "{GPS}", "{ExifAux}", "{Raw}")
        return any(properties.get(group) for group in groups) or bool(properties.get("XMP"))

    def _read_pillow(self, im: Image.Image, path: str) -> dict[str, Any]:
        width, height = im.size
        properties: dict[str, Any] = {
            "PixelWidth": width,
            "PixelHeight": height,
            "ColorModel": _COLOR_MODELS.get(im.mode, im.mode),
        }
        try:
            exif = im.getexif()
            properties["{TIFF}"] = _named(exif, TIFF_TAGS)
            properties["{Exif}"] = _named(exif.get_ifd(EXIF_IFD_POINTER), EXIF_TAGS)
            properties["{GPS}"] = _named(exif.get_ifd(GPS_IFD_POINTER), GPS_TAGS)
            # TIFF containers always carry IFD0 tags even without Make/Model
            if len(exif) and not properties["{TIFF}"]:
                properties["{TIFF}"] = {"TagCount": len(exif)}
        except (OSError, ValueError, SyntaxError, KeyError) as ex:
            logger.debug("EXIF parse failed for {}: {}", path, ex)
            exif = {}

        xmp = _xmp_text(im, exif)
        if xmp:
            properties["XMP"] = True
            lens = _aux_lens(xmp)
            if lens:
                properties["{ExifAux}"] = {"LensModel": lens}
        return properties

    def _read_raw(self, path: str) -> dict[str, Any] | None:
        try:
            with rawpy.imread(path) as raw:
                sizes = raw.sizes
                return {
                    "PixelWidth": int(sizes.width),
                    "PixelHeight": int(sizes.height),
                    "ColorModel": "RGB",
                    "{Raw}": {"Flip": int(sizes.flip)},
                }
        except (rawpy.LibRawError, OSError, ValueError) as ex:
            logger.debug("rawpy metadata fallback failed for {}: {}", path, ex)
            return None
