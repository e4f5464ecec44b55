"""Display formatting for `MetadataRecord` values.

Pure functions only; each returns None when the underlying value is absent
so callers can skip the row.
"""

from __future__ import annotations

from datetime import datetime
import math

from core.models import MetadataRecord

DATE_DISPLAY_FMT = "%Y-%m-%d %H:%M:%S"

Row = tuple[str, str]
Section = tuple[str, list[Row]]


def format_shutter_speed(seconds: float | None) -> str | None:
    """Format exposure time, e.g. 2.0 -> "2.0s" and 0.002 -> "1/500s"."""
    if seconds is None or seconds <= 0:
        return None
    if seconds >= 1:
        return f"{seconds:.1f}s"
    return f"1/{round(1.0 / seconds)}s"


def format_aperture(f_number: float | None) -> str | None:
    """Format f-number, dropping the decimal for whole stops ("f/2", "f/1.4")."""
    if f_number is None:
        return None
    if f_number == math.floor(f_number):
        return f"f/{f_number:.0f}"
    return f"f/{f_number:.1f}"


def format_focal_length(focal: float | None, focal_35mm: float | None = None) -> str | None:
    if focal is None:
        return None
    text = f"{focal:.0f}mm"
    if focal_35mm is not None and focal_35mm != focal:
        text += f" (equiv {focal_35mm:.0f}mm)"
    return text


def format_iso(iso: int | None) -> str | None:
    if iso is None:
        return None
    return f"ISO {iso}"


def format_exposure_bias(bias: float | None) -> str | None:
    if bias is None:
        return None
    if bias == 0:
        return "±0 EV"
    if bias > 0:
        return f"{bias:+.1f} EV"
    return f"{bias:.1f} EV"


def format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime(DATE_DISPLAY_FMT)


def format_gps(latitude: float | None, longitude: float | None) -> str | None:
    """Format coordinates with hemisphere letters, e.g. "31.230400° N, 121.473700° E"."""
    if latitude is None or longitude is None:
        return None
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.6f}° {lat_dir}, {abs(longitude):.6f}° {lon_dir}"


def format_altitude(altitude: float | None) -> str | None:
    if altitude is None:
        return None
    return f"{altitude:.1f} m"


def format_resolution(width: int | None, height: int | None) -> str | None:
    """Format pixel size with megapixels, e.g. "7952 × 5304 (42.2 MP)"."""
    if width is None or height is None:
        return None
    megapixels = (width * height) / 1_000_000
    return f"{width} × {height} ({megapixels:.1f} MP)"


def format_file_size(size: int | None) -> str | None:
    """Decimal byte count as file browsers show it ("512 bytes", "34 KB", "12.3 MB")."""
    if size is None:
        return None
    if size < 1000:
        return "1 byte" if size == 1 else f"{size} bytes"
    if size < 1000**2:
        return f"{size / 1000:.0f} KB"
    for unit, factor in (("MB", 1000**2), ("GB", 1000**3)):
        if size < factor * 1000:
            return f"{size / factor:.1f} {unit}"
    return f"{size / 1000**4:.1f} TB"


def metadata_sections(record: MetadataRecord, file_name: str | None = None) -> list[Section]:
    """Group formatted values into titled sections for a metadata panel.

    Rows with no value are omitted, and so are sections left empty.
    """
    raw: list[tuple[str, list[tuple[str, str | None]]]] = [
        (
            "File",
            [
                ("Name", file_name or record.file_name),
                ("Size", format_file_size(record.file_size)),
                ("Resolution", format_resolution(record.image_width, record.image_height)),
                ("Color", record.color_space),
            ],
        ),
        ("Camera", [("Make", record.camera_make), ("Model", record.camera_model)]),
        ("Lens", [("Model", record.lens_model), ("Make", record.lens_make)]),
        (
            "Exposure",
            [
                (
                    "Focal length",
                    format_focal_length(record.focal_length, record.focal_length_35mm),
                ),
                ("Aperture", format_aperture(record.aperture)),
                ("Shutter", format_shutter_speed(record.shutter_speed)),
                ("ISO", format_iso(record.iso)),
                ("Exposure bias", format_exposure_bias(record.exposure_bias)),
            ],
        ),
        (
            "Date",
            [
                ("Taken", format_datetime(record.date_time_original)),
                ("Digitized", format_datetime(record.date_time_digitized)),
            ],
        ),
        (
            "Location",
            [
                ("GPS", format_gps(record.latitude, record.longitude)),
                ("Altitude", format_altitude(record.altitude)),
            ],
        ),
    ]
    sections: list[Section] = []
    for title, rows in raw:
        kept = [(label, value) for label, value in rows if value]
        if kept:
            sections.append((title, kept))
    return sections
