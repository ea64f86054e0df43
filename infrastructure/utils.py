"""Utilities for capture-date parsing and exposure formatting.

This module centralizes date parsing/formatting so ingestion and mock data
share one behavior. It uses best-effort parsing and will not raise on
errors; callers should expect `None` when data is not available.
"""

from __future__ import annotations

from datetime import datetime, timezone
from fractions import Fraction
from typing import Any
import uuid

from loguru import logger

from core.models import UNKNOWN_EXPOSURE, Season

EXIF_DT_FMT = "%Y:%m:%d %H:%M:%S"


def generate_photo_id() -> str:
    return str(uuid.uuid4())


def parse_exif_datetime(value: Any) -> datetime | None:
    """Parse an EXIF timestamp ("YYYY:MM:DD HH:MM:SS" or ISO-like); None on failure."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    val_str = str(value).strip().rstrip("\x00")
    if not val_str:
        return None
    try:
        if len(val_str) >= 19 and val_str[4] == ":" and val_str[7] == ":":
            return datetime.strptime(val_str[:19], EXIF_DT_FMT)
        return datetime.fromisoformat(val_str.replace("/", "-"))
    except (ValueError, TypeError) as ex:
        logger.debug("Unparseable EXIF datetime {!r}: {}", val_str, ex)
        return None


def to_epoch_millis(dt: datetime) -> int:
    """Epoch millis; naive datetimes are interpreted as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def day_cluster_id(timestamp_ms: int) -> str:
    """Calendar date (UTC) of `timestamp_ms` as YYYY-MM-DD."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def season_for_timestamp(timestamp_ms: int) -> str:
    month = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).month
    return Season.from_month(month).value


def format_shutter_speed(value: Any) -> str:
    """Format an exposure time in seconds as "1/250" or "2"."""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return UNKNOWN_EXPOSURE
    if not seconds > 0:
        return UNKNOWN_EXPOSURE
    if seconds >= 1:
        return f"{seconds:g}"
    return f"1/{round(1 / seconds)}"


def format_aperture(value: Any) -> str:
    try:
        f_number = float(value)
    except (TypeError, ValueError):
        # EXIF strings such as "28/10"
        try:
            f_number = float(Fraction(str(value)))
        except (ValueError, ZeroDivisionError):
            return UNKNOWN_EXPOSURE
    if not f_number > 0:
        return UNKNOWN_EXPOSURE
    return f"f/{f_number:g}"


def format_iso(value: Any) -> str:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    try:
        iso = int(value)
    except (TypeError, ValueError):
        return UNKNOWN_EXPOSURE
    return str(iso) if iso > 0 else UNKNOWN_EXPOSURE
