"""Shared timestamp parsing and normalization helpers."""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MILLISECOND = timedelta(milliseconds=1)


def format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 transcript timestamp into an aware UTC datetime."""
    if not isinstance(value, str):
        return None
    token = value.strip()
    if not token:
        return None
    try:
        parsed = datetime.fromisoformat(token.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_valid_timestamp(value: Any) -> bool:
    return parse_timestamp(value) is not None


def timestamp_to_epoch_ms(value: Any) -> int | None:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return (parsed - datetime(1970, 1, 1, tzinfo=timezone.utc)) // _MILLISECOND


def parse_date(value: Any) -> date | None:
    """Parse a ``YYYY-MM-DD`` calendar date (a full timestamp is truncated)."""
    if not isinstance(value, str):
        return None
    token = value.strip()[:10]
    if not _DATE_ONLY_RE.match(token):
        return None
    try:
        return date.fromisoformat(token)
    except ValueError:
        return None


def date_key(timestamp: str) -> str:
    return (timestamp or "")[:10]


def file_modified_iso(path: Path) -> str:
    """Return the file modification time as a UTC ISO string, or ``""``."""
    try:
        stats = path.stat()
    except OSError:
        return ""
    return format_datetime_utc(datetime.fromtimestamp(float(stats.st_mtime), timezone.utc))
