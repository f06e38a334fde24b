"""Model identity parsing utilities for usage breakdowns."""
from __future__ import annotations

import re


_DATE_SUFFIX_PATTERN = re.compile(r"(?:-\d{8}|-\d{4}-\d{2}-\d{2})+$")
_FAMILY_VERSION_PATTERN = re.compile(r"claude-([a-z]+)-(\d+)-(\d{1,2})\b")
_KNOWN_FAMILIES = ("opus", "sonnet", "haiku")


def canonical_model_name(raw_model: str | None) -> str:
    """Return a canonical model identifier with build/date suffixes removed.

    Example:
      claude-opus-4-5-20251101 -> claude-opus-4-5
    """
    raw = (raw_model or "").strip().lower()
    if not raw:
        return ""
    normalized = re.sub(r"[\s_]+", "-", raw)
    normalized = re.sub(r"-{2,}", "-", normalized).strip("-")
    stripped = _DATE_SUFFIX_PATTERN.sub("", normalized).strip("-")
    return stripped or normalized


def model_family_name(raw_model: str | None) -> str:
    """Return the lowercase family (opus, sonnet, haiku) found in a model id."""
    lowered = (raw_model or "").lower()
    for family in _KNOWN_FAMILIES:
        if family in lowered:
            return family
    return ""


def short_model_name(raw_model: str | None) -> str:
    """Return a ``family-major.minor`` label for a model id.

    Examples:
      claude-opus-4-5-20251101 -> opus-4.5
      claude-sonnet-4-20250514 -> sonnet
      gpt-5-mini -> gpt-5-mini
    """
    raw = (raw_model or "").strip()
    match = _FAMILY_VERSION_PATTERN.search(canonical_model_name(raw))
    if match:
        family, major, minor = match.groups()
        return f"{family}-{major}.{minor}"
    return model_family_name(raw) or raw
