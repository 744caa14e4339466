"""Elapsed-time codec shared by ranking and display.

Provider time strings look like "HH:MM:SS.mmm", "MM:SS.mmm" or "SS.mmm".
Parsing never raises: anything that cannot be read as a time maps to
UNRANKABLE_MS, which compares greater than every finite time.
"""
from __future__ import annotations

import math
import re
from typing import AbstractSet

UNRANKABLE_MS = math.inf
DNF_TEXT = "DNF"
DNF_MARKERS: frozenset[str] = frozenset({DNF_TEXT})

# seconds, minutes, hours (right to left)
_SEGMENT_FACTORS_MS = (1000, 60_000, 3_600_000)
_SECONDS_RE = re.compile(r"(?:\d+(?:\.\d*)?|\.\d+)", re.ASCII)


def is_dnf_marker(text: str | None, dnf_markers: AbstractSet[str] = DNF_MARKERS) -> bool:
    if not isinstance(text, str):
        return False
    upper = text.strip().upper()
    return any(upper == marker.upper() for marker in dnf_markers)


def is_finite_time(value: float | int | None) -> bool:
    if value is None or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _parse_whole(segment: str) -> int | None:
    segment = segment.strip()
    if not (segment.isascii() and segment.isdigit()):
        return None
    return int(segment)


def _parse_seconds(segment: str) -> float | None:
    # Plain ASCII decimal only; float() would also take "1e3" or "1_000"
    segment = segment.strip()
    if not _SECONDS_RE.fullmatch(segment):
        return None
    return float(segment)


def parse_time_to_ms(
    text: str | None, *, dnf_markers: AbstractSet[str] = DNF_MARKERS
) -> int | float:
    """Parse an elapsed-time string to whole milliseconds.

    Examples:
        - "01:02:03.456" -> 3723456
        - "20:00" -> 1200000
        - "59.5" -> 59500
        - "DNF", "", None, "abc" -> UNRANKABLE_MS
    """
    if not isinstance(text, str):
        return UNRANKABLE_MS
    stripped = text.strip()
    if not stripped or is_dnf_marker(stripped, dnf_markers):
        return UNRANKABLE_MS

    parts = stripped.split(":")
    if len(parts) > len(_SEGMENT_FACTORS_MS):
        return UNRANKABLE_MS

    seconds = _parse_seconds(parts[-1])
    if seconds is None:
        return UNRANKABLE_MS
    total = seconds * _SEGMENT_FACTORS_MS[0]
    for factor, segment in zip(_SEGMENT_FACTORS_MS[1:], reversed(parts[:-1])):
        whole = _parse_whole(segment)
        if whole is None:
            return UNRANKABLE_MS
        total += whole * factor
    return int(round(total))


def format_ms_to_time(ms: float | int | None) -> str:
    """Format milliseconds as "HH:MM:SS.mmm" (hours > 0) or "MM:SS.mmm".

    Values that round to zero or below, and unrankable values, render as "DNF".
    """
    if not is_finite_time(ms):
        return DNF_TEXT
    total_ms = int(round(ms))
    if total_ms <= 0:
        return DNF_TEXT
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


__all__ = [
    "DNF_MARKERS",
    "DNF_TEXT",
    "UNRANKABLE_MS",
    "format_ms_to_time",
    "is_dnf_marker",
    "is_finite_time",
    "parse_time_to_ms",
]
