"""
Data normalization utilities for ETL.

This module turns the loosely formatted phone and date strings found in
message exports into comparable values.

Design Decisions:
    1. Phone normalization targets bare digits with a country code (9607781405),
       not E.164 - the "+" is dropped so that "+960..." and "960..." collapse
    2. Single-country heuristics; prefix and local length are parameters
    3. Timestamp parsing is total: malformed input falls back to "now"
    4. Timezone annotations such as "(UTC+5)" are stripped and ignored,
       timestamps are naive wall-clock values

Phone Normalization Strategy:
    - Remove every non-digit character
    - Already starts with the country code -> keep
    - Bare local number (7 digits) -> prepend country code
    - Trunk prefix 0 -> replace with country code
    - 10+ digits -> assume international, keep
    - Anything else -> cleaned digits (possibly empty)
"""

import re
from datetime import datetime
from typing import Optional

NON_DIGIT_PATTERN = re.compile(r"\D")
TRAILING_ANNOTATION_PATTERN = re.compile(r"\(.*\)\s*$")

DEFAULT_COUNTRY_PREFIX = "960"
DEFAULT_LOCAL_LENGTH = 7

UNIFIED_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
LEGACY_TIMESTAMP_FORMAT = "%m/%d/%Y %H:%M:%S"


def normalize_phone(
    raw: Optional[str],
    country_prefix: str = DEFAULT_COUNTRY_PREFIX,
    local_length: int = DEFAULT_LOCAL_LENGTH,
) -> str:
    """
    Normalize a phone number to a comparable contact key.

    Args:
        raw: Raw phone number in any format.
        country_prefix: Country calling code for local numbers.
        local_length: Digit count of a bare local number.

    Returns:
        Normalized digit string, or "" if the input has no digits.

    Examples:
        >>> normalize_phone("+960 778-1405")
        '9607781405'
        >>> normalize_phone("7781405")
        '9607781405'
        >>> normalize_phone("07781405")
        '9607781405'
        >>> normalize_phone("+44 20 7946 0958")
        '442079460958'
    """
    if not raw or not isinstance(raw, str):
        return ""

    digits = NON_DIGIT_PATTERN.sub("", raw)

    if digits.startswith(country_prefix):
        return digits
    if len(digits) == local_length:
        return country_prefix + digits
    if digits.startswith("0"):
        return country_prefix + digits[1:]
    # 10+ digits is taken to already carry a foreign country code
    return digits


def strip_annotation(value: str) -> str:
    """Remove a trailing parenthesized annotation like "(UTC+0)"."""
    return TRAILING_ANNOTATION_PATTERN.sub("", value).strip()


def parse_unified_timestamp(value: Optional[str]) -> datetime:
    """
    Parse a unified-format timestamp.

    Input looks like "13/06/2014 21:15:08(UTC+0)". The annotation is dropped,
    the DD/MM/YYYY date reordered, and the result parsed as naive local time.

    Args:
        value: Raw Timestamp field.

    Returns:
        Parsed datetime, or the current time if the value is malformed.
    """
    try:
        date_part, time_part = strip_annotation(value).split(None, 1)  # type: ignore[arg-type]
        day, month, year = date_part.split("/")
        iso = f"{year}-{month.zfill(2)}-{day.zfill(2)}T{time_part.strip()}"
        return datetime.strptime(iso, UNIFIED_TIMESTAMP_FORMAT)
    except (AttributeError, TypeError, ValueError):
        return datetime.now()


def parse_legacy_timestamp(date: Optional[str], time: Optional[str]) -> datetime:
    """
    Parse a legacy-format date/time pair.

    Args:
        date: Date string in DD/MM/YYYY order.
        time: Time string, possibly with a trailing "(...)" annotation.

    Returns:
        Parsed datetime, or the current time if either part is malformed.
    """
    try:
        day, month, year = date.split("/")  # type: ignore[union-attr]
        time_str = strip_annotation(time)  # type: ignore[arg-type]
        return datetime.strptime(f"{month}/{day}/{year} {time_str}", LEGACY_TIMESTAMP_FORMAT)
    except (AttributeError, TypeError, ValueError):
        return datetime.now()
