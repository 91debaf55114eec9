"""
Segment Watermark

The LaunchDarkly segment has no field for sync state, so the timestamp of the
newest export merged into it is stored as free text in the `description` of its
rules, e.g. "January 2, 2024 at 03:04:05 PM". Reading, writing and comparing
that value all happens here.
"""

import pandas as pd
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional
from segment_pipeline import config


@dataclass
class Watermark:
    """Data up to and including `value` (UTC) is already in the segment."""

    value: datetime
    is_fallback: bool = False

    @property
    def display(self) -> str:
        return format_watermark(self.value)


def to_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_watermark_description(description) -> Optional[datetime]:
    """
    Parse a rule description written by format_watermark().

    The literal " at" is dropped and a UTC suffix added before parsing.

    Args:
        description: Raw `description` value of a segment rule

    Returns:
        Aware UTC datetime, or None if the description is not a date
    """
    if not description or not isinstance(description, str):
        return None

    text = description.replace(" at", "", 1) + " UTC"
    try:
        parsed = pd.to_datetime(text, utc=True, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None

    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def parse_fallback_date(fallback_date: str) -> datetime:
    """Parse the configured fallback date (e.g. "2024-01-01") as UTC midnight."""
    parsed = pd.to_datetime(fallback_date, utc=True, errors="coerce")
    if pd.isna(parsed):
        raise ValueError(f"FALLBACK_DATE is not a valid date: {fallback_date!r}")
    return parsed.to_pydatetime()


def extract_watermark(segment: Dict, fallback_date: str = config.default_fallback_date) -> Watermark:
    """
    Find the watermark stored in a segment's rule descriptions.

    Rules are searched in order and the first description that parses wins.
    Malformed descriptions are skipped. When no rule carries a date the
    fallback date is returned with `is_fallback` set.

    Args:
        segment: Segment document as returned by the LaunchDarkly API
        fallback_date: Date to start from when the segment has no watermark

    Returns:
        Watermark
    """
    for rule in segment.get("rules") or []:
        if not isinstance(rule, dict):
            continue
        parsed = parse_watermark_description(rule.get("description"))
        if parsed is not None:
            return Watermark(value=parsed)

    return Watermark(value=parse_fallback_date(fallback_date), is_fallback=True)


def format_watermark(value: datetime) -> str:
    """Format a watermark the way it is stored in the rule description."""
    value = to_utc(value)
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value:%B} {value.day}, {value.year} at {hour:02d}:{value:%M:%S} {meridiem}"


# Time tokens are fixed-width HHMMSS + 4 digit suffix, so plain string order is
# chronological order within a day. Comparisons go through token_is_after() only.

def time_token(value: datetime) -> str:
    """Encode the time of day of `value` as an export time token."""
    return f"{to_utc(value):%H%M%S}0000"


def is_valid_time_token(token) -> bool:
    return isinstance(token, str) and len(token) == config.time_token_width and token.isdigit()


def token_is_after(token: str, lower_bound: Optional[str]) -> bool:
    """True when `token` is strictly later in the day than `lower_bound` (None: any token)."""
    return lower_bound is None or token > lower_bound
