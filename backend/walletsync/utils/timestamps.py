"""Epoch-second helpers for watermarks and Last-Modified values.

Wallet clients exchange timestamps as decimal Unix epoch seconds, not HTTP
dates. Timestamps are stored as naive UTC datetimes.
"""
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

_EPOCH = datetime(1970, 1, 1)

# Plain decimal, optional sign and exponent; no whitespace, underscores or hex
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (storage format)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch(value: datetime) -> float:
    """Seconds since the epoch for a stored (naive UTC) datetime."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return (value - _EPOCH) / timedelta(seconds=1)


def from_epoch(seconds: float) -> datetime:
    """Naive UTC datetime for an epoch-seconds value."""
    return _EPOCH + timedelta(seconds=seconds)


def parse_epoch(raw: Optional[str]) -> Optional[float]:
    """Parse a decimal epoch-seconds string; None when missing or invalid."""
    if raw is None or not _DECIMAL_RE.fullmatch(raw):
        return None
    value = float(raw)
    if not math.isfinite(value):
        return None
    return value


def format_epoch(seconds: float) -> str:
    """Render epoch seconds, dropping the fraction when it is zero."""
    if seconds == int(seconds):
        return str(int(seconds))
    return repr(seconds)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """A timestamp strictly after ``previous``, normally the current time."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now
