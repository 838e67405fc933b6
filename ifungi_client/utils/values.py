"""Coercion helpers for loosely-typed store values"""

import logging
import math
from datetime import datetime
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

# Epoch values above this are milliseconds, below are seconds
_EPOCH_MS_CUTOFF = 100_000_000_000


def coerce_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None if it is not numeric.

    Booleans are not treated as numbers. Numeric strings are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    """Return value if it is a child node, else None (missing or malformed)"""
    if isinstance(value, Mapping):
        return value
    if value is not None:
        logger.debug(f"Expected a node, got {value!r}")
    return None


def read_flag(value: Any) -> Optional[bool]:
    """Three-valued read of a relay/boolean field: True, False or None (unknown)"""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "on"):
            return True
        if text in ("false", "0", "off"):
            return False
    logger.debug(f"Unrecognised flag value: {value!r}")
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or an epoch number into a datetime.

    Results are naive local datetimes (aware input is converted) so that
    every parsed value can be compared and formatted alike. Returns None when
    the value cannot be placed on a time axis.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_local_naive(value)

    number = coerce_number(value)
    if number is not None:
        seconds = number / 1000 if abs(number) >= _EPOCH_MS_CUTOFF else number
        try:
            return datetime.fromtimestamp(seconds)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return _to_local_naive(parsed)


def epoch_ms(value: Any) -> Optional[int]:
    """Return an epoch-milliseconds timestamp, or None when malformed"""
    number = coerce_number(value)
    if number is None or number <= 0:
        return None
    return int(number)


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
