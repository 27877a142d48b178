from __future__ import annotations
import re
from typing import Optional

_INT_PREFIX = re.compile(r'^\s*([+-]?\d+)')


def parse_int(value: object) -> Optional[int]:
    """Lenient integer parsing in the manner of a browser's parseInt.

    A leading sign and digits are taken, anything after them (unit suffixes
    like 'px', a fractional part) is ignored. Returns None when no digits lead
    the value. Booleans are not numbers here.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return None
        return int(value)
    m = _INT_PREFIX.match(str(value))
    if m is None:
        return None
    return int(m.group(1))


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(value, hi))


def normalize_number(value: object) -> str:
    """String form used to compare measure numbers ('12', 12 and ' 12 ' match)."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
