# ABOUTME: Lenient parsers for numeric and identifier values found in wiki content
# ABOUTME: Every parser returns None for unusable input instead of raising or defaulting to zero

import math
import re

_VARIANT_ID = re.compile(r"^(rs|i)?(\d+)$", re.IGNORECASE)


def canonical_variant_id(value: str | None, default_prefix: str = "rs") -> str | None:
    """Canonical lowercase variant id: '7412' -> 'rs7412', 'RS7412' -> 'rs7412', 'I3000001' -> 'i3000001'."""
    if not value:
        return None
    match = _VARIANT_ID.match(value.strip())
    if not match:
        return None
    prefix = (match.group(1) or default_prefix).lower()
    return f"{prefix}{match.group(2)}"


def parse_float(value: str | None) -> float | None:
    """Parse a finite float; NaN, infinities and junk give None."""
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_position(value: str | None) -> int | None:
    """Parse a 1-based genomic position, tolerating thousands separators."""
    if not value:
        return None
    cleaned = value.replace(",", "").strip()
    if not (cleaned.isascii() and cleaned.isdigit()):
        return None
    position = int(cleaned)
    return position if position >= 1 else None


def parse_frequency(value: str | None) -> float | None:
    """Parse an allele frequency in [0, 1]."""
    number = parse_float(value)
    if number is None or not 0.0 <= number <= 1.0:
        return None
    return number
