"""
Validation for orderbook and market data at ingestion boundaries.

Every Decimal built from external JSON goes through one of these functions.
They raise ValueError on invalid data (unparseable, NaN, Inf, negative,
out of range) so the caller can skip the single record.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation


def parse_decimal(raw: object, context: str = "value") -> Decimal:
    """
    Convert a venue value (usually a decimal string) to a finite Decimal.

    Raises:
        ValueError: If the value is missing, unparseable, NaN or infinite.
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError(f"Invalid {context}: {raw!r}")
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid {context}: {raw!r} is not a number") from None
    if value.is_nan():
        raise ValueError(f"Invalid {context}: NaN")
    if value.is_infinite():
        raise ValueError(f"Invalid {context}: Inf")
    return value


def validate_price(p: Decimal, context: str = "price") -> Decimal:
    """
    Validate a price is within [0, 1].

    Raises:
        ValueError: If price is negative or > 1.
    """
    if p < 0:
        raise ValueError(f"Invalid {context}: negative value {p}")
    if p > 1:
        raise ValueError(f"Invalid {context}: {p} out of range [0, 1]")
    return p


def validate_size(s: Decimal, context: str = "size") -> Decimal:
    """
    Validate a size/quantity is non-negative.

    Raises:
        ValueError: If size is negative.
    """
    if s < 0:
        raise ValueError(f"Invalid {context}: negative value {s}")
    return s
