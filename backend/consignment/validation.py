from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Any

from consignment.time_utils import parse_iso_date, parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


def parse_cents(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """
    Strict integer-cents parsing.

    Rejects floats, booleans and decimal strings so that money never passes
    through binary floating point.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer number of cents")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "." in stripped or "e" in stripped.lower():
            raise ValidationError(f"{field} must be an integer number of cents")
        try:
            value = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer number of cents")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")

    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be positive")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_PRICE_CENTS} cents")
    return value


def parse_percent(value: Any, field: str = "consignor_split_percent") -> Decimal:
    """Parse a 0-100 percentage into a Decimal with four places."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} is required")
    try:
        pct = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not pct.is_finite():
        raise ValidationError(f"{field} must be a number")
    if pct < 0 or pct > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return pct.quantize(Decimal("0.0001"), rounding=ROUND_HALF_EVEN)


def parse_optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def parse_optional_date(value: Any, field: str):
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


def parse_optional_datetime(value: Any, field: str):
    if value is None or value == "":
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_pagination(args, *, default_size: int = 25, max_size: int = 200) -> tuple[int, int]:
    page = parse_optional_int(args.get("page"), "page") or 1
    page_size = parse_optional_int(args.get("page_size"), "page_size") or default_size
    if page < 1:
        raise ValidationError("page must be >= 1")
    if page_size < 1:
        raise ValidationError("page_size must be >= 1")
    return page, min(page_size, max_size)


def require_fields(data: dict | None, *fields: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON body required")
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return data
