"""Money helpers for deterministic rounding and console formatting."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


CENT = Decimal("0.01")


def to_decimal(value: float | int | str | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: float | int | str | Decimal | None) -> float:
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def format_money(value: float | None) -> str:
    if value is None:
        return "n/a"
    amount = round_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percent(value: float | None) -> str:
    """Format a value already expressed in percent units (12.5 -> "12.50%")."""
    if value is None:
        return "n/a"
    return f"{value:.2f}%"
