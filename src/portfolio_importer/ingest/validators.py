from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

from portfolio_importer.ingest.records import TransactionType, ValidationError

TICKER_RE = re.compile(r"^[A-Z]{1,5}$")
LEADING_ALPHA_RE = re.compile(r"^([A-Za-z]+)")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SLASH_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

MONEY_MARKET_PATTERNS = (
    re.compile(r"^TST[A-Z]{2}$"),
    re.compile(r"^CORE[A-Z]*$"),
    re.compile(r"^SPAXX$"),
    re.compile(r"^FCASH$"),
    re.compile(r"^VMFXX$"),
    re.compile(r"^FDRXX$"),
    re.compile(r"^[A-Z]{2}XX$"),
)

# Ordered: the first rule whose needle appears in the upper-cased text wins.
FIDELITY_ACTION_RULES: tuple[tuple[tuple[str, ...], TransactionType], ...] = (
    (("BOUGHT",), TransactionType.BUY),
    (("SOLD",), TransactionType.SELL),
    (("DIV",), TransactionType.DIVIDEND),
    (("DEPOSIT", "TRANSFERRED"), TransactionType.DEPOSIT),
    (("WITHDRAW", "REDEMPTION"), TransactionType.WITHDRAW),
)

MERRILL_DESCRIPTION_RULES: tuple[tuple[tuple[str, ...], TransactionType], ...] = (
    (("PURCHASE",), TransactionType.BUY),
    (("SALE",), TransactionType.SELL),
    (("DIV",), TransactionType.DIVIDEND),
    (("DEPOSIT", "TRANSFER IN"), TransactionType.DEPOSIT),
    (("WITHDRAW", "TRANSFER OUT"), TransactionType.WITHDRAW),
)


def parse_amount(value: Any) -> float | None:
    """Parse a currency-formatted cell.

    ``(1,234.50)`` is negative, ``--`` and ``-`` are zero, and anything
    empty, unparsable or non-finite is ``None``.
    """
    if value is None:
        return None
    text = str(value).replace('"', "").strip()
    if text == "":
        return None
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1].strip()
    text = text.replace("$", "").replace(",", "").strip()
    if text in {"--", "-"}:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return -number if negative else number


def _strip_quotes(value: str) -> str:
    return value.replace('"', "").strip()


def parse_slash_date(value: str) -> date | None:
    """Parse ``MM/DD/YYYY`` or ``M/D/YYYY``, quoted or not."""
    match = SLASH_DATE_RE.match(_strip_quotes(value))
    if not match:
        return None
    try:
        month, day, year = (int(part) for part in match.groups())
        return date(year, month, day)
    except ValueError:
        return None


def parse_trade_log_date(value: str) -> date | None:
    text = _strip_quotes(value)
    if not text:
        return None
    if ISO_DATE_RE.match(text):
        try:
            return datetime.strptime(text, "%Y-%m-%d").date()
        except ValueError:
            return None
    return parse_slash_date(text)


def is_ticker(symbol: str) -> bool:
    return bool(TICKER_RE.match(symbol))


def normalize_symbol(value: str) -> str:
    return _strip_quotes(value).upper()


def extract_leading_symbol(value: str) -> str:
    """Take the leading alphabetic run of a combined symbol/CUSIP cell."""
    cleaned = normalize_symbol(value)
    if is_ticker(cleaned):
        return cleaned
    match = LEADING_ALPHA_RE.match(cleaned)
    return match.group(1).upper() if match else cleaned


def is_money_market_symbol(symbol: str) -> bool:
    upper = symbol.upper()
    return any(pattern.match(upper) for pattern in MONEY_MARKET_PATTERNS)


def positive_amount(
    raw_value: str,
    *,
    row: int,
    field: str,
    errors: list[ValidationError],
    use_magnitude: bool = True,
) -> float | None:
    """Parse a share quantity or price, appending an error unless it is positive."""
    parsed = parse_amount(raw_value)
    if parsed is not None and use_magnitude:
        parsed = abs(parsed)
    if parsed is None or parsed <= 0:
        errors.append(
            ValidationError(
                row=row,
                field=field,
                value=raw_value,
                message=f"{field} must be a positive number",
            )
        )
        return None
    return parsed


def infer_transaction_type(
    text: str, rules: tuple[tuple[tuple[str, ...], TransactionType], ...]
) -> TransactionType | None:
    upper = text.upper()
    for needles, kind in rules:
        if any(needle in upper for needle in needles):
            return kind
    return None
