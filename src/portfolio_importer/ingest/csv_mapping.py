from __future__ import annotations

from collections.abc import Sequence

from portfolio_importer.ingest.records import RawRow

ColumnMap = dict[str, int]

FIDELITY_TEMPLATE: dict[str, list[str]] = {
    "run_date": ["Run Date"],
    "action": ["Action"],
    "symbol": ["Symbol"],
    "description": ["Description"],
    "price": ["Price ($)", "Price"],
    "quantity": ["Quantity"],
    "commission": ["Commission ($)", "Commission"],
    "fees": ["Fees ($)", "Fees"],
    "amount": ["Amount ($)", "Amount"],
}

MERRILL_TRANSACTIONS_TEMPLATE: dict[str, list[str]] = {
    "trade_date": ["Trade Date"],
    "description": ["Description"],
    "symbol": ["Symbol/ CUSIP", "Symbol/CUSIP", "Symbol"],
    "quantity": ["Quantity"],
    "price": ["Price"],
    "amount": ["Amount"],
}

MERRILL_HOLDINGS_TEMPLATE: dict[str, list[str]] = {
    "cob_date": ["COB Date"],
    "symbol": ["Symbol"],
    "description": ["Security Description", "Description"],
    "quantity": ["Quantity"],
    "price": ["Price ($)", "Price"],
    "value": ["Value ($)", "Value"],
    "unrealized_gain": ["Unrealized Gain/Loss ($)"],
    "unrealized_gain_percent": ["Unrealized Gain/Loss (%)"],
}

TRADE_LOG_TEMPLATE: dict[str, list[str]] = {
    "symbol": ["Symbol"],
    "side": ["Side"],
    "entry_price": ["EntryPrice", "Entry Price", "entry_price"],
    "quantity": ["Quantity", "Qty"],
    "entry_date": ["EntryDate", "Entry Date", "entry_date"],
    "exit_price": ["ExitPrice", "Exit Price", "exit_price"],
    "exit_date": ["ExitDate", "Exit Date", "exit_date"],
    "fees": ["Fees", "Commission"],
    "notes": ["Notes", "Comment"],
}


def _normalize(text: str) -> str:
    return " ".join(text.strip().lower().replace("_", " ").split())


def _match_key(text: str) -> str:
    return "".join(ch for ch in text.strip().lower() if ch.isalnum())


def _first_index(keys: Sequence[str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for position, key in enumerate(keys):
        if key and key not in index:
            index[key] = position
    return index


def resolve_field(headers: Sequence[str], aliases: Sequence[str]) -> int | None:
    """Find the column for the first alias that matches a header.

    Each alias is tried against the headers exactly, then trimmed, then
    case-insensitively with whitespace collapsed, then by alphanumeric key.
    A compact key shared by two different headers never matches.
    """
    exact = _first_index(headers)
    trimmed = _first_index([header.strip() for header in headers])
    normalized = _first_index([_normalize(header) for header in headers])

    compact: dict[str, int] = {}
    ambiguous: set[str] = set()
    for position, header in enumerate(headers):
        key = _match_key(header)
        if not key:
            continue
        previous = compact.get(key)
        if previous is None:
            compact[key] = position
        elif headers[previous].strip() != header.strip():
            ambiguous.add(key)

    for alias in aliases:
        for lookup, candidate in (
            (exact, alias),
            (trimmed, alias.strip()),
            (normalized, _normalize(alias)),
        ):
            if candidate in lookup:
                return lookup[candidate]
        key = _match_key(alias)
        if key and key not in ambiguous and key in compact:
            return compact[key]
    return None


def resolve_columns(headers: Sequence[str], template: dict[str, list[str]]) -> ColumnMap:
    columns: ColumnMap = {}
    for field_name, aliases in template.items():
        position = resolve_field(headers, aliases)
        if position is not None:
            columns[field_name] = position
    return columns


def field_value(raw: RawRow, columns: ColumnMap, field_name: str) -> str:
    position = columns.get(field_name)
    if position is None:
        return ""
    return raw.value_at(position)
