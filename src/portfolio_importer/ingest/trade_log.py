from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from portfolio_importer.ingest.csv_mapping import (
    TRADE_LOG_TEMPLATE,
    ColumnMap,
    field_value,
    resolve_columns,
)
from portfolio_importer.ingest.records import (
    MappingResult,
    ParsedTrade,
    RawRow,
    RowResult,
    TradeSide,
    TradeStatus,
    ValidationError,
    collect_results,
)
from portfolio_importer.ingest.validators import (
    is_ticker,
    normalize_symbol,
    parse_amount,
    parse_trade_log_date,
)
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)

SIDE_ALIASES = {
    "LONG": TradeSide.LONG,
    "L": TradeSide.LONG,
    "SHORT": TradeSide.SHORT,
    "S": TradeSide.SHORT,
}


@dataclass(frozen=True)
class TradeLogRow:
    line_number: int
    symbol: str
    side: str
    entry_price: str
    quantity: str
    entry_date: str
    exit_price: str
    exit_date: str
    fees: str
    notes: str


def parse_row(raw: RawRow, columns: ColumnMap | None = None) -> TradeLogRow:
    if columns is None:
        columns = resolve_columns(raw.headers, TRADE_LOG_TEMPLATE)
    return TradeLogRow(
        line_number=raw.line_number,
        symbol=normalize_symbol(field_value(raw, columns, "symbol")),
        side=field_value(raw, columns, "side"),
        entry_price=field_value(raw, columns, "entry_price"),
        quantity=field_value(raw, columns, "quantity"),
        entry_date=field_value(raw, columns, "entry_date"),
        exit_price=field_value(raw, columns, "exit_price"),
        exit_date=field_value(raw, columns, "exit_date"),
        fees=field_value(raw, columns, "fees"),
        notes=field_value(raw, columns, "notes"),
    )


def parse_side(value: str) -> TradeSide | None:
    return SIDE_ALIASES.get(value.strip().upper())


def realized_pnl(
    side: TradeSide, entry_price: float, exit_price: float, quantity: float, fees: float
) -> float:
    if side == TradeSide.LONG:
        return (exit_price - entry_price) * quantity - fees
    return (entry_price - exit_price) * quantity - fees


def _positive_or_none(value: str) -> float | None:
    parsed = parse_amount(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed


def validate_row(raw: RawRow, columns: ColumnMap | None = None) -> RowResult[ParsedTrade]:
    row = parse_row(raw, columns)
    line = row.line_number
    if not row.symbol and not row.side.strip() and not row.entry_price.strip():
        return RowResult.skipped(line, "Empty row")

    errors: list[ValidationError] = []

    def reject(field: str, value: str, message: str) -> None:
        errors.append(ValidationError(row=line, field=field, value=value, message=message))

    if not is_ticker(row.symbol):
        reject("Symbol", row.symbol, "Invalid symbol. Must be 1-5 uppercase letters")

    side = parse_side(row.side)
    if side is None:
        reject("Side", row.side, "Invalid side. Must be LONG or SHORT")

    entry_price = _positive_or_none(row.entry_price)
    if entry_price is None:
        reject("EntryPrice", row.entry_price, "Entry price must be a positive number")

    quantity = _positive_or_none(row.quantity)
    if quantity is None:
        reject("Quantity", row.quantity, "Quantity must be a positive number")

    entry_date = parse_trade_log_date(row.entry_date)
    if entry_date is None:
        reject(
            "EntryDate",
            row.entry_date,
            "Invalid entry date. Expected YYYY-MM-DD or MM/DD/YYYY",
        )

    exit_price: float | None = None
    if row.exit_price.strip():
        exit_price = _positive_or_none(row.exit_price)
        if exit_price is None:
            reject("ExitPrice", row.exit_price, "Exit price must be a positive number if provided")

    exit_date = parse_trade_log_date(row.exit_date)
    if exit_price is not None and exit_date is None:
        reject("ExitDate", row.exit_date, "Exit date is required when exit price is provided")

    fees = parse_amount(row.fees) or 0.0
    if fees < 0:
        reject("Fees", row.fees, "Fees cannot be negative")

    if errors or side is None or entry_price is None or quantity is None or entry_date is None:
        return RowResult.failure(errors)

    closed = exit_price is not None and exit_date is not None
    pnl = (
        realized_pnl(side, entry_price, exit_price, quantity, fees)
        if closed and exit_price is not None
        else None
    )
    return RowResult.success(
        ParsedTrade(
            symbol=row.symbol,
            side=side,
            status=TradeStatus.CLOSED if closed else TradeStatus.OPEN,
            entry_price=entry_price,
            quantity=quantity,
            entry_date=entry_date,
            exit_price=exit_price if closed else None,
            exit_date=exit_date if closed else None,
            fees=fees,
            realized_pnl=pnl,
            notes=row.notes or None,
        )
    )


def map_rows(rows: Iterable[RawRow]) -> MappingResult[ParsedTrade]:
    rows = list(rows)
    if not rows:
        return MappingResult()
    columns = resolve_columns(rows[0].headers, TRADE_LOG_TEMPLATE)
    mapped = collect_results([validate_row(raw, columns) for raw in rows])
    for error in mapped.errors:
        logger.debug("Trade log row %s rejected: %s", error.row, error.message)
    return mapped
