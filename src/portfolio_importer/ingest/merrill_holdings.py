"""Merrill Lynch point-in-time holdings export (one row per position at a COB date)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from portfolio_importer.ingest.csv_mapping import (
    MERRILL_HOLDINGS_TEMPLATE,
    ColumnMap,
    field_value,
    resolve_columns,
)
from portfolio_importer.ingest.records import (
    MappingResult,
    NormalizedTransaction,
    ParsedHolding,
    RawRow,
    RowResult,
    TransactionType,
    ValidationError,
    collect_results,
)
from portfolio_importer.ingest.validators import (
    is_money_market_symbol,
    is_ticker,
    normalize_symbol,
    parse_amount,
    parse_slash_date,
    positive_amount,
)
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MerrillHoldingRow:
    line_number: int
    cob_date: str
    symbol: str
    description: str
    quantity: str
    price: str
    value: str
    unrealized_gain: str
    unrealized_gain_percent: str


@dataclass(frozen=True)
class ValidHolding:
    row: MerrillHoldingRow
    symbol: str
    as_of: date
    quantity: float
    price: float
    value: float | None

    @property
    def total_amount(self) -> float:
        if self.value is not None and self.value > 0:
            return self.value
        return self.price * self.quantity

    @property
    def cost_basis_per_share(self) -> float:
        """Cost per share implied by market value less unrealized gain, else the price."""
        gain = parse_amount(self.row.unrealized_gain)
        if self.value is None or gain is None:
            return self.price
        return (self.value - gain) / self.quantity


def parse_row(raw: RawRow, columns: ColumnMap | None = None) -> MerrillHoldingRow:
    if columns is None:
        columns = resolve_columns(raw.headers, MERRILL_HOLDINGS_TEMPLATE)
    return MerrillHoldingRow(
        line_number=raw.line_number,
        cob_date=field_value(raw, columns, "cob_date"),
        symbol=normalize_symbol(field_value(raw, columns, "symbol")),
        description=field_value(raw, columns, "description"),
        quantity=field_value(raw, columns, "quantity"),
        price=field_value(raw, columns, "price"),
        value=field_value(raw, columns, "value"),
        unrealized_gain=field_value(raw, columns, "unrealized_gain"),
        unrealized_gain_percent=field_value(raw, columns, "unrealized_gain_percent"),
    )


def validate_holding_row(row: MerrillHoldingRow) -> RowResult[ValidHolding]:
    line = row.line_number
    if not row.cob_date and not row.symbol:
        return RowResult.skipped(line, "Empty row")
    if is_money_market_symbol(row.symbol):
        return RowResult.skipped(line, "Money market fund", field="Symbol", value=row.symbol)

    errors: list[ValidationError] = []
    if not is_ticker(row.symbol):
        errors.append(
            ValidationError(
                row=line,
                field="Symbol",
                value=row.symbol,
                message="Invalid symbol. Must be 1-5 uppercase letters",
            )
        )
    as_of = parse_slash_date(row.cob_date)
    if as_of is None:
        errors.append(
            ValidationError(
                row=line,
                field="COB Date",
                value=row.cob_date,
                message="Invalid date format. Expected M/DD/YYYY",
            )
        )
    # A negative position is not something this snapshot can describe.
    quantity = positive_amount(
        row.quantity, row=line, field="Quantity", errors=errors, use_magnitude=False
    )
    price = positive_amount(
        row.price, row=line, field="Price ($)", errors=errors, use_magnitude=False
    )

    if errors or as_of is None or quantity is None or price is None:
        return RowResult.failure(errors)
    return RowResult.success(
        ValidHolding(
            row=row,
            symbol=row.symbol,
            as_of=as_of,
            quantity=quantity,
            price=price,
            value=parse_amount(row.value),
        )
    )


def validate_row(
    raw: RawRow, columns: ColumnMap | None = None
) -> RowResult[NormalizedTransaction]:
    checked = validate_holding_row(parse_row(raw, columns))
    holding = checked.value
    if holding is None:
        return RowResult(errors=checked.errors)
    return RowResult.success(
        NormalizedTransaction(
            symbol=holding.symbol,
            transaction_type=TransactionType.BUY,
            quantity=holding.quantity,
            price_per_share=holding.price,
            total_amount=holding.total_amount,
            transaction_date=holding.as_of,
            fees=0.0,
            notes=f"Imported from Merrill Lynch Holdings snapshot (COB: {holding.row.cob_date})",
        )
    )


def validate_parsed_holding(
    raw: RawRow, columns: ColumnMap | None = None
) -> RowResult[ParsedHolding]:
    checked = validate_holding_row(parse_row(raw, columns))
    holding = checked.value
    if holding is None:
        return RowResult(errors=checked.errors)
    return RowResult.success(
        ParsedHolding(
            symbol=holding.symbol,
            quantity=holding.quantity,
            average_cost_basis=holding.cost_basis_per_share,
            total_value=holding.value,
            as_of_date=holding.as_of,
        )
    )


def _columns_for(rows: list[RawRow]) -> ColumnMap:
    return resolve_columns(rows[0].headers, MERRILL_HOLDINGS_TEMPLATE)


def map_rows(rows: Iterable[RawRow]) -> MappingResult[NormalizedTransaction]:
    rows = list(rows)
    if not rows:
        return MappingResult()
    columns = _columns_for(rows)
    mapped = collect_results([validate_row(raw, columns) for raw in rows])
    for error in mapped.errors:
        logger.debug("Merrill holdings row %s rejected: %s", error.row, error.message)
    return mapped


def map_holdings(rows: Iterable[RawRow]) -> MappingResult[ParsedHolding]:
    rows = list(rows)
    if not rows:
        return MappingResult()
    columns = _columns_for(rows)
    mapped = collect_results([validate_parsed_holding(raw, columns) for raw in rows])
    for error in mapped.errors:
        logger.debug("Merrill holdings row %s rejected: %s", error.row, error.message)
    return mapped
