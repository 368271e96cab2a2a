"""Merrill Lynch transaction export.

A metadata preamble (``Exported on: ...``) sits above a header row whose
names carry trailing spaces, and a ``Total activity from ...`` summary closes
the data block.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from portfolio_importer.ingest.csv_mapping import (
    MERRILL_TRANSACTIONS_TEMPLATE,
    ColumnMap,
    field_value,
    resolve_columns,
)
from portfolio_importer.ingest.records import (
    SHARE_TRANSACTION_TYPES,
    MappingResult,
    NormalizedTransaction,
    RawRow,
    RowResult,
    TransactionType,
    ValidationError,
    collect_results,
)
from portfolio_importer.ingest.validators import (
    MERRILL_DESCRIPTION_RULES,
    extract_leading_symbol,
    infer_transaction_type,
    is_ticker,
    parse_amount,
    parse_slash_date,
    positive_amount,
)
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)

SUMMARY_MARKERS = ("total activity", "total from")
NOTE_DESCRIPTION_LIMIT = 50


@dataclass(frozen=True)
class MerrillTransactionRow:
    line_number: int
    first_value: str
    trade_date: str
    description: str
    symbol_cusip: str
    quantity: str
    price: str
    amount: str


def parse_row(raw: RawRow, columns: ColumnMap | None = None) -> MerrillTransactionRow:
    if columns is None:
        columns = resolve_columns(raw.headers, MERRILL_TRANSACTIONS_TEMPLATE)
    return MerrillTransactionRow(
        line_number=raw.line_number,
        first_value=raw.first_value(),
        trade_date=field_value(raw, columns, "trade_date"),
        description=field_value(raw, columns, "description"),
        symbol_cusip=field_value(raw, columns, "symbol"),
        quantity=field_value(raw, columns, "quantity"),
        price=field_value(raw, columns, "price"),
        amount=field_value(raw, columns, "amount"),
    )


def is_summary(row: MerrillTransactionRow) -> bool:
    first = row.first_value.lower()
    return any(marker in first for marker in SUMMARY_MARKERS)


def validate_row(
    raw: RawRow, columns: ColumnMap | None = None
) -> RowResult[NormalizedTransaction]:
    row = parse_row(raw, columns)
    line = row.line_number
    if is_summary(row):
        return RowResult.skipped(line, "Summary row")
    if not (row.trade_date or row.description or row.symbol_cusip):
        return RowResult.skipped(line, "Empty row")

    kind = infer_transaction_type(row.description, MERRILL_DESCRIPTION_RULES)
    if kind is None:
        # Journal entries, fee adjustments and similar activity are not imported.
        return RowResult.skipped(
            line, "Unrecognized transaction type", field="Description", value=row.description
        )

    errors: list[ValidationError] = []
    transaction_date = parse_slash_date(row.trade_date)
    if transaction_date is None:
        errors.append(
            ValidationError(
                row=line,
                field="Trade Date",
                value=row.trade_date,
                message="Invalid date format. Expected MM/DD/YYYY",
            )
        )

    symbol = extract_leading_symbol(row.symbol_cusip)
    is_trade = kind in SHARE_TRANSACTION_TYPES
    quantity: float | None = None
    price: float | None = None
    if is_trade:
        if not is_ticker(symbol):
            errors.append(
                ValidationError(
                    row=line,
                    field="Symbol",
                    value=row.symbol_cusip,
                    message="Invalid symbol. Must be 1-5 uppercase letters",
                )
            )
        quantity = positive_amount(row.quantity, row=line, field="Quantity", errors=errors)
        price = positive_amount(row.price, row=line, field="Price", errors=errors)

    if errors or transaction_date is None:
        return RowResult.failure(errors)

    amount = parse_amount(row.amount)
    if amount is not None:
        total_amount = abs(amount)
    elif quantity is not None and price is not None:
        total_amount = quantity * price
    else:
        total_amount = 0.0

    if is_trade:
        row_symbol: str | None = symbol
    elif kind == TransactionType.DIVIDEND and is_ticker(symbol):
        row_symbol = symbol
    else:
        row_symbol = None

    return RowResult.success(
        NormalizedTransaction(
            symbol=row_symbol,
            transaction_type=kind,
            quantity=quantity,
            price_per_share=price,
            total_amount=total_amount,
            transaction_date=transaction_date,
            fees=0.0,
            notes=f"Imported from Merrill Lynch: {row.description[:NOTE_DESCRIPTION_LIMIT]}",
        )
    )


def map_rows(rows: Iterable[RawRow]) -> MappingResult[NormalizedTransaction]:
    rows = list(rows)
    if not rows:
        return MappingResult()
    columns = resolve_columns(rows[0].headers, MERRILL_TRANSACTIONS_TEMPLATE)
    mapped = collect_results([validate_row(raw, columns) for raw in rows])
    for error in mapped.errors:
        logger.debug("Merrill transaction row %s rejected: %s", error.row, error.message)
    return mapped
