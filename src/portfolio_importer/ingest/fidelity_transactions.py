"""Fidelity consolidated transaction export.

The export carries two title lines above the header
(``Run Date,Action,Symbol,Description,Type,Price ($),Quantity,...``) and a
block of legal disclaimer text after the data.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from portfolio_importer.ingest.csv_mapping import (
    FIDELITY_TEMPLATE,
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
    FIDELITY_ACTION_RULES,
    infer_transaction_type,
    is_ticker,
    normalize_symbol,
    parse_amount,
    parse_slash_date,
    positive_amount,
)
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)

DISCLAIMER_MARKERS = ("The data and information", "Brokerage services", "Fidelity Brokerage")


@dataclass(frozen=True)
class FidelityRow:
    line_number: int
    first_value: str
    run_date: str
    action: str
    symbol: str
    price: str
    quantity: str
    commission: str
    fees: str
    amount: str
    blank: bool


def parse_row(raw: RawRow, columns: ColumnMap | None = None) -> FidelityRow:
    if columns is None:
        columns = resolve_columns(raw.headers, FIDELITY_TEMPLATE)
    return FidelityRow(
        line_number=raw.line_number,
        first_value=raw.first_value(),
        run_date=field_value(raw, columns, "run_date"),
        action=field_value(raw, columns, "action"),
        symbol=field_value(raw, columns, "symbol"),
        price=field_value(raw, columns, "price"),
        quantity=field_value(raw, columns, "quantity"),
        commission=field_value(raw, columns, "commission"),
        fees=field_value(raw, columns, "fees"),
        amount=field_value(raw, columns, "amount"),
        blank=raw.is_blank(),
    )


def is_disclaimer(row: FidelityRow) -> bool:
    return any(marker in row.first_value for marker in DISCLAIMER_MARKERS)


def validate_row(
    raw: RawRow, columns: ColumnMap | None = None
) -> RowResult[NormalizedTransaction]:
    row = parse_row(raw, columns)
    line = row.line_number
    if row.blank:
        return RowResult.skipped(line, "Empty row")
    if is_disclaimer(row):
        return RowResult.skipped(line, "Disclaimer row")

    kind = infer_transaction_type(row.action, FIDELITY_ACTION_RULES)
    if kind is None:
        return RowResult.failure(
            [
                ValidationError(
                    row=line,
                    field="Action",
                    value=row.action,
                    message=f"Unrecognized action type: {row.action}",
                )
            ]
        )

    errors: list[ValidationError] = []
    transaction_date = parse_slash_date(row.run_date)
    if transaction_date is None:
        errors.append(
            ValidationError(
                row=line,
                field="Run Date",
                value=row.run_date,
                message="Invalid date format. Expected MM/DD/YYYY",
            )
        )

    symbol = normalize_symbol(row.symbol)
    is_trade = kind in SHARE_TRANSACTION_TYPES
    quantity: float | None = None
    price: float | None = None
    if is_trade:
        if not is_ticker(symbol):
            errors.append(
                ValidationError(
                    row=line,
                    field="Symbol",
                    value=row.symbol,
                    message="Invalid symbol. Must be 1-5 uppercase letters",
                )
            )
        quantity = positive_amount(row.quantity, row=line, field="Quantity", errors=errors)
        price = positive_amount(row.price, row=line, field="Price ($)", errors=errors)

    if errors or transaction_date is None:
        return RowResult.failure(errors)

    amount = parse_amount(row.amount)
    if amount is not None:
        total_amount = abs(amount)
    elif quantity is not None and price is not None:
        total_amount = quantity * price
    else:
        total_amount = 0.0

    fees = (parse_amount(row.commission) or 0.0) + (parse_amount(row.fees) or 0.0)

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
            fees=fees,
            notes=f"Imported from Fidelity: {row.action}",
        )
    )


def map_rows(rows: Iterable[RawRow]) -> MappingResult[NormalizedTransaction]:
    rows = list(rows)
    if not rows:
        return MappingResult()
    columns = resolve_columns(rows[0].headers, FIDELITY_TEMPLATE)
    results = [validate_row(raw, columns) for raw in rows]
    mapped = collect_results(results)
    for error in mapped.errors:
        logger.debug("Fidelity row %s rejected: %s", error.row, error.message)
    return mapped
