"""Detect, tokenize and map a brokerage export in one call."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from portfolio_importer.ingest import (
    fidelity_transactions,
    merrill_holdings,
    merrill_transactions,
    trade_log,
)
from portfolio_importer.ingest.csv_parser import parse_csv
from portfolio_importer.ingest.format_detector import (
    detect_format,
    format_display_name,
    is_holdings_compatible,
    is_portfolio_compatible,
    is_trade_compatible,
)
from portfolio_importer.ingest.records import (
    CsvFormat,
    DetectedFormat,
    NormalizedTransaction,
    ParsedHolding,
    ParsedTrade,
    RawRow,
    TradeSide,
    TradeStatus,
    TransactionType,
    ValidationError,
)
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)


class ImportTarget(str, Enum):
    PORTFOLIO = "portfolio"
    TRADES = "trades"
    HOLDINGS = "holdings"


TRANSACTION_MAPPERS = {
    CsvFormat.FIDELITY: fidelity_transactions.map_rows,
    CsvFormat.MERRILL_TRANSACTIONS: merrill_transactions.map_rows,
    CsvFormat.MERRILL_HOLDINGS: merrill_holdings.map_rows,
}

TARGET_COMPATIBILITY = {
    ImportTarget.PORTFOLIO: is_portfolio_compatible,
    ImportTarget.TRADES: is_trade_compatible,
    ImportTarget.HOLDINGS: is_holdings_compatible,
}


@dataclass
class ImportResult:
    detected: DetectedFormat
    target: ImportTarget
    rows: list[RawRow] = field(default_factory=list)
    transactions: list[NormalizedTransaction] = field(default_factory=list)
    trades: list[ParsedTrade] = field(default_factory=list)
    holdings: list[ParsedHolding] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    @property
    def format(self) -> CsvFormat:
        return self.detected.format

    @property
    def imported_count(self) -> int:
        return len(self.transactions) + len(self.trades) + len(self.holdings)


def data_rows(text: str, detected: DetectedFormat, max_rows: int | None = None, delimiter: str = ",") -> list[RawRow]:
    """Tokenize from the header line on and drop filler lines before the data block.

    ``max_rows`` counts data rows; filler lines between the header and the
    data block do not use up the cap.
    """
    fillers = max(0, detected.data_start_index - detected.header_row_index - 1)
    parsed = parse_csv(
        text,
        delimiter=delimiter,
        skip_rows=detected.header_row_index,
        header_row_index=0,
        max_rows=None if max_rows is None else max_rows + fillers,
    )
    return [row for row in parsed.rows if row.line_number > detected.data_start_index]


def trade_from_transaction(tx: NormalizedTransaction) -> ParsedTrade:
    return ParsedTrade(
        symbol=tx.symbol or "",
        side=TradeSide.LONG,
        status=TradeStatus.OPEN,
        entry_price=tx.price_per_share or 0.0,
        quantity=tx.quantity or 0.0,
        entry_date=tx.transaction_date,
        exit_price=None,
        exit_date=None,
        fees=tx.fees,
        realized_pnl=None,
        notes=tx.notes or None,
    )


def import_text(
    text: str,
    target: ImportTarget = ImportTarget.PORTFOLIO,
    max_rows: int | None = None,
    delimiter: str = ",",
) -> ImportResult:
    detected = detect_format(text)
    result = ImportResult(detected=detected, target=target)
    logger.info(
        "Detected %s (confidence %.2f, header line %s)",
        format_display_name(detected.format),
        detected.confidence,
        detected.header_row_index,
    )

    if detected.format == CsvFormat.UNKNOWN:
        result.issues.append("Unrecognized file layout; no rows imported.")
        return result
    if not TARGET_COMPATIBILITY[target](detected.format):
        result.issues.append(
            f"{format_display_name(detected.format)} files cannot be imported as {target.value}."
        )
        return result

    result.rows = data_rows(text, detected, max_rows=max_rows, delimiter=delimiter)

    if target == ImportTarget.PORTFOLIO:
        mapped = TRANSACTION_MAPPERS[detected.format](result.rows)
        result.transactions = mapped.values
        result.errors = mapped.errors
    elif target == ImportTarget.TRADES:
        if detected.format == CsvFormat.TRADE_LOG:
            trades = trade_log.map_rows(result.rows)
            result.trades = trades.values
            result.errors = trades.errors
        else:
            mapped = merrill_transactions.map_rows(result.rows)
            result.trades = [
                trade_from_transaction(tx)
                for tx in mapped.values
                if tx.transaction_type == TransactionType.BUY
            ]
            result.errors = mapped.errors
    else:
        holdings = merrill_holdings.map_holdings(result.rows)
        result.holdings = holdings.values
        result.errors = holdings.errors

    logger.info(
        "Mapped %s of %s rows as %s (%s errors)",
        result.imported_count,
        len(result.rows),
        target.value,
        len(result.errors),
    )
    return result


def import_file(
    path: Path,
    target: ImportTarget = ImportTarget.PORTFOLIO,
    max_rows: int | None = None,
    delimiter: str = ",",
) -> ImportResult:
    text = Path(path).read_text(encoding="utf-8-sig")
    return import_text(text, target=target, max_rows=max_rows, delimiter=delimiter)


def validated_rows(rows: list[RawRow], errors: list[ValidationError]) -> list[dict[str, Any]]:
    """Preview records: each row's cells plus its validation messages."""
    by_row: dict[int, list[str]] = defaultdict(list)
    for error in errors:
        label = f"{error.field}: {error.message}" if error.field else error.message
        by_row[error.row].append(label)

    preview: list[dict[str, Any]] = []
    for row in rows:
        messages = by_row.get(row.line_number, [])
        record: dict[str, Any] = {"line": row.line_number}
        record.update(row.as_dict())
        record["valid"] = not messages
        record["errors"] = "; ".join(messages)
        preview.append(record)
    return preview
