"""Build a HoldingsSnapshot from either supported holdings layout.

Two layouts are understood:

* the Merrill Lynch holdings export (``COB Date,Symbol,Quantity,...``), and
* the brokerage positions page, which has a free-form preamble with the
  account total on its eighth line, position rows from the twelfth line and
  ``Money accounts`` / ``Cash balance`` rows that hold cash.
"""

from __future__ import annotations

import re

from portfolio_importer.analytics.reconciliation import Holding, HoldingsSnapshot
from portfolio_importer.ingest.csv_mapping import MERRILL_HOLDINGS_TEMPLATE, resolve_columns
from portfolio_importer.ingest.csv_parser import parse_csv, parse_csv_line, split_lines
from portfolio_importer.ingest.format_detector import detect_format
from portfolio_importer.ingest.merrill_holdings import parse_row, validate_holding_row
from portfolio_importer.ingest.records import CsvFormat
from portfolio_importer.ingest.validators import is_money_market_symbol, parse_amount
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)

TOTAL_VALUE_LINE = 7
FIRST_POSITION_LINE = 11
TOTAL_VALUE_RE = re.compile(r"\$([0-9,]+\.\d+)")
GAIN_AMOUNT_RE = re.compile(r"([+-]?\$?[0-9,]+\.?\d*)")
GAIN_PERCENT_RE = re.compile(r"([+-]?\d+\.?\d*)%")

IGNORED_LABELS = frozenset({"Balances", "Pending activity", "Total"})
CASH_LABELS = frozenset({"Money accounts", "Cash balance"})

SYMBOL_COL = 0
DESCRIPTION_COL = 1
QUANTITY_COL = 2
COST_BASIS_COL = 4
PRICE_COL = 5
VALUE_COL = 6
GAIN_COL = 8


def _field(fields: list[str], index: int) -> str:
    return fields[index].strip() if index < len(fields) else ""


def _number(fields: list[str], index: int) -> float:
    return parse_amount(_field(fields, index)) or 0.0


def parse_gain_text(text: str) -> tuple[float, float]:
    """Split ``+$1,234.56 +12.34%`` into amount and percent."""
    amount = 0.0
    amount_match = GAIN_AMOUNT_RE.search(text)
    if amount_match:
        amount = parse_amount(amount_match.group(1).replace("+", "")) or 0.0
    percent = 0.0
    percent_match = GAIN_PERCENT_RE.search(text)
    if percent_match:
        percent = float(percent_match.group(1))
    return amount, percent


def parse_positions_page(text: str) -> HoldingsSnapshot:
    lines = split_lines(text)

    total_value = 0.0
    if len(lines) > TOTAL_VALUE_LINE:
        match = TOTAL_VALUE_RE.search(lines[TOTAL_VALUE_LINE])
        if match:
            total_value = float(match.group(1).replace(",", ""))

    holdings: list[Holding] = []
    cash_balance = 0.0
    for line in lines[FIRST_POSITION_LINE:]:
        if not line.strip():
            continue
        fields = parse_csv_line(line)
        symbol = _field(fields, SYMBOL_COL)
        if not symbol or symbol in IGNORED_LABELS:
            continue
        if symbol in CASH_LABELS:
            cash_balance += _number(fields, VALUE_COL)
            continue

        quantity = _number(fields, QUANTITY_COL)
        if quantity <= 0:
            continue
        gain, gain_percent = parse_gain_text(_field(fields, GAIN_COL))
        holdings.append(
            Holding(
                symbol=symbol,
                description=_field(fields, DESCRIPTION_COL),
                quantity=quantity,
                cost_basis=_number(fields, COST_BASIS_COL),
                current_price=_number(fields, PRICE_COL),
                market_value=_number(fields, VALUE_COL),
                unrealized_gain_loss=gain,
                unrealized_gain_loss_percent=gain_percent,
            )
        )

    return HoldingsSnapshot(
        holdings=tuple(holdings), cash_balance=cash_balance, total_value=total_value
    )


def parse_merrill_holdings(text: str, header_row_index: int = 0) -> HoldingsSnapshot:
    parsed = parse_csv(text, skip_rows=header_row_index)
    columns = resolve_columns(parsed.headers, MERRILL_HOLDINGS_TEMPLATE)

    holdings: list[Holding] = []
    cash_balance = 0.0
    for raw in parsed.rows:
        row = parse_row(raw, columns)
        if row.symbol and is_money_market_symbol(row.symbol):
            cash_balance += parse_amount(row.value) or 0.0
            continue
        checked = validate_holding_row(row)
        valid = checked.value
        if valid is None:
            for error in checked.errors:
                if not error.skip:
                    logger.debug("Holdings row %s ignored: %s", error.row, error.message)
            continue
        market_value = valid.total_amount
        holdings.append(
            Holding(
                symbol=valid.symbol,
                description=row.description,
                quantity=valid.quantity,
                cost_basis=valid.cost_basis_per_share,
                current_price=valid.price,
                market_value=market_value,
                unrealized_gain_loss=parse_amount(row.unrealized_gain) or 0.0,
                unrealized_gain_loss_percent=parse_amount(row.unrealized_gain_percent.rstrip("%")) or 0.0,
            )
        )

    total_value = sum(holding.market_value for holding in holdings) + cash_balance
    return HoldingsSnapshot(
        holdings=tuple(holdings), cash_balance=cash_balance, total_value=total_value
    )


def load_holdings_snapshot(text: str) -> HoldingsSnapshot:
    detected = detect_format(text)
    if detected.format == CsvFormat.MERRILL_HOLDINGS:
        snapshot = parse_merrill_holdings(text, detected.header_row_index)
    else:
        snapshot = parse_positions_page(text)
    logger.info(
        "Loaded %s holdings (cash %.2f, total value %.2f)",
        len(snapshot.holdings),
        snapshot.cash_balance,
        snapshot.total_value,
    )
    return snapshot
