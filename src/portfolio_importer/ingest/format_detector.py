from __future__ import annotations

import re

from portfolio_importer.ingest.csv_parser import split_lines
from portfolio_importer.ingest.records import CsvFormat, DetectedFormat

FORMAT_DISPLAY_NAMES = {
    CsvFormat.FIDELITY: "Fidelity Transactions",
    CsvFormat.MERRILL_TRANSACTIONS: "Merrill Lynch Transactions",
    CsvFormat.MERRILL_HOLDINGS: "Merrill Lynch Holdings",
    CsvFormat.TRADE_LOG: "Trade Log",
}

PORTFOLIO_FORMATS = frozenset(
    {CsvFormat.FIDELITY, CsvFormat.MERRILL_TRANSACTIONS, CsvFormat.MERRILL_HOLDINGS}
)
TRADE_FORMATS = frozenset({CsvFormat.TRADE_LOG, CsvFormat.MERRILL_TRANSACTIONS})
HOLDINGS_FORMATS = frozenset({CsvFormat.MERRILL_HOLDINGS})

# Merrill puts a metadata preamble above the header and two filler lines below it.
MERRILL_TRANSACTIONS_HEADER_INDEX = 5
MERRILL_TRANSACTIONS_DATA_INDEX = 8

FIDELITY_SCAN_LINES = 5


def _contains_all(line: str, *needles: str) -> bool:
    return all(needle in line for needle in needles)


def detect_format(text: str) -> DetectedFormat:
    lines = split_lines(text)
    first_line = lines[0] if lines else ""
    third_line = lines[2] if len(lines) > 2 else ""

    if _contains_all(third_line, "Run Date", "Action", "Symbol"):
        return DetectedFormat(CsvFormat.FIDELITY, 2, 3, 0.95)

    if "Exported on:" in first_line:
        return DetectedFormat(
            CsvFormat.MERRILL_TRANSACTIONS,
            MERRILL_TRANSACTIONS_HEADER_INDEX,
            MERRILL_TRANSACTIONS_DATA_INDEX,
            0.95,
        )

    if _contains_all(first_line, "COB Date", "Symbol", "Quantity"):
        return DetectedFormat(CsvFormat.MERRILL_HOLDINGS, 0, 1, 0.95)

    compact_first = re.sub(r"\s+", "", first_line.lower())
    if _contains_all(compact_first, "symbol", "side", "entryprice"):
        return DetectedFormat(CsvFormat.TRADE_LOG, 0, 1, 0.9)

    # Some Fidelity exports carry extra blank or title lines above the header.
    for index, line in enumerate(lines[:FIDELITY_SCAN_LINES]):
        if _contains_all(line, "Run Date", "Action"):
            return DetectedFormat(CsvFormat.FIDELITY, index, index + 1, 0.85)

    return DetectedFormat(CsvFormat.UNKNOWN, 0, 1, 0.0)


def format_display_name(fmt: CsvFormat) -> str:
    return FORMAT_DISPLAY_NAMES.get(fmt, "Unknown Format")


def is_portfolio_compatible(fmt: CsvFormat) -> bool:
    return fmt in PORTFOLIO_FORMATS


def is_trade_compatible(fmt: CsvFormat) -> bool:
    return fmt in TRADE_FORMATS


def is_holdings_compatible(fmt: CsvFormat) -> bool:
    return fmt in HOLDINGS_FORMATS
