from __future__ import annotations

import pytest

from portfolio_importer.ingest.format_detector import (
    detect_format,
    format_display_name,
    is_holdings_compatible,
    is_portfolio_compatible,
    is_trade_compatible,
)
from portfolio_importer.ingest.records import CsvFormat


def test_detects_each_fixture_layout(
    fidelity_export, merrill_transactions_export, merrill_holdings_export, trade_log_export
):
    fidelity = detect_format(fidelity_export)
    assert (fidelity.format, fidelity.header_row_index, fidelity.data_start_index) == (
        CsvFormat.FIDELITY,
        2,
        3,
    )
    assert fidelity.confidence == pytest.approx(0.95)

    merrill = detect_format(merrill_transactions_export)
    assert (merrill.format, merrill.header_row_index, merrill.data_start_index) == (
        CsvFormat.MERRILL_TRANSACTIONS,
        5,
        8,
    )

    holdings = detect_format(merrill_holdings_export)
    assert (holdings.format, holdings.header_row_index, holdings.data_start_index) == (
        CsvFormat.MERRILL_HOLDINGS,
        0,
        1,
    )

    trades = detect_format(trade_log_export)
    assert trades.format == CsvFormat.TRADE_LOG
    assert trades.confidence == pytest.approx(0.9)

    for detected in (fidelity, merrill, holdings, trades):
        assert detected.confidence >= 0.85


def test_trade_log_header_match_ignores_case_and_spacing():
    detected = detect_format("symbol , SIDE, Entry Price ,qty\nAAPL,LONG,1,1")

    assert detected.format == CsvFormat.TRADE_LOG


def test_fidelity_header_found_in_first_five_lines_with_lower_confidence():
    text = "Account history\nRun Date,Action,Price ($)\n01/02/2024,YOU BOUGHT,1"

    detected = detect_format(text)

    assert detected.format == CsvFormat.FIDELITY
    assert detected.header_row_index == 1
    assert detected.data_start_index == 2
    assert detected.confidence == pytest.approx(0.85)


def test_fidelity_header_past_fifth_line_is_unknown():
    text = "\n" * 5 + "Run Date,Action,Symbol\n"

    assert detect_format(text).format == CsvFormat.UNKNOWN


@pytest.mark.parametrize("text", ["", "just,some,columns\n1,2,3", "Positions\nAccount total"])
def test_unrecognized_text_is_unknown_with_zero_confidence(text):
    detected = detect_format(text)

    assert detected.format == CsvFormat.UNKNOWN
    assert detected.header_row_index == 0
    assert detected.data_start_index == 1
    assert detected.confidence == 0


def test_format_metadata():
    assert format_display_name(CsvFormat.MERRILL_HOLDINGS) == "Merrill Lynch Holdings"
    assert format_display_name(CsvFormat.UNKNOWN) == "Unknown Format"

    assert is_portfolio_compatible(CsvFormat.FIDELITY)
    assert not is_portfolio_compatible(CsvFormat.TRADE_LOG)
    assert is_trade_compatible(CsvFormat.MERRILL_TRANSACTIONS)
    assert not is_trade_compatible(CsvFormat.FIDELITY)
    assert is_holdings_compatible(CsvFormat.MERRILL_HOLDINGS)
    assert not is_holdings_compatible(CsvFormat.UNKNOWN)
