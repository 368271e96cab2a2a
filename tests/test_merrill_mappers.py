from __future__ import annotations

from datetime import date
from math import isclose

from portfolio_importer.ingest import merrill_holdings, merrill_transactions
from portfolio_importer.ingest.format_detector import detect_format
from portfolio_importer.ingest.pipeline import data_rows
from portfolio_importer.ingest.records import RawRow, TransactionType

TX_HEADERS = ("Trade Date ", "Settlement Date ", "Description", "Type", "Symbol/ CUSIP ", "Quantity", "Price", "Amount", "")


def _tx_row(trade_date: str, description: str, symbol: str, quantity: str, price: str, amount: str) -> RawRow:
    return RawRow(
        headers=TX_HEADERS,
        values=(trade_date, "", description, "Trade", symbol, quantity, price, amount, ""),
        line_number=12,
    )


def test_merrill_transactions_fixture(merrill_transactions_export):
    rows = data_rows(merrill_transactions_export, detect_format(merrill_transactions_export))

    mapped = merrill_transactions.map_rows(rows)

    assert mapped.errors == []
    assert [tx.transaction_type for tx in mapped.values] == [
        TransactionType.BUY,
        TransactionType.SELL,
        TransactionType.DIVIDEND,
        TransactionType.DEPOSIT,
    ]
    buy, sell, dividend, deposit = mapped.values
    assert buy.symbol == "VOO"
    assert isclose(buy.total_amount, 4302.5)
    assert isclose(buy.price_per_share, 430.25)
    assert buy.fees == 0
    assert buy.transaction_date == date(2024, 1, 10)
    assert buy.notes == "Imported from Merrill Lynch: Purchase VANGUARD S&P 500 ETF"

    assert sell.symbol == "AAPL"
    assert isclose(sell.quantity, 5)
    assert dividend.symbol == "VOO"
    assert deposit.symbol is None
    assert isclose(deposit.total_amount, 5000.0)


def test_merrill_unrecognized_description_and_summary_rows_are_skipped():
    journal = merrill_transactions.validate_row(
        _tx_row("03/10/2024", "Journal Entry", "", "", "", "$1.00")
    )
    summary = merrill_transactions.validate_row(
        _tx_row("Total activity from 01/01/2024", "", "", "", "", "$10.00")
    )
    empty = merrill_transactions.validate_row(_tx_row("", "", "", "", "", ""))

    assert journal.is_skip
    assert summary.is_skip
    assert empty.is_skip


def test_merrill_symbol_comes_from_leading_letters_of_symbol_cusip():
    result = merrill_transactions.validate_row(
        _tx_row("02/14/2024", "Sale", "AAPL 037833100", "-5", "$185.00", "$925.00")
    )

    assert result.value.symbol == "AAPL"


def test_merrill_long_leading_letters_are_not_truncated_into_a_ticker():
    result = merrill_transactions.validate_row(
        _tx_row("02/14/2024", "Purchase", "ABCDEFG 123", "1", "$1.00", "-$1.00")
    )

    assert [error.field for error in result.errors] == ["Symbol"]


def test_merrill_parenthesized_amount_and_zero_price():
    ok = merrill_transactions.validate_row(
        _tx_row("01/10/2024", "Purchase", "VOO", "10", "$430.25", "($4,302.50)")
    )
    zero_price = merrill_transactions.validate_row(
        _tx_row("01/10/2024", "Purchase", "VOO", "10", "$0.00", "($4,302.50)")
    )

    assert isclose(ok.value.total_amount, 4302.5)
    assert [error.field for error in zero_price.errors] == ["Price"]


def test_merrill_holdings_fixture(merrill_holdings_export):
    rows = data_rows(merrill_holdings_export, detect_format(merrill_holdings_export))

    mapped = merrill_holdings.map_rows(rows)

    assert [tx.symbol for tx in mapped.values] == ["AAPL", "VOO"]
    aapl = mapped.values[0]
    assert aapl.transaction_type == TransactionType.BUY
    assert aapl.transaction_date == date(2026, 2, 1)
    assert isclose(aapl.total_amount, 9500.0)
    assert aapl.notes == "Imported from Merrill Lynch Holdings snapshot (COB: 02/01/2026)"

    assert {error.field for error in mapped.errors} == {"Symbol", "Quantity", "Price ($)"}
    assert all(error.field != "Symbol" or error.value == "" for error in mapped.errors)


def test_merrill_holdings_total_falls_back_to_price_times_quantity():
    headers = ("COB Date", "Symbol", "Quantity", "Price ($)", "Value ($)")
    raw = RawRow(headers=headers, values=("2/01/2026", "IBM", "3", "$150.00", "--"), line_number=2)

    result = merrill_holdings.validate_row(raw)

    assert isclose(result.value.total_amount, 450.0)


def test_merrill_holdings_money_market_rows_are_skipped():
    headers = ("COB Date", "Symbol", "Quantity", "Price ($)", "Value ($)")
    for symbol in ("TSTXX", "SPAXX", "CORE", "FDRXX", "ABXX"):
        raw = RawRow(headers=headers, values=("02/01/2026", symbol, "100", "$1.00", "$100.00"), line_number=2)
        assert merrill_holdings.validate_row(raw).is_skip, symbol


def test_merrill_holdings_as_parsed_holdings(merrill_holdings_export):
    rows = data_rows(merrill_holdings_export, detect_format(merrill_holdings_export))

    mapped = merrill_holdings.map_holdings(rows)

    voo = mapped.values[1]
    assert voo.symbol == "VOO"
    assert isclose(voo.average_cost_basis, 460.0)
    assert isclose(voo.total_value, 9000.0)
    assert voo.as_of_date == date(2026, 2, 1)


def test_merrill_two_digit_year_is_an_error():
    result = merrill_transactions.validate_row(
        _tx_row("01/10/24", "Purchase", "VOO", "10", "$430.25", "($4,302.50)")
    )

    assert not result.ok
    assert [error.field for error in result.errors] == ["Trade Date"]


def test_merrill_non_finite_quantity_and_price_are_errors():
    transaction = merrill_transactions.validate_row(
        _tx_row("01/10/2024", "Purchase", "VOO", "nan", "Infinity", "($4,302.50)")
    )
    holding = merrill_holdings.validate_row(
        RawRow(
            headers=("COB Date", "Symbol", "Quantity", "Price ($)", "Value ($)"),
            values=("02/01/2026", "IBM", "3", "inf", "$450.00"),
            line_number=2,
        )
    )

    assert {error.field for error in transaction.errors} == {"Quantity", "Price"}
    assert [error.field for error in holding.errors] == ["Price ($)"]
