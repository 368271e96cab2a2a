from __future__ import annotations

import json
import logging
from datetime import date
from math import isclose

import pytest

from portfolio_importer.ingest.manual_overlay import (
    load_manual_transactions,
    parse_manual_transactions,
    transaction_from_entry,
)
from portfolio_importer.ingest.records import NormalizedTransaction, TransactionType


def test_parses_buy_and_cash_entries():
    text = json.dumps(
        [
            {
                "symbol": "aapl",
                "transactionType": "BUY",
                "quantity": 5,
                "pricePerShare": 100,
                "totalAmount": 500,
                "transactionDate": "2023-12-01T00:00:00.000Z",
                "fees": 1,
                "notes": "Transferred in from old account",
            },
            {"transactionType": "DEPOSIT", "totalAmount": 250.5, "transactionDate": "2024-01-02"},
        ]
    )

    transactions = parse_manual_transactions(text)

    assert len(transactions) == 2
    buy, deposit = transactions
    assert buy.symbol == "AAPL"
    assert buy.transaction_date == date(2023, 12, 1)
    assert isclose(buy.fees, 1.0)
    assert buy.notes == "Transferred in from old account"
    assert deposit.symbol is None
    assert deposit.transaction_type == TransactionType.DEPOSIT
    assert deposit.notes == "Manual transaction"


def test_malformed_json_skips_overlay_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        assert parse_manual_transactions("[{not json") == []

    assert "Could not parse manual transactions" in caplog.text


def test_invalid_entries_are_skipped_individually(caplog):
    text = json.dumps(
        [
            {"symbol": "MSFT", "transactionType": "BUY", "totalAmount": 10, "transactionDate": "2024-01-01"},
            {"symbol": "MSFT", "transactionType": "HOLD", "totalAmount": 10, "transactionDate": "2024-01-01"},
            "not an object",
            {
                "symbol": "MSFT",
                "transactionType": "SELL",
                "quantity": 1,
                "pricePerShare": 10,
                "transactionDate": "2024-01-03",
            },
        ]
    )

    with caplog.at_level(logging.WARNING):
        transactions = parse_manual_transactions(text)

    assert len(transactions) == 1
    assert transactions[0].transaction_type == TransactionType.SELL
    assert isclose(transactions[0].total_amount, 10.0)
    assert caplog.text.count("Skipping manual transaction") == 3


def test_non_array_payload_is_ignored():
    assert parse_manual_transactions('{"symbol": "AAPL"}') == []


def test_load_manual_transactions_from_file(tmp_path):
    path = tmp_path / "manual.json"
    path.write_text(
        json.dumps([{"transactionType": "WITHDRAW", "totalAmount": 75, "transactionDate": "01/05/2024"}]),
        encoding="utf-8",
    )

    transactions = load_manual_transactions(path)

    assert transactions[0].transaction_type == TransactionType.WITHDRAW
    assert transactions[0].transaction_date == date(2024, 1, 5)


def test_share_fields_must_match_kind():
    with pytest.raises(ValueError):
        transaction_from_entry(
            {"transactionType": "DEPOSIT", "quantity": 1, "pricePerShare": 1, "transactionDate": "2024-01-01"}
        )
    with pytest.raises(ValueError):
        NormalizedTransaction(
            symbol="AAPL",
            transaction_type=TransactionType.BUY,
            quantity=1.0,
            price_per_share=None,
            total_amount=1.0,
            transaction_date=date(2024, 1, 1),
        )


def test_non_finite_numbers_are_rejected(caplog):
    text = (
        '[{"symbol": "AAPL", "transactionType": "BUY", "quantity": NaN, "pricePerShare": 10,'
        ' "totalAmount": 10, "transactionDate": "2024-01-01"},'
        ' {"transactionType": "DEPOSIT", "totalAmount": Infinity, "transactionDate": "2024-01-01"}]'
    )

    with caplog.at_level(logging.WARNING):
        assert parse_manual_transactions(text) == []

    assert caplog.text.count("Skipping manual transaction") == 2
