"""Hand-written transactions appended to an imported history.

The overlay is a JSON array of objects using the export field names::

    [{"symbol": "AAPL", "transactionType": "BUY", "quantity": 10,
      "pricePerShare": 150.0, "totalAmount": 1500.0,
      "transactionDate": "2024-01-15", "fees": 0, "notes": "..."}]
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

from portfolio_importer.ingest.records import NormalizedTransaction, TransactionType
from portfolio_importer.utils.dates import parse_date
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_NOTE = "Manual transaction"


def _optional_float(entry: dict[str, Any], key: str) -> float | None:
    value = entry.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a number") from exc
    if not math.isfinite(number):
        raise ValueError(f"{key} must be a finite number")
    return number


def transaction_from_entry(entry: Any) -> NormalizedTransaction:
    if not isinstance(entry, dict):
        raise ValueError("entry must be an object")

    raw_type = str(entry.get("transactionType") or "").strip().upper()
    try:
        kind = TransactionType(raw_type)
    except ValueError as exc:
        raise ValueError(f"unknown transactionType: {raw_type or '<missing>'}") from exc

    raw_date = entry.get("transactionDate")
    if not raw_date:
        raise ValueError("transactionDate is required")

    quantity = _optional_float(entry, "quantity")
    price = _optional_float(entry, "pricePerShare")
    total_amount = _optional_float(entry, "totalAmount")
    if total_amount is None:
        if quantity is None or price is None:
            raise ValueError("totalAmount is required")
        total_amount = quantity * price

    symbol = str(entry.get("symbol") or "").strip().upper() or None
    return NormalizedTransaction(
        symbol=symbol,
        transaction_type=kind,
        quantity=quantity,
        price_per_share=price,
        total_amount=abs(total_amount),
        transaction_date=parse_date(raw_date),
        fees=_optional_float(entry, "fees") or 0.0,
        notes=str(entry.get("notes") or DEFAULT_NOTE),
    )


def parse_manual_transactions(text: str) -> list[NormalizedTransaction]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Could not parse manual transactions file, skipping: %s", exc)
        return []
    if not isinstance(payload, list):
        logger.warning("Manual transactions file must contain a JSON array, skipping")
        return []

    transactions: list[NormalizedTransaction] = []
    for index, entry in enumerate(payload):
        try:
            transactions.append(transaction_from_entry(entry))
        except ValueError as exc:
            logger.warning("Skipping manual transaction %s: %s", index, exc)
    return transactions


def load_manual_transactions(path: Path) -> list[NormalizedTransaction]:
    transactions = parse_manual_transactions(path.read_text(encoding="utf-8-sig"))
    logger.info("Loaded %s manual transactions from %s", len(transactions), path)
    return transactions
