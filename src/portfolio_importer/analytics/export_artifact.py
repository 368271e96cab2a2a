"""JSON artifact handed to the downstream portfolio import step."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from uuid import uuid4

from portfolio_importer.analytics.reconciliation import (
    Holding,
    HoldingsSnapshot,
    InitialHolding,
    ReconciliationResult,
)
from portfolio_importer.ingest.records import NormalizedTransaction
from portfolio_importer.utils.dates import to_iso_date


def transaction_payload(tx: NormalizedTransaction) -> dict[str, Any]:
    return {
        "symbol": tx.symbol,
        "transactionType": tx.transaction_type.value,
        "quantity": tx.quantity,
        "pricePerShare": tx.price_per_share,
        "totalAmount": tx.total_amount,
        "fees": tx.fees,
        "transactionDate": to_iso_date(tx.transaction_date),
        "notes": tx.notes,
    }


def initial_holding_payload(item: InitialHolding) -> dict[str, Any]:
    return {
        "symbol": item.symbol,
        "quantity": item.quantity,
        "estimatedCostBasis": item.estimated_cost_basis,
    }


def holding_payload(holding: Holding) -> dict[str, Any]:
    return {
        "symbol": holding.symbol,
        "description": holding.description,
        "quantity": holding.quantity,
        "costBasis": holding.cost_basis,
        "currentPrice": holding.current_price,
        "marketValue": holding.market_value,
        "unrealizedGainLoss": holding.unrealized_gain_loss,
        "unrealizedGainLossPercent": holding.unrealized_gain_loss_percent,
    }


def build_export_payload(
    transactions: Iterable[NormalizedTransaction],
    snapshot: HoldingsSnapshot,
    result: ReconciliationResult,
) -> dict[str, Any]:
    summary = result.summary
    return {
        "transactions": [transaction_payload(tx) for tx in transactions],
        "initialHoldings": [initial_holding_payload(item) for item in result.initial_holdings],
        "currentHoldings": [holding_payload(holding) for holding in snapshot.holdings],
        "summary": {
            "totalValue": snapshot.total_value,
            "cashBalance": snapshot.cash_balance,
            "netDeposits": summary.net_deposits,
            "totalReturn": summary.total_return,
            "totalReturnPercent": summary.total_return_percent,
        },
    }


def write_export(path: Path, payload: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.parent / f".{path.name}.{uuid4().hex}.tmp"
    temp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    temp_path.replace(path)
    return path
