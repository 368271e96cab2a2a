"""Cash-flow totals from normalized transactions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import pandas as pd

from portfolio_importer.ingest.records import NormalizedTransaction, TransactionType


@dataclass(slots=True, frozen=True)
class CashFlowTotals:
    deposits: float = 0.0
    withdrawals: float = 0.0
    dividends: float = 0.0
    buys: float = 0.0
    sells: float = 0.0

    @property
    def net_deposits(self) -> float:
        return self.deposits - self.withdrawals

    @property
    def net_cash_flow(self) -> float:
        """Cash moved into the account: money in plus income plus proceeds, less purchases."""
        return self.deposits - self.withdrawals + self.dividends - self.buys + self.sells


def transactions_frame(transactions: Iterable[NormalizedTransaction]) -> pd.DataFrame:
    records = [
        {
            "symbol": tx.symbol,
            "transaction_type": tx.transaction_type.value,
            "quantity": tx.quantity,
            "price_per_share": tx.price_per_share,
            "total_amount": tx.total_amount,
            "fees": tx.fees,
            "transaction_date": tx.transaction_date,
        }
        for tx in transactions
    ]
    columns = [
        "symbol",
        "transaction_type",
        "quantity",
        "price_per_share",
        "total_amount",
        "fees",
        "transaction_date",
    ]
    return pd.DataFrame(records, columns=columns)


def compute_cash_flow(transactions: Iterable[NormalizedTransaction]) -> CashFlowTotals:
    frame = transactions_frame(transactions)
    if frame.empty:
        return CashFlowTotals()

    totals = frame.groupby("transaction_type")["total_amount"].sum()

    def total_for(kind: TransactionType) -> float:
        return float(totals.get(kind.value, 0.0))

    return CashFlowTotals(
        deposits=total_for(TransactionType.DEPOSIT),
        withdrawals=total_for(TransactionType.WITHDRAW),
        dividends=total_for(TransactionType.DIVIDEND),
        buys=total_for(TransactionType.BUY),
        sells=total_for(TransactionType.SELL),
    )
