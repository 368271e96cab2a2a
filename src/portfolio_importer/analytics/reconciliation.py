"""Reconcile transaction history against a current holdings snapshot.

Broker transaction exports only cover a window of time. Anything held before
the window shows up as a gap between the shares the history explains and the
shares actually held; this module infers those pre-history positions, the
cash balance at the start of the window and the return over it.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from portfolio_importer.analytics.cash_flow import CashFlowTotals, compute_cash_flow
from portfolio_importer.ingest.records import NormalizedTransaction, TransactionType
from portfolio_importer.utils.logging import get_logger

logger = get_logger(__name__)

EPSILON = 0.01


@dataclass(frozen=True)
class Holding:
    symbol: str
    description: str
    quantity: float
    cost_basis: float
    current_price: float
    market_value: float
    unrealized_gain_loss: float = 0.0
    unrealized_gain_loss_percent: float = 0.0


@dataclass(frozen=True)
class HoldingsSnapshot:
    holdings: tuple[Holding, ...] = ()
    cash_balance: float = 0.0
    total_value: float = 0.0


@dataclass(frozen=True)
class InitialHolding:
    symbol: str
    quantity: float
    estimated_cost_basis: float


class ReconciliationStatus(str, Enum):
    MATCHED = "matched"
    NEEDS_INITIAL = "needs_initial"
    FULLY_SOLD = "fully_sold"
    DISCREPANCY = "discrepancy"


@dataclass(frozen=True)
class SymbolReconciliation:
    symbol: str
    current_quantity: float
    net_transacted: float
    initial_quantity: float
    status: ReconciliationStatus


@dataclass(frozen=True)
class ReconciliationSummary:
    matched: int
    needs_initial: int
    discrepancies: int
    cash_flow: CashFlowTotals
    current_cash: float
    implied_initial_cash: float
    initial_holdings_value: float
    total_initial_value: float
    total_invested: float
    total_value: float
    total_return: float
    total_return_percent: float

    @property
    def net_deposits(self) -> float:
        return self.cash_flow.net_deposits


@dataclass(frozen=True)
class ReconciliationResult:
    summary: ReconciliationSummary
    initial_holdings: list[InitialHolding] = field(default_factory=list)
    lines: list[SymbolReconciliation] = field(default_factory=list)


def net_shares_by_symbol(transactions: Iterable[NormalizedTransaction]) -> dict[str, float]:
    net: dict[str, float] = defaultdict(float)
    for tx in transactions:
        if not tx.symbol or not tx.quantity:
            continue
        if tx.transaction_type == TransactionType.BUY:
            net[tx.symbol] += tx.quantity
        elif tx.transaction_type == TransactionType.SELL:
            net[tx.symbol] -= tx.quantity
    return dict(net)


def buy_cost_by_symbol(transactions: Iterable[NormalizedTransaction]) -> dict[str, float]:
    """Total spent on purchases per symbol.

    Sale proceeds are not netted out, so cost estimates derived from this are
    an upper bound on what history explains.
    """
    cost: dict[str, float] = defaultdict(float)
    for tx in transactions:
        if tx.symbol and tx.quantity and tx.transaction_type == TransactionType.BUY:
            cost[tx.symbol] += tx.total_amount
    return dict(cost)


def reconcile(
    transactions: Iterable[NormalizedTransaction], snapshot: HoldingsSnapshot
) -> ReconciliationResult:
    transactions = list(transactions)
    net_shares = net_shares_by_symbol(transactions)
    buy_cost = buy_cost_by_symbol(transactions)

    lines: list[SymbolReconciliation] = []
    initial_holdings: list[InitialHolding] = []
    matched = needs_initial = discrepancies = 0

    for holding in snapshot.holdings:
        net = net_shares.get(holding.symbol, 0.0)
        initial_quantity = holding.quantity - net
        if abs(initial_quantity) < EPSILON:
            status = ReconciliationStatus.MATCHED
            matched += 1
        elif initial_quantity > 0:
            status = ReconciliationStatus.NEEDS_INITIAL
            needs_initial += 1
            remaining_cost = max(0.0, holding.quantity * holding.cost_basis - buy_cost.get(holding.symbol, 0.0))
            initial_holdings.append(
                InitialHolding(
                    symbol=holding.symbol,
                    quantity=initial_quantity,
                    estimated_cost_basis=remaining_cost / initial_quantity,
                )
            )
        else:
            status = ReconciliationStatus.DISCREPANCY
            discrepancies += 1
            logger.warning(
                "History explains more %s shares than are held: held %.4f, net transacted %.4f",
                holding.symbol,
                holding.quantity,
                net,
            )
        lines.append(
            SymbolReconciliation(
                symbol=holding.symbol,
                current_quantity=holding.quantity,
                net_transacted=net,
                initial_quantity=initial_quantity,
                status=status,
            )
        )

    held = {holding.symbol for holding in snapshot.holdings}
    for symbol, net in net_shares.items():
        if symbol in held or net == 0:
            continue
        if net < 0:
            # Sold out of a position opened before the history starts.
            status = ReconciliationStatus.FULLY_SOLD
            needs_initial += 1
            initial_holdings.append(
                InitialHolding(symbol=symbol, quantity=-net, estimated_cost_basis=0.0)
            )
        else:
            status = ReconciliationStatus.DISCREPANCY
            discrepancies += 1
            logger.warning(
                "%s has net purchases of %.4f shares but is not in the holdings snapshot",
                symbol,
                net,
            )
        lines.append(
            SymbolReconciliation(
                symbol=symbol,
                current_quantity=0.0,
                net_transacted=net,
                initial_quantity=-net,
                status=status,
            )
        )

    cash_flow = compute_cash_flow(transactions)
    implied_initial_cash = snapshot.cash_balance - cash_flow.net_cash_flow
    initial_holdings_value = sum(
        item.quantity * item.estimated_cost_basis for item in initial_holdings
    )
    total_initial_value = initial_holdings_value + implied_initial_cash
    total_invested = total_initial_value + cash_flow.net_deposits
    total_return = snapshot.total_value - total_invested
    total_return_percent = total_return / total_invested * 100 if total_invested > 0 else 0.0

    summary = ReconciliationSummary(
        matched=matched,
        needs_initial=needs_initial,
        discrepancies=discrepancies,
        cash_flow=cash_flow,
        current_cash=snapshot.cash_balance,
        implied_initial_cash=implied_initial_cash,
        initial_holdings_value=initial_holdings_value,
        total_initial_value=total_initial_value,
        total_invested=total_invested,
        total_value=snapshot.total_value,
        total_return=total_return,
        total_return_percent=total_return_percent,
    )
    return ReconciliationResult(summary=summary, initial_holdings=initial_holdings, lines=lines)


def reconciliation_frame(result: ReconciliationResult) -> pd.DataFrame:
    columns = ["symbol", "current_qty", "tx_net", "initial_qty", "status"]
    records = [
        {
            "symbol": line.symbol,
            "current_qty": round(line.current_quantity, 2),
            "tx_net": round(line.net_transacted, 2),
            "initial_qty": round(line.initial_quantity, 2),
            "status": line.status.value,
        }
        for line in result.lines
    ]
    return pd.DataFrame(records, columns=columns)
