"""Reconcile a transaction export against a holdings export and write the import artifact.

Usage: reconcile-portfolio TRANSACTIONS HOLDINGS [OUTPUT] [MANUAL]
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from portfolio_importer.analytics.export_artifact import build_export_payload, write_export
from portfolio_importer.analytics.reconciliation import (
    HoldingsSnapshot,
    ReconciliationResult,
    reconcile,
    reconciliation_frame,
)
from portfolio_importer.config.paths import env_file_path, resolve_user_path
from portfolio_importer.config.settings import get_settings
from portfolio_importer.ingest.holdings_snapshot import load_holdings_snapshot
from portfolio_importer.ingest.manual_overlay import parse_manual_transactions
from portfolio_importer.ingest.pipeline import import_text
from portfolio_importer.ingest.records import NormalizedTransaction
from portfolio_importer.utils.logging import configure_logging, get_logger
from portfolio_importer.utils.money import format_money, format_percent

logger = get_logger(__name__)

RULE = "-" * 65


class InputFileError(Exception):
    pass


def read_input(raw_path: str, description: str) -> str:
    path = resolve_user_path(raw_path)
    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise InputFileError(f"Error: {description} file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise InputFileError(f"Error reading {description} file {path}: {exc}") from exc


def build_parser(default_output: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reconcile-portfolio",
        description=(
            "Reconcile brokerage transaction history against current holdings, infer "
            "positions held before the history starts and export the result as JSON."
        ),
    )
    parser.add_argument("transactions", help="Transaction history export (CSV)")
    parser.add_argument("holdings", help="Current holdings export (CSV)")
    parser.add_argument(
        "output",
        nargs="?",
        default=default_output,
        help=f"Output JSON path (default: {default_output})",
    )
    parser.add_argument(
        "manual",
        nargs="?",
        default=None,
        help="Optional JSON array of manual transactions appended to the history",
    )
    return parser


def print_reconciliation(result: ReconciliationResult) -> None:
    summary = result.summary
    print("=== RECONCILIATION ===\n")
    frame = reconciliation_frame(result)
    if frame.empty:
        print("No holdings or traded symbols to reconcile.")
    else:
        print(frame.to_string(index=False))
    print(RULE)
    print(
        f"\nSummary: {summary.matched} matched, {summary.needs_initial} need initial holdings, "
        f"{summary.discrepancies} discrepancies\n"
    )


def print_cash_flow(result: ReconciliationResult) -> None:
    summary = result.summary
    flow = summary.cash_flow
    print("=== CASH FLOW ANALYSIS ===\n")
    print(f"Deposits:     +{format_money(flow.deposits)}")
    print(f"Withdrawals:  -{format_money(flow.withdrawals)}")
    print(f"Dividends:    +{format_money(flow.dividends)}")
    print(f"Buys:         -{format_money(flow.buys)}")
    print(f"Sells:        +{format_money(flow.sells)}")
    print(f"\nNet Cash Flow: {format_money(flow.net_cash_flow)}")
    print(f"Current Cash:  {format_money(summary.current_cash)}")
    print(f"Implied Initial Cash: {format_money(summary.implied_initial_cash)}\n")


def print_returns(result: ReconciliationResult) -> None:
    summary = result.summary
    print("=== ROI CALCULATION ===\n")
    print(f"Current Portfolio Value: {format_money(summary.total_value)}")
    print(f"Net Deposits (during period): {format_money(summary.net_deposits)}")
    print(f"Estimated Initial Holdings Value: {format_money(summary.initial_holdings_value)}")
    print(f"Implied Initial Cash: {format_money(summary.implied_initial_cash)}")
    print(f"\nTotal Initial Value: {format_money(summary.total_initial_value)}")
    print(f"Total Invested (Initial + Net Deposits): {format_money(summary.total_invested)}")
    print(
        f"Total Return: {format_money(summary.total_return)} "
        f"({format_percent(summary.total_return_percent)})\n"
    )


def run(
    transactions_path: str,
    holdings_path: str,
    output_path: str,
    manual_path: str | None = None,
) -> Path:
    settings = get_settings()
    print("\n=== PORTFOLIO RECONCILIATION ===\n")

    print(f"Parsing transactions from: {resolve_user_path(transactions_path)}")
    imported = import_text(
        read_input(transactions_path, "Transactions"), delimiter=settings.delimiter
    )
    for issue in imported.issues:
        print(f"Warning: {issue}", file=sys.stderr)
    for error in imported.errors:
        logger.warning("Row %s %s: %s (%r)", error.row, error.field, error.message, error.value)

    transactions: list[NormalizedTransaction] = list(imported.transactions)
    print(f"Parsed {len(transactions)} transactions from CSV")
    if manual_path:
        manual = parse_manual_transactions(read_input(manual_path, "Manual transactions"))
        transactions.extend(manual)
        print(f"Added {len(manual)} manual transactions")
    print(f"Total: {len(transactions)} transactions\n")

    print(f"Parsing holdings from: {resolve_user_path(holdings_path)}")
    snapshot: HoldingsSnapshot = load_holdings_snapshot(read_input(holdings_path, "Holdings"))
    print(f"Found {len(snapshot.holdings)} holdings")
    print(f"Cash/Money Market: {format_money(snapshot.cash_balance)}")
    print(f"Total Portfolio Value: {format_money(snapshot.total_value)}\n")

    result = reconcile(transactions, snapshot)
    print_reconciliation(result)
    print_cash_flow(result)
    print_returns(result)

    print("=== READY FOR IMPORT ===\n")
    print(f"Transactions: {len(transactions)}")
    print(f"Initial Holdings: {len(result.initial_holdings)}")
    print(f"Current Holdings: {len(snapshot.holdings)}")

    destination = write_export(
        resolve_user_path(output_path), build_export_payload(transactions, snapshot, result)
    )
    print(f"\nExported to: {destination}")
    return destination


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv(dotenv_path=env_file_path())
    configure_logging()
    settings = get_settings()
    args = build_parser(settings.default_output_path).parse_args(argv)
    try:
        run(args.transactions, args.holdings, args.output, args.manual)
    except InputFileError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error writing output: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
