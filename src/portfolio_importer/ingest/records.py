"""Record types shared by the tokenizer, the format mappers and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class CsvFormat(str, Enum):
    FIDELITY = "fidelity"
    MERRILL_TRANSACTIONS = "merrill_transactions"
    MERRILL_HOLDINGS = "merrill_holdings"
    TRADE_LOG = "trade_log"
    UNKNOWN = "unknown"


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    DIVIDEND = "DIVIDEND"


class TradeSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


SHARE_TRANSACTION_TYPES = frozenset({TransactionType.BUY, TransactionType.SELL})


@dataclass(frozen=True)
class RawRow:
    headers: tuple[str, ...]
    values: tuple[str, ...]
    line_number: int

    def value_at(self, index: int) -> str:
        if 0 <= index < len(self.values):
            return self.values[index]
        return ""

    def first_value(self) -> str:
        return self.value_at(0)

    def is_blank(self) -> bool:
        return not any(value.strip() for value in self.values)

    def as_dict(self) -> dict[str, str]:
        return {
            header: self.value_at(index)
            for index, header in enumerate(self.headers)
            if header
        }


@dataclass(frozen=True)
class CsvParseResult:
    headers: list[str]
    rows: list[RawRow]
    total_rows: int


@dataclass(frozen=True)
class DetectedFormat:
    format: CsvFormat
    header_row_index: int
    data_start_index: int
    confidence: float


@dataclass(frozen=True)
class ValidationError:
    row: int
    field: str
    value: str
    message: str
    skip: bool = False


@dataclass(frozen=True)
class NormalizedTransaction:
    symbol: str | None
    transaction_type: TransactionType
    quantity: float | None
    price_per_share: float | None
    total_amount: float
    transaction_date: date
    fees: float = 0.0
    notes: str = ""

    def __post_init__(self) -> None:
        has_shares = self.quantity is not None
        has_price = self.price_per_share is not None
        if has_shares != has_price:
            raise ValueError("quantity and price_per_share must be provided together")
        if has_shares != (self.transaction_type in SHARE_TRANSACTION_TYPES):
            raise ValueError(
                f"{self.transaction_type.value} transactions "
                + ("require" if not has_shares else "cannot carry")
                + " quantity and price_per_share"
            )


@dataclass(frozen=True)
class ParsedTrade:
    symbol: str
    side: TradeSide
    status: TradeStatus
    entry_price: float
    quantity: float
    entry_date: date
    exit_price: float | None
    exit_date: date | None
    fees: float
    realized_pnl: float | None
    notes: str | None


@dataclass(frozen=True)
class ParsedHolding:
    symbol: str
    quantity: float
    average_cost_basis: float
    total_value: float | None
    as_of_date: date | None


@dataclass(frozen=True)
class RowResult(Generic[T]):
    """Outcome of validating one row: a value, or the reasons it was rejected."""

    value: T | None = None
    errors: tuple[ValidationError, ...] = ()

    @classmethod
    def success(cls, value: T) -> "RowResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, errors: list[ValidationError]) -> "RowResult[T]":
        return cls(errors=tuple(errors))

    @classmethod
    def skipped(cls, row: int, message: str, *, field: str = "", value: str = "") -> "RowResult[T]":
        return cls(
            errors=(ValidationError(row=row, field=field, value=value, message=message, skip=True),)
        )

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors

    @property
    def is_skip(self) -> bool:
        return bool(self.errors) and all(error.skip for error in self.errors)


@dataclass
class MappingResult(Generic[T]):
    values: list[T] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)


def collect_results(results: list[RowResult[T]]) -> MappingResult[T]:
    mapped: MappingResult[T] = MappingResult()
    for result in results:
        if result.ok and result.value is not None:
            mapped.values.append(result.value)
            continue
        mapped.errors.extend(error for error in result.errors if not error.skip)
    return mapped
