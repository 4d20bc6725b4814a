"""Typed payloads exchanged with the Shrimpy API."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import math
from typing import Any

import pandas as pd

from .errors import MalformedResponse
from .time_utils import to_utc_timestamp


def _require(payload: Any, key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(payload, dict):
        raise MalformedResponse(f"{where}: expected object, got {type(payload).__name__}")
    if key not in payload:
        raise MalformedResponse(f"{where}: missing field '{key}'")
    value = payload[key]
    # bool is an int subclass; keep the two apart.
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise MalformedResponse(f"{where}: field '{key}' has type bool")
    if not isinstance(value, kind):
        raise MalformedResponse(f"{where}: field '{key}' has type {type(value).__name__}")
    return value


def _number(payload: Any, key: str, where: str) -> float:
    """Numbers may arrive as JSON numbers or numeric strings."""
    value = _require(payload, key, (int, float, str), where)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedResponse(f"{where}: field '{key}' is not numeric: {value!r}") from exc
    if not math.isfinite(number):
        raise MalformedResponse(f"{where}: field '{key}' is not finite: {value!r}")
    return number


def _timestamp(payload: Any, key: str, where: str, required: bool = True) -> pd.Timestamp | None:
    """ISO-8601 string or null; anything else is malformed."""
    if not required and (not isinstance(payload, dict) or key not in payload):
        return None
    raw = _require(payload, key, (str, type(None)), where)
    if not raw:
        return None
    try:
        return to_utc_timestamp(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedResponse(f"{where}: invalid {key} {raw!r}") from exc


def _list_of(payload: Any, where: str) -> list[Any]:
    if not isinstance(payload, list):
        raise MalformedResponse(f"{where}: expected list, got {type(payload).__name__}")
    return payload


@dataclass(slots=True, frozen=True)
class Account:
    """Exchange account managed by Shrimpy."""

    id: int
    exchange: str
    is_rebalancing: bool

    @staticmethod
    def from_dict(payload: Any) -> "Account":
        return Account(
            id=_require(payload, "id", int, "account"),
            exchange=_require(payload, "exchange", str, "account"),
            is_rebalancing=_require(payload, "isRebalancing", bool, "account"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "exchange": self.exchange, "isRebalancing": self.is_rebalancing}


def parse_accounts(payload: Any) -> list[Account]:
    return [Account.from_dict(row) for row in _list_of(payload, "accounts")]


@dataclass(slots=True, frozen=True)
class BalanceEntry:
    symbol: str
    native_value: float
    btc_value: float
    usd_value: float

    @staticmethod
    def from_dict(payload: Any) -> "BalanceEntry":
        return BalanceEntry(
            symbol=_require(payload, "symbol", str, "balance entry"),
            native_value=_number(payload, "nativeValue", "balance entry"),
            btc_value=_number(payload, "btcValue", "balance entry"),
            usd_value=_number(payload, "usdValue", "balance entry"),
        )


@dataclass(slots=True, frozen=True)
class Balance:
    """Account balance snapshot; ``retrieved_at`` is ``None`` when the API sent null."""

    retrieved_at: pd.Timestamp | None
    balances: list[BalanceEntry] = field(default_factory=list)

    @staticmethod
    def from_dict(payload: Any) -> "Balance":
        retrieved_at = _timestamp(payload, "retrievedAt", "balance")
        rows = _require(payload, "balances", list, "balance")
        return Balance(retrieved_at=retrieved_at, balances=[BalanceEntry.from_dict(r) for r in rows])

    def total_usd(self) -> float:
        return float(sum(entry.usd_value for entry in self.balances))

    def to_frame(self) -> pd.DataFrame:
        columns = ["symbol", "native_value", "btc_value", "usd_value"]
        frame = pd.DataFrame([asdict(entry) for entry in self.balances], columns=columns)
        frame["retrieved_at"] = self.retrieved_at
        return frame


@dataclass(slots=True, frozen=True)
class PortfolioAllocation:
    currency: str
    percent: str
    fixed: bool

    @staticmethod
    def from_dict(payload: Any) -> "PortfolioAllocation":
        return PortfolioAllocation(
            currency=_require(payload, "currency", str, "allocation"),
            percent=_require(payload, "percent", str, "allocation"),
            fixed=_require(payload, "fixed", bool, "allocation"),
        )


@dataclass(slots=True, frozen=True)
class PortfolioStrategy:
    is_dynamic: bool
    allocations: list[PortfolioAllocation] = field(default_factory=list)

    @staticmethod
    def from_dict(payload: Any) -> "PortfolioStrategy":
        rows = _require(payload, "allocations", list, "strategy")
        return PortfolioStrategy(
            is_dynamic=_require(payload, "isDynamic", bool, "strategy"),
            allocations=[PortfolioAllocation.from_dict(r) for r in rows],
        )


@dataclass(slots=True, frozen=True)
class Portfolio:
    """Account automation (target allocation plus rebalance settings)."""

    id: int
    name: str
    rebalance_period: int
    active: bool
    strategy: PortfolioStrategy
    strategy_trigger: str
    rebalance_threshold: str
    max_spread: str
    max_slippage: str

    @staticmethod
    def from_dict(payload: Any) -> "Portfolio":
        return Portfolio(
            id=_require(payload, "id", int, "portfolio"),
            name=_require(payload, "name", str, "portfolio"),
            rebalance_period=_require(payload, "rebalancePeriod", int, "portfolio"),
            active=_require(payload, "active", bool, "portfolio"),
            strategy=PortfolioStrategy.from_dict(_require(payload, "strategy", dict, "portfolio")),
            strategy_trigger=_require(payload, "strategyTrigger", str, "portfolio"),
            rebalance_threshold=_require(payload, "rebalanceThreshold", str, "portfolio"),
            max_spread=_require(payload, "maxSpread", str, "portfolio"),
            max_slippage=_require(payload, "maxSlippage", str, "portfolio"),
        )


def parse_portfolios(payload: Any) -> list[Portfolio]:
    return [Portfolio.from_dict(row) for row in _list_of(payload, "portfolios")]


@dataclass(slots=True, frozen=True)
class PortfolioUpdateAllocation:
    symbol: str
    percent: str


@dataclass(slots=True, frozen=True)
class PortfolioUpdateStrategy:
    is_dynamic: bool
    allocations: list[PortfolioUpdateAllocation] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class PortfolioUpdateRequest:
    """Body of ``POST /v1/accounts/{id}/portfolios/{pid}/update``."""

    name: str
    rebalance_period: int
    strategy: PortfolioUpdateStrategy
    strategy_trigger: str
    rebalance_threshold: str
    max_spread: str
    max_slippage: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "rebalancePeriod": self.rebalance_period,
            "strategy": {
                "isDynamic": self.strategy.is_dynamic,
                "allocations": [
                    {"symbol": a.symbol, "percent": a.percent} for a in self.strategy.allocations
                ],
            },
            "strategyTrigger": self.strategy_trigger,
            "rebalanceThreshold": self.rebalance_threshold,
            "maxSpread": self.max_spread,
            "maxSlippage": self.max_slippage,
        }


@dataclass(slots=True, frozen=True)
class TickerEntry:
    name: str
    symbol: str
    price_usd: float
    price_btc: float
    percent_change_24h_usd: float | None
    last_updated: pd.Timestamp | None

    @staticmethod
    def from_dict(payload: Any) -> "TickerEntry":
        change = payload.get("percentChange24hUsd") if isinstance(payload, dict) else None
        return TickerEntry(
            name=_require(payload, "name", str, "ticker entry"),
            symbol=_require(payload, "symbol", str, "ticker entry"),
            price_usd=_number(payload, "priceUsd", "ticker entry"),
            price_btc=_number(payload, "priceBtc", "ticker entry"),
            percent_change_24h_usd=_number(payload, "percentChange24hUsd", "ticker entry")
            if change is not None
            else None,
            last_updated=_timestamp(payload, "lastUpdated", "ticker entry", required=False),
        )


@dataclass(slots=True, frozen=True)
class Ticker:
    """Current prices for every asset listed on one exchange."""

    exchange: str
    entries: list[TickerEntry] = field(default_factory=list)

    @staticmethod
    def from_payload(exchange: str, payload: Any) -> "Ticker":
        rows = _list_of(payload, "ticker")
        return Ticker(exchange=exchange, entries=[TickerEntry.from_dict(r) for r in rows])

    def price_usd(self, symbol: str) -> float | None:
        for entry in self.entries:
            if entry.symbol.upper() == symbol.upper():
                return entry.price_usd
        return None

    def to_frame(self) -> pd.DataFrame:
        columns = ["name", "symbol", "price_usd", "price_btc", "percent_change_24h_usd", "last_updated"]
        frame = pd.DataFrame([asdict(entry) for entry in self.entries], columns=columns)
        return frame.set_index("symbol")


@dataclass(slots=True, frozen=True)
class Acknowledgement:
    """``{success: bool}`` envelope returned by mutating operations."""

    success: bool

    @staticmethod
    def from_dict(payload: Any) -> "Acknowledgement":
        return Acknowledgement(success=_require(payload, "success", bool, "acknowledgement"))
