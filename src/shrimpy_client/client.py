"""Typed Shrimpy account-management operations over the signed request pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import re
from typing import Any, Callable, Mapping, TypeVar

from .config import ClientConfig
from .contracts import (
    Account,
    Acknowledgement,
    Balance,
    Portfolio,
    PortfolioUpdateRequest,
    Ticker,
    parse_accounts,
    parse_portfolios,
)
from .errors import MalformedResponse, OperationRejected
from .executor import RequestExecutor
from .observability import EventSink, NullEventSink
from .time_utils import Clock
from .transport import Transport

T = TypeVar("T")

_EXCHANGE_NAME = re.compile(r"[a-z0-9_-]+")


def decode_json(body: bytes) -> Any:
    """Parse a response body; undecodable bytes raise ``MalformedResponse``."""
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedResponse(f"response is not valid JSON: {exc}", body=body) from exc


def encode_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"))


class ShrimpyClient(ABC):
    """Account-management operations offered by the Shrimpy API."""

    @abstractmethod
    def get_accounts(self) -> list[Account]:
        """List exchange accounts linked to the user."""

    @abstractmethod
    def get_balance(self, account_id: int) -> Balance:
        """Fetch the latest balance snapshot of one account."""

    @abstractmethod
    def get_portfolios(self, account_id: int) -> list[Portfolio]:
        """List portfolios (automations) configured on one account."""

    @abstractmethod
    def get_ticker(self, exchange: str) -> Ticker:
        """Fetch current prices on one exchange."""

    @abstractmethod
    def update_portfolio(self, account_id: int, portfolio_id: int, request: PortfolioUpdateRequest) -> None:
        """Replace a portfolio's settings; raises ``OperationRejected`` when declined."""

    @abstractmethod
    def activate_portfolio(self, account_id: int, portfolio_id: int) -> None:
        """Make a portfolio the active automation; raises ``OperationRejected`` when declined."""

    @abstractmethod
    def rebalance_account(self, account_id: int) -> None:
        """Trigger a rebalance of the active portfolio; raises ``OperationRejected`` when declined."""


class ShrimpyHTTPClient(ShrimpyClient):
    """The HTTP implementation of ``ShrimpyClient``."""

    def __init__(self, executor: RequestExecutor) -> None:
        self.executor = executor

    @property
    def events(self) -> EventSink:
        return self.executor.events

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: Transport | None = None,
        clock: Clock | None = None,
        events: EventSink | None = None,
    ) -> "ShrimpyHTTPClient":
        return cls(RequestExecutor(config, transport=transport, clock=clock, events=events or NullEventSink()))

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        transport: Transport | None = None,
        events: EventSink | None = None,
    ) -> "ShrimpyHTTPClient":
        return cls.from_config(ClientConfig.from_env(environ), transport=transport, events=events)

    def _decode(self, operation: str, body: bytes, decode: Callable[[Any], T]) -> T:
        try:
            return decode(decode_json(body))
        except MalformedResponse as exc:
            self.events.error(
                "malformed response",
                operation=operation,
                error=str(exc),
                body=body.decode("utf-8", "replace"),
            )
            raise MalformedResponse(str(exc), body=body) from exc

    def _fetch(self, what: str, path: str, decode: Callable[[Any], T]) -> T:
        self.events.debug(f"retrieving {what}", path=path)
        body = self.executor.execute("GET", path, expected_status=200)
        result = self._decode(what, body, decode)
        self.events.debug(f"successfully retrieved {what}", path=path)
        return result

    def _acknowledge(self, operation: str, path: str, body: str = "") -> None:
        self.events.debug(operation, path=path)
        raw = self.executor.execute("POST", path, body=body, expected_status=200)
        ack = self._decode(operation, raw, Acknowledgement.from_dict)
        if not ack.success:
            self.events.info("operation rejected", operation=operation, path=path)
            raise OperationRejected(operation)
        self.events.debug(f"{operation} succeeded", path=path)

    def get_accounts(self) -> list[Account]:
        return self._fetch("accounts", "/v1/accounts", parse_accounts)

    def get_balance(self, account_id: int) -> Balance:
        return self._fetch("account balance", f"/v1/accounts/{int(account_id)}/balance", Balance.from_dict)

    def get_portfolios(self, account_id: int) -> list[Portfolio]:
        return self._fetch("portfolios", f"/v1/accounts/{int(account_id)}/portfolios", parse_portfolios)

    def get_ticker(self, exchange: str) -> Ticker:
        name = exchange.lower()
        # The name becomes a path segment that is signed as-is.
        if not _EXCHANGE_NAME.fullmatch(name):
            raise ValueError(f"invalid exchange name {exchange!r}")
        return self._fetch(
            "exchange ticker",
            f"/v1/{name}/ticker",
            lambda payload: Ticker.from_payload(name, payload),
        )

    def update_portfolio(self, account_id: int, portfolio_id: int, request: PortfolioUpdateRequest) -> None:
        path = f"/v1/accounts/{int(account_id)}/portfolios/{int(portfolio_id)}/update"
        self._acknowledge("update portfolio", path, body=encode_json(request.to_dict()))

    def activate_portfolio(self, account_id: int, portfolio_id: int) -> None:
        path = f"/v1/accounts/{int(account_id)}/portfolios/{int(portfolio_id)}/activate"
        self._acknowledge("activate portfolio", path)

    def rebalance_account(self, account_id: int) -> None:
        self._acknowledge("rebalance account", f"/v1/accounts/{int(account_id)}/rebalance")
