"""Shrimpy account-management API client."""

from .client import ShrimpyClient, ShrimpyHTTPClient, decode_json
from .config import ClientConfig, load_config, save_config
from .contracts import (
    Account,
    Acknowledgement,
    Balance,
    BalanceEntry,
    Portfolio,
    PortfolioAllocation,
    PortfolioStrategy,
    PortfolioUpdateAllocation,
    PortfolioUpdateRequest,
    PortfolioUpdateStrategy,
    Ticker,
    TickerEntry,
)
from .errors import (
    ConfigurationError,
    InvalidSecretEncoding,
    MalformedResponse,
    OperationRejected,
    ShrimpyError,
    TransportError,
    UnexpectedStatus,
)
from .executor import RequestExecutor, SignedRequest
from .observability import (
    ClientEvent,
    EventLevel,
    EventSink,
    JsonlEventSink,
    LoggingEventSink,
    MemoryEventSink,
    NullEventSink,
    configure_logging,
)
from .signing import ShrimpyRequestSigner, build_prehash, decode_secret, sign
from .time_utils import Clock, FixedClock, NonceGenerator, SystemClock
from .transport import Transport, TransportResponse, UrllibTransport

__all__ = [
    "Account",
    "Acknowledgement",
    "Balance",
    "BalanceEntry",
    "ClientConfig",
    "ClientEvent",
    "Clock",
    "ConfigurationError",
    "EventLevel",
    "EventSink",
    "FixedClock",
    "InvalidSecretEncoding",
    "JsonlEventSink",
    "LoggingEventSink",
    "MalformedResponse",
    "MemoryEventSink",
    "NonceGenerator",
    "NullEventSink",
    "OperationRejected",
    "Portfolio",
    "PortfolioAllocation",
    "PortfolioStrategy",
    "PortfolioUpdateAllocation",
    "PortfolioUpdateRequest",
    "PortfolioUpdateStrategy",
    "RequestExecutor",
    "ShrimpyClient",
    "ShrimpyError",
    "ShrimpyHTTPClient",
    "ShrimpyRequestSigner",
    "SignedRequest",
    "SystemClock",
    "Ticker",
    "TickerEntry",
    "Transport",
    "TransportError",
    "TransportResponse",
    "UnexpectedStatus",
    "UrllibTransport",
    "build_prehash",
    "configure_logging",
    "decode_json",
    "decode_secret",
    "load_config",
    "save_config",
    "sign",
]
