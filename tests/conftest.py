from __future__ import annotations

from dataclasses import dataclass, field
import threading
from typing import Callable

import pytest

from shrimpy_client import ClientConfig, FixedClock, MemoryEventSink, ShrimpyHTTPClient, TransportResponse
from shrimpy_client.transport import Transport

SECRET = "c2VjcmV0"  # base64("secret")


@dataclass(slots=True)
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    timeout: float


@dataclass
class FakeTransport(Transport):
    """Records every request and answers with a scripted response."""

    status: int = 200
    body: bytes = b"[]"
    responder: Callable[[SentRequest], TransportResponse] | None = None
    sent: list[SentRequest] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def send(self, method, url, headers, body, timeout, cancel=None) -> TransportResponse:
        request = SentRequest(method=method, url=url, headers=dict(headers), body=body, timeout=timeout)
        with self._lock:
            self.sent.append(request)
        if self.responder is not None:
            return self.responder(request)
        return TransportResponse(status=self.status, body=self.body)


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(base_url="https://api.example.test", api_key="key-123", api_secret=SECRET)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def events() -> MemoryEventSink:
    return MemoryEventSink()


@pytest.fixture()
def client(config: ClientConfig, transport: FakeTransport, events: MemoryEventSink) -> ShrimpyHTTPClient:
    return ShrimpyHTTPClient.from_config(config, transport=transport, clock=FixedClock(1700000000), events=events)
