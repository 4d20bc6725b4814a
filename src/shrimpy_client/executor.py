"""Authenticated request pipeline: nonce, prehash, signature, headers, send, status check."""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
import urllib.parse

from .config import ClientConfig
from .errors import TransportError, UnexpectedStatus
from .observability import EventSink, NullEventSink
from .signing import (
    HEADER_API_KEY,
    HEADER_CONTENT_TYPE,
    HEADER_NONCE,
    HEADER_SIGNATURE,
    ShrimpyRequestSigner,
    build_prehash,
)
from .time_utils import Clock, NonceGenerator
from .transport import Transport, UrllibTransport


@dataclass(slots=True, frozen=True)
class SignedRequest:
    """A request whose method, path, body and nonce are fixed and signed."""

    method: str
    path: str
    body: str
    nonce: str
    signature: str = field(repr=False)

    @property
    def prehash(self) -> str:
        return build_prehash(self.path, self.method, self.nonce, self.body)

    def headers(self, api_key: str) -> dict[str, str]:
        return {
            HEADER_CONTENT_TYPE: "application/json",
            HEADER_API_KEY: api_key,
            HEADER_NONCE: self.nonce,
            HEADER_SIGNATURE: self.signature,
        }

    def payload(self) -> bytes | None:
        return self.body.encode("utf-8") if self.body else None


class RequestExecutor:
    """
    Signs and sends one request per ``execute`` call.

    Holds only read-only configuration plus the nonce generator, so one instance
    can be shared by many threads.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport | None = None,
        clock: Clock | None = None,
        events: EventSink | None = None,
    ) -> None:
        self.config = config.validate()
        self.signer = ShrimpyRequestSigner(api_key=self.config.api_key, api_secret=self.config.api_secret)
        self.transport = transport or UrllibTransport()
        self.nonces = NonceGenerator(clock)
        self.events = events or NullEventSink()
        self._base_path = urllib.parse.urlsplit(self.config.base_url).path.rstrip("/")

    def url_for(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def signed_path(self, path: str) -> str:
        """Path as it appears on the wire, including any base URL prefix."""
        return f"{self._base_path}{path}"

    def build_signed_request(self, method: str, path: str, body: str = "") -> SignedRequest:
        method = method.upper()
        wire_path = self.signed_path(path)
        nonce = self.nonces.next_nonce()
        signature = self.signer.sign(method=method, path=wire_path, nonce=nonce, body=body)
        request = SignedRequest(method=method, path=wire_path, body=body, nonce=nonce, signature=signature)
        if self.config.log_signature_material:
            self.events.debug(
                "signature computed",
                method=method,
                path=wire_path,
                nonce=nonce,
                prehash=request.prehash,
                signature=signature,
            )
        else:
            self.events.debug("signature computed", method=method, path=wire_path, nonce=nonce)
        return request

    def execute(
        self,
        method: str,
        path: str,
        body: str = "",
        expected_status: int = 200,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> bytes:
        """Send a signed request and return the raw body when the status matches."""
        request = self.build_signed_request(method, path, body)
        url = self.url_for(path)
        self.events.debug("request issued", method=request.method, url=url, nonce=request.nonce)
        try:
            response = self.transport.send(
                method=request.method,
                url=url,
                headers=request.headers(self.config.api_key),
                body=request.payload(),
                timeout=timeout if timeout is not None else self.config.timeout_seconds,
                cancel=cancel,
            )
        except TransportError as exc:
            self.events.error(
                "transport failure",
                method=request.method,
                url=url,
                error=str(exc),
                cancelled=exc.cancelled,
            )
            raise

        self.events.debug(
            "response status",
            method=request.method,
            url=url,
            status=response.status,
            expected=expected_status,
        )
        if response.status != expected_status:
            self.events.error(
                "unexpected status",
                method=request.method,
                url=url,
                status=response.status,
                response=response.body.decode("utf-8", errors="replace"),
            )
            raise UnexpectedStatus(code=response.status, body=response.body, expected=expected_status)
        return response.body
