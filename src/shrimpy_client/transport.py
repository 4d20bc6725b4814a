"""HTTP transport used by the request executor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import http.client
import threading
import urllib.error
import urllib.request

from .errors import TransportError


@dataclass(slots=True, frozen=True)
class TransportResponse:
    """Status, raw body and headers of one HTTP exchange."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


class Transport(ABC):
    """Sends one HTTP request and returns whatever status came back."""

    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout: float,
        cancel: threading.Event | None = None,
    ) -> TransportResponse:
        """Perform the request; raise ``TransportError`` when no response was received."""


def _check_cancelled(cancel: threading.Event | None, method: str, url: str) -> None:
    if cancel is not None and cancel.is_set():
        raise TransportError(f"{method} {url} cancelled", cancelled=True)


class UrllibTransport(Transport):
    """``urllib.request`` transport; opens a fresh connection per call."""

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
        timeout: float,
        cancel: threading.Event | None = None,
    ) -> TransportResponse:
        _check_cancelled(cancel, method, url)
        request = urllib.request.Request(url=url, data=body, method=method, headers=headers)
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                result = TransportResponse(
                    status=int(getattr(response, "status", 200)),
                    body=response.read(),
                    headers=dict(response.headers.items()),
                )
        except urllib.error.HTTPError as exc:
            # Non-2xx answers are still responses; status validation happens upstream.
            try:
                error_body = exc.read() or b""
            except (http.client.HTTPException, OSError) as read_exc:
                raise TransportError(f"{method} {url} failed reading {exc.code} body: {read_exc}") from read_exc
            result = TransportResponse(
                status=int(exc.code),
                body=error_body,
                headers=dict(exc.headers.items()) if exc.headers is not None else {},
            )
        except urllib.error.URLError as exc:
            raise TransportError(f"{method} {url} failed: {exc.reason}") from exc
        except (http.client.HTTPException, TimeoutError, OSError) as exc:
            raise TransportError(f"{method} {url} failed: {exc!r}") from exc
        _check_cancelled(cancel, method, url)
        return result
