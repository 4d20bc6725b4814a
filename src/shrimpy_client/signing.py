"""Request signing for the Shrimpy API.

The signature input is the byte-exact concatenation ``path + method + nonce + body``
with no delimiters. The key is the base64-decoded API secret and the signature is
the base64 (standard alphabet, padded) HMAC-SHA256 digest.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
import hashlib
import hmac

from .errors import InvalidSecretEncoding

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_API_KEY = "SHRIMPY-API-KEY"
HEADER_NONCE = "SHRIMPY-API-NONCE"
HEADER_SIGNATURE = "SHRIMPY-API-SIGNATURE"


def build_prehash(path: str, method: str, nonce: str, body: str = "") -> str:
    return path + method + nonce + body


def decode_secret(secret_b64: str) -> bytes:
    """Strictly decode the base64 API secret into HMAC key bytes."""
    try:
        return base64.b64decode(secret_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidSecretEncoding("API secret is not valid base64") from exc


def sign_with_key(key: bytes, prehash: str) -> str:
    digest = hmac.new(key, prehash.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def sign(secret_b64: str, prehash: str) -> str:
    """Return the base64 HMAC-SHA256 signature of ``prehash``."""
    return sign_with_key(decode_secret(secret_b64), prehash)


@dataclass(slots=True, frozen=True)
class ShrimpyRequestSigner:
    """Holds the API key and the decoded secret; the secret is decoded once."""

    api_key: str
    api_secret: str = field(repr=False)
    _key: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_key", decode_secret(self.api_secret))

    def sign(self, method: str, path: str, nonce: str, body: str = "") -> str:
        return sign_with_key(self._key, build_prehash(path, method, nonce, body))
