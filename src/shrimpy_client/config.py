"""Client configuration objects and loaders."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import os
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit

import yaml

from .errors import ConfigurationError

DEFAULT_BASE_URL = "https://dev-api.shrimpy.io"

ENV_URL = "SHRIMPY_URL"
ENV_KEY = "SHRIMPY_KEY"
ENV_SECRET = "SHRIMPY_SECRET"
ENV_TIMEOUT = "SHRIMPY_TIMEOUT_SECONDS"
ENV_LOG_SIGNATURE = "SHRIMPY_LOG_SIGNATURE_MATERIAL"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True, frozen=True)
class ClientConfig:
    """
    Connection settings for one client instance.

    ``log_signature_material`` adds the prehash and signature to debug events;
    it is off by default because the prehash reveals request bodies.
    """

    base_url: str
    api_key: str
    api_secret: str = field(repr=False)
    timeout_seconds: float = 30.0
    log_signature_material: bool = False

    def validate(self) -> "ClientConfig":
        """Return a normalized copy or raise ``ConfigurationError``."""
        if not (self.base_url or "").strip():
            raise ConfigurationError(f"{ENV_URL} is not set")
        if not (self.api_key or "").strip():
            raise ConfigurationError(f"{ENV_KEY} is not set")
        if not (self.api_secret or "").strip():
            raise ConfigurationError(f"{ENV_SECRET} is not set")
        base_url = self.base_url.strip().rstrip("/")
        parts = urlsplit(base_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigurationError(f"{ENV_URL} must be an absolute http(s) URL, got {self.base_url!r}")
        if parts.query or parts.fragment:
            raise ConfigurationError(f"{ENV_URL} must not carry a query or fragment, got {self.base_url!r}")
        if not math.isfinite(self.timeout_seconds) or self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        return ClientConfig(
            base_url=base_url,
            api_key=self.api_key,
            api_secret=self.api_secret,
            timeout_seconds=float(self.timeout_seconds),
            log_signature_material=bool(self.log_signature_material),
        )

    def to_dict(self, include_secret: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "base_url": self.base_url,
            "api_key": self.api_key,
            "timeout_seconds": self.timeout_seconds,
            "log_signature_material": self.log_signature_material,
        }
        if include_secret:
            payload["api_secret"] = self.api_secret
        return payload

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "ClientConfig":
        raw_timeout = payload.get("timeout_seconds", 30.0)
        if isinstance(raw_timeout, bool):
            raise ConfigurationError(f"timeout_seconds must be a number, got {raw_timeout!r}")
        try:
            timeout = float(raw_timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"timeout_seconds must be a number, got {raw_timeout!r}") from exc
        return ClientConfig(
            base_url=str(payload.get("base_url", DEFAULT_BASE_URL) or ""),
            api_key=str(payload.get("api_key", "") or ""),
            api_secret=str(payload.get("api_secret", "") or ""),
            timeout_seconds=timeout,
            log_signature_material=_as_bool(payload.get("log_signature_material", False)),
        )

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "ClientConfig":
        """Read ``SHRIMPY_*`` variables; the result is validated."""
        env = os.environ if environ is None else environ
        raw_timeout = env.get(ENV_TIMEOUT, "")
        try:
            timeout = float(raw_timeout) if raw_timeout.strip() else 30.0
        except ValueError as exc:
            raise ConfigurationError(f"{ENV_TIMEOUT} must be a number, got {raw_timeout!r}") from exc
        config = ClientConfig(
            base_url=env.get(ENV_URL, ""),
            api_key=env.get(ENV_KEY, ""),
            api_secret=env.get(ENV_SECRET, ""),
            timeout_seconds=timeout,
            log_signature_material=_as_bool(env.get(ENV_LOG_SIGNATURE, "")),
        )
        return config.validate()


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_config(path: str | Path) -> ClientConfig:
    """Load and validate client configuration from YAML."""
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{file_path} must contain a mapping")
    section = payload.get("shrimpy", payload) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"{file_path}: 'shrimpy' section must be a mapping")
    return ClientConfig.from_dict(section).validate()


def save_config(config: ClientConfig, path: str | Path, include_secret: bool = False) -> None:
    """Persist client configuration to YAML; the secret is left out unless asked."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump({"shrimpy": config.to_dict(include_secret=include_secret)}, handle, sort_keys=False)
