"""Runtime configuration.

Configuration is resolved in three layers, later layers winning:

1. a JSON or TOML file (``--config``),
2. environment variables (``FULLNODE_API_INFO``, ``FIL_TERMINATOR_WORKERS``),
3. command-line flags.

File example (TOML):

    workers = 8
    expiration_threshold_days = 7

    [lotus]
    api_url = "http://127.0.0.1:1234/rpc/v1"
    timeout_seconds = 60

    [projection]
    power_growth_rate = 0.0001
"""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from fil_terminator.core.domain.errors import InvalidInputError
from fil_terminator.core.network.projection_config import ProjectionConfig

DEFAULT_API_URL = "http://127.0.0.1:1234/rpc/v1"

_ADDR_PROTOCOLS = {"ip4", "ip6", "dns", "dns4", "dns6"}
_URL_SCHEMES = {"http", "https", "ws", "wss"}


def _default_workers() -> int:
    return os.cpu_count() or 1


def multiaddr_to_url(addr: str) -> str:
    """Convert ``/ip4/127.0.0.1/tcp/1234/http`` to a JSON-RPC endpoint URL."""
    parts = [p for p in addr.strip().split("/") if p]
    if len(parts) < 4 or parts[0] not in _ADDR_PROTOCOLS or parts[2] != "tcp":
        raise InvalidInputError(f"unsupported API multiaddr: {addr!r}")

    host, port = parts[1], parts[3]
    if not port.isdigit():
        raise InvalidInputError(f"invalid port in API multiaddr: {addr!r}")
    if parts[0] == "ip6":
        host = f"[{host}]"

    transport = parts[4] if len(parts) > 4 else "http"
    # JSON-RPC is spoken over plain HTTP POST even when the node advertises ws.
    scheme = {"ws": "http", "wss": "https"}.get(transport, transport)
    if scheme not in ("http", "https"):
        raise InvalidInputError(f"unsupported API transport {transport!r}")

    return f"{scheme}://{host}:{port}/rpc/v1"


class LotusConfig(BaseModel):
    """Connection settings for a Lotus full node."""

    api_url: str = Field(default=DEFAULT_API_URL, min_length=1)
    token: str | None = None
    timeout_seconds: float = Field(default=60.0, gt=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> LotusConfig:
        return cls.model_validate(obj)

    @classmethod
    def from_api_info(cls, api_info: str, **overrides: Any) -> LotusConfig:
        """Parse ``TOKEN:MULTIADDR`` (or ``TOKEN:URL``, or a bare address)."""
        value = api_info.strip()
        if not value:
            raise InvalidInputError("empty API info")

        token: str | None = None
        address = value
        head, sep, tail = value.partition(":")
        if sep and not head.startswith("/") and head not in _URL_SCHEMES:
            token, address = head or None, tail

        if "://" in address:
            url = address
        else:
            url = multiaddr_to_url(address)

        return cls(api_url=url, token=token, **overrides)


class TerminatorConfig(BaseModel):
    lotus: LotusConfig = Field(default_factory=LotusConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)

    workers: int = Field(default_factory=_default_workers, ge=1)
    expiration_threshold_days: int = Field(default=7, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> TerminatorConfig:
        """Create a TerminatorConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @classmethod
    def load(cls, path: str | Path) -> TerminatorConfig:
        """Load configuration from a ``.json`` or ``.toml`` file."""
        path = Path(path)
        if not path.is_file():
            raise InvalidInputError(f"config file not found: {path}")

        if path.suffix == ".toml":
            with path.open("rb") as f:
                data = tomllib.load(f)
        elif path.suffix == ".json":
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            raise InvalidInputError(f"unsupported config format {path.suffix!r} (use .json or .toml)")

        if not isinstance(data, dict):
            raise InvalidInputError(f"config root must be an object: {path}")
        return cls.from_json_obj(data)

    def apply_env(self, environ: Mapping[str, str] | None = None) -> TerminatorConfig:
        """Return a copy with environment overrides applied."""
        env = os.environ if environ is None else environ
        update: dict[str, Any] = {}

        api_info = env.get("FULLNODE_API_INFO")
        if api_info:
            update["lotus"] = LotusConfig.from_api_info(
                api_info, timeout_seconds=self.lotus.timeout_seconds
            )

        workers = env.get("FIL_TERMINATOR_WORKERS")
        if workers:
            try:
                update["workers"] = int(workers)
            except ValueError as exc:
                raise InvalidInputError(f"FIL_TERMINATOR_WORKERS must be an integer: {workers!r}") from exc

        return self.with_overrides(**update)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TerminatorConfig:
        return cls().apply_env(environ)

    def with_overrides(self, **update: Any) -> TerminatorConfig:
        """Return a validated copy with non-None ``update`` values applied."""
        data = self.model_dump()
        for key, value in update.items():
            if value is None:
                continue
            data[key] = value.model_dump() if isinstance(value, BaseModel) else value
        return type(self).model_validate(data)
