"""Configuration models for the websocket UI server and the REST task API."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ServerConfigurationError(Exception):
    """Raised when UI or API server configuration is invalid."""


WEBSOCKET_PATH = "/ws"
ROOT_PATH = "/"
INDEX_PATH = "/index.html"
HEALTHZ_PATH = "/healthz"
API_PREFIX = "/api"


def _validate_endpoint(prefix: str, host: str, port: int) -> None:
    if not host.strip():
        raise ServerConfigurationError(f"{prefix}_HOST cannot be empty")
    if not 1 <= port <= 65535:
        raise ServerConfigurationError(
            f"{prefix}_PORT must be in [1, 65535], got: {port}"
        )


@dataclass(frozen=True)
class UIServerConfig:
    """Validated UI server configuration derived from app settings.

    `index_file` is optional; when set, `/` serves it and sibling files are
    served as static assets.
    """
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""

    def __post_init__(self) -> None:
        _validate_endpoint("UI_SERVER", self.host, self.port)

        if self.enabled and self.index_file:
            index_path = Path(self.index_file)
            if not index_path.exists():
                raise ServerConfigurationError(f"UI index file not found: {index_path}")
            if not index_path.is_file():
                raise ServerConfigurationError(
                    f"UI index path is not a file: {index_path}"
                )

    @property
    def websocket_path(self) -> str:
        return WEBSOCKET_PATH

    @classmethod
    def from_settings(cls, settings) -> "UIServerConfig":
        index_file = settings.index_file.strip() if settings.index_file else ""
        return cls(
            enabled=bool(settings.enabled),
            host=settings.host,
            port=settings.port,
            index_file=index_file,
        )


@dataclass(frozen=True)
class ApiServerConfig:
    """Validated REST API server configuration derived from app settings."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8766

    def __post_init__(self) -> None:
        _validate_endpoint("API_SERVER", self.host, self.port)

    @classmethod
    def from_settings(cls, settings) -> "ApiServerConfig":
        return cls(
            enabled=bool(settings.enabled),
            host=settings.host,
            port=settings.port,
        )
