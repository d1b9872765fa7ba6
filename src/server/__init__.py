"""Websocket UI server and REST task API."""

from .api_routes import ApiResponse, TaskApiRoutes
from .api_server import ApiServer
from .config import ApiServerConfig, ServerConfigurationError, UIServerConfig
from .service import UIServer

__all__ = [
    "ApiResponse",
    "ApiServer",
    "ApiServerConfig",
    "ServerConfigurationError",
    "TaskApiRoutes",
    "UIServerConfig",
    "UIServer",
]
