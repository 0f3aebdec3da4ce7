"""Configuration modules for the SatuSehat client."""

from satusehat.config.endpoints import (
    BASE,
    ApiFamily,
    Mode,
    get_base_url,
    get_endpoint_url,
)
from satusehat.config.logging import configure_logging, get_logger
from satusehat.config.settings import ConfigResolver, Settings, UserConfig

__all__ = [
    "Settings",
    "ConfigResolver",
    "UserConfig",
    "Mode",
    "ApiFamily",
    "BASE",
    "get_base_url",
    "get_endpoint_url",
    "configure_logging",
    "get_logger",
]
