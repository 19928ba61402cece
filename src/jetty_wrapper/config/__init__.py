"""Configuration package for the Jetty supervisor."""

from .exceptions import ConfigurationError
from .logging import configure_logging, get_logger
from .settings import JettyConfig, LoggingConfig, Settings

__all__ = [
    "ConfigurationError",
    "JettyConfig",
    "LoggingConfig",
    "Settings",
    "configure_logging",
    "get_logger",
]
