"""Start, stop and track a Jetty server instance for test runs."""

from .__version__ import __version__
from .config import ConfigurationError, JettyConfig
from .management import (
    AlreadyRunningError,
    PortInUseError,
    Supervisor,
    SupervisorError,
    get_supervisor,
)

__all__ = [
    "__version__",
    "AlreadyRunningError",
    "ConfigurationError",
    "JettyConfig",
    "PortInUseError",
    "Supervisor",
    "SupervisorError",
    "get_supervisor",
]
