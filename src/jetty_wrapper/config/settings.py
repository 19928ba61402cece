"""Application configuration settings."""

from pathlib import Path
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 8888
DEFAULT_STARTUP_WAIT = 5


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    level: str = Field(default="INFO", description="Log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    json_format: bool = Field(default=False, description="Use JSON log format")

    model_config = SettingsConfigDict(env_prefix="LOG_")


class JettyConfig(BaseSettings):
    """Where Jetty lives and how it should be launched.

    Values may come from keyword arguments or ``JETTY_*`` environment
    variables. Instances are frozen; use ``model_copy(update=...)`` to derive
    a changed configuration.
    """

    home: Optional[Path] = Field(
        default=None, description="Directory containing the Jetty launcher"
    )
    port: int = Field(
        default=DEFAULT_PORT, ge=1, le=65535, description="Port Jetty listens on"
    )
    startup_wait: float = Field(
        default=DEFAULT_STARTUP_WAIT,
        ge=0,
        description="Seconds to wait after launch before assuming Jetty is up",
    )
    solr_home: Optional[Path] = Field(
        default=None, description="Solr home (default: <home>/solr)"
    )
    fedora_home: Optional[Path] = Field(
        default=None, description="Fedora home (default: <home>/fedora/default)"
    )
    system_properties: Dict[str, str] = Field(
        default_factory=dict, description="Extra -D properties for the JVM"
    )
    quiet: bool = Field(default=True, description="Discard Jetty output")
    pid_file: Optional[str] = Field(
        default=None, description="PID file name (default: derived from home)"
    )
    pid_dir: Optional[Path] = Field(
        default=None, description="PID directory (default: <base_path>/tmp/pids)"
    )
    base_path: Optional[Path] = Field(
        default=None, description="Root for tmp, pid and log files"
    )
    app_root: Optional[Path] = Field(
        default=None, description="Application root used to locate <root>/jetty"
    )
    java_executable: str = Field(default="java", description="Java binary")
    launcher: str = Field(
        default="start.jar", description="Launcher archive relative to home"
    )

    model_config = SettingsConfigDict(env_prefix="JETTY_", frozen=True)

    @property
    def auxiliary_homes(self) -> Dict[str, Path]:
        """JVM system property to directory for each auxiliary home."""
        homes: Dict[str, Path] = {}
        if self.solr_home is not None:
            homes["solr.solr.home"] = self.solr_home
        if self.fedora_home is not None:
            homes["fedora.home"] = self.fedora_home
        return homes


class Settings(BaseSettings):
    """Main application settings."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def get_log_file_path(self) -> Optional[Path]:
        """Get the log file path if configured."""
        if self.logging.file_path:
            return Path(self.logging.file_path)
        return None
