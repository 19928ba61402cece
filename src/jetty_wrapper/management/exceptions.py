"""Errors raised while supervising the Jetty process."""

from pathlib import Path
from typing import Any, Dict, Optional


class SupervisorError(Exception):
    """Supervisor error with user-friendly messages."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}
        super().__init__(message)


class AlreadyRunningError(SupervisorError):
    """A live process is already recorded for this Jetty home."""

    def __init__(self, pid: int, pid_path: Optional[Path] = None):
        self.pid = pid
        super().__init__(
            f"Server is already running with PID {pid}",
            "Stop it first with 'jetty-wrapper stop' or use another Jetty home",
            {"pid": pid, "pid_path": str(pid_path) if pid_path else None},
        )


class PortInUseError(SupervisorError):
    """Something already listens on the configured port."""

    def __init__(self, port: int):
        self.port = port
        super().__init__(
            f"Port {port} is already in use",
            "Choose a different port with --port or stop the conflicting server",
            {"port": port},
        )


class SpawnFailure(SupervisorError):
    """The operating system refused to launch Jetty."""


class StopFailure(SupervisorError):
    """A termination signal could not be delivered."""


class PidFileIOError(SupervisorError):
    """A PID file could not be written, or a stale one could not be removed."""

    def __init__(self, path: Path, error: Exception, action: str = "write"):
        self.path = path
        super().__init__(
            f"Could not {action} PID file {path}: {error}",
            "Check permissions on the tmp directory or pass --pid-file",
            {"path": str(path)},
        )
