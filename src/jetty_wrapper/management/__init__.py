"""Jetty process lifecycle control."""

from .exceptions import (
    AlreadyRunningError,
    PidFileIOError,
    PortInUseError,
    SpawnFailure,
    StopFailure,
    SupervisorError,
)
from .process_handle import (
    PosixProcessHandle,
    ProcessHandle,
    SignalResult,
    WindowsProcessHandle,
    get_process_handle,
)
from .supervisor import ServerState, Supervisor, get_supervisor, home_to_pid_file

__all__ = [
    "AlreadyRunningError",
    "PidFileIOError",
    "PortInUseError",
    "PosixProcessHandle",
    "ProcessHandle",
    "ServerState",
    "SignalResult",
    "SpawnFailure",
    "StopFailure",
    "Supervisor",
    "SupervisorError",
    "WindowsProcessHandle",
    "get_process_handle",
    "get_supervisor",
    "home_to_pid_file",
]
