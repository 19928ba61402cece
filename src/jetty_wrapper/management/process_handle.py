"""Platform primitives for launching, signalling and probing processes."""

import os
import signal
import socket
import subprocess
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import psutil

from ..config.logging import get_logger
from .exceptions import SpawnFailure, StopFailure

logger = get_logger(__name__)

LOCALHOST = "127.0.0.1"
PORT_PROBE_TIMEOUT = 1.0


class SignalResult(Enum):
    """Outcome of a termination request."""

    DELIVERED = "delivered"
    NOT_FOUND = "not_found"


class ProcessHandle(ABC):
    """Launches and inspects OS processes.

    Children spawned through a handle are remembered so they can be reaped
    once they exit; otherwise a dead child would linger as a zombie and keep
    looking alive to :meth:`is_alive`.
    """

    def __init__(self):
        self.children: Dict[int, subprocess.Popen] = {}

    def spawn(
        self,
        command: List[str],
        working_directory: Union[str, Path],
        quiet: bool = True,
    ) -> int:
        """Launch ``command`` detached from this process.

        Args:
            command: Program and arguments
            working_directory: Directory the child runs in
            quiet: Discard the child's stdout and stderr

        Returns:
            int: Process ID of the child
        """
        output = subprocess.DEVNULL if quiet else None

        try:
            process = subprocess.Popen(
                command,
                cwd=str(working_directory),
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                **self._detach_options(),
            )
        except OSError as e:
            logger.error(
                "Failed to launch process",
                command=command,
                cwd=str(working_directory),
                error=str(e),
            )
            raise SpawnFailure(
                f"Failed to launch {command[0]}: {e}",
                "Check that Java is installed and the Jetty home exists",
                {"command": command, "cwd": str(working_directory)},
            ) from e

        self.children[process.pid] = process
        logger.debug("Process launched", pid=process.pid, command=command)
        return process.pid

    @abstractmethod
    def signal_terminate(self, pid: int) -> SignalResult:
        """Ask ``pid`` to terminate."""

    def is_alive(self, pid: int) -> bool:
        """Check whether ``pid`` refers to a live process."""
        if pid <= 0:
            return False

        self._reap(pid)

        try:
            process = psutil.Process(pid)
            return process.is_running() and process.status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Exists, but belongs to another user
            return True

    def is_port_open(
        self,
        port: int,
        host: str = LOCALHOST,
        timeout: float = PORT_PROBE_TIMEOUT,
    ) -> bool:
        """Check whether something accepts TCP connections on ``port``.

        Args:
            port: Port to probe
            host: Address to connect to
            timeout: Upper bound on the connection attempt in seconds

        Returns:
            bool: True if a connection could be established
        """
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                return sock.connect_ex((host, port)) == 0
            except OSError:
                return False

    def _reap(self, pid: int):
        process = self.children.get(pid)
        if process is not None and process.poll() is not None:
            del self.children[pid]

    @abstractmethod
    def _detach_options(self) -> Dict[str, Any]:
        """Extra ``Popen`` keyword arguments that detach the child."""


class PosixProcessHandle(ProcessHandle):
    """Process primitives for Linux, macOS and other POSIX systems."""

    def signal_terminate(self, pid: int) -> SignalResult:
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.error(
                "Tried to kill the process but it was not running", pid=pid
            )
            return SignalResult.NOT_FOUND
        except PermissionError as e:
            raise StopFailure(
                f"Not permitted to signal process {pid}",
                "Stop the server as the user that started it",
                {"pid": pid, "error": str(e)},
            ) from e

        logger.debug("Sent SIGTERM", pid=pid)
        return SignalResult.DELIVERED

    def _detach_options(self) -> Dict[str, Any]:
        return {"start_new_session": True}


class WindowsProcessHandle(ProcessHandle):
    """Process primitives for Windows."""

    def signal_terminate(self, pid: int) -> SignalResult:
        try:
            psutil.Process(pid).terminate()
        except psutil.NoSuchProcess:
            logger.error(
                "Tried to kill the process but it was not running", pid=pid
            )
            return SignalResult.NOT_FOUND
        except psutil.AccessDenied as e:
            raise StopFailure(
                f"Not permitted to terminate process {pid}",
                "Stop the server as the user that started it",
                {"pid": pid, "error": str(e)},
            ) from e

        logger.debug("Terminated process", pid=pid)
        return SignalResult.DELIVERED

    def _detach_options(self) -> Dict[str, Any]:
        return {
            "creationflags": subprocess.DETACHED_PROCESS
            | subprocess.CREATE_NEW_PROCESS_GROUP,
            "close_fds": True,
        }


def get_process_handle(platform: Optional[str] = None) -> ProcessHandle:
    """Build the process handle for ``platform`` (default: ``os.name``)."""
    if (platform or os.name) == "nt":
        return WindowsProcessHandle()
    return PosixProcessHandle()
