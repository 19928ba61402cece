"""Lifecycle control for a single Jetty instance.

The supervisor launches Jetty, records its PID in a file keyed by the Jetty
home and uses that file to find the server again, possibly from a different
process. Readiness is approximated by sleeping ``startup_wait`` seconds; no
health check is made.

Example:
    config = JettyConfig(home="/path/to/jetty", port=8983, startup_wait=30)
    error = Supervisor().wrap(config, run_test_suite)
    if error:
        raise SystemExit(f"test failures: {error}")
"""

import time
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Union

from ..config.exceptions import ConfigurationError
from ..config.logging import get_logger
from ..config.settings import JettyConfig
from .exceptions import (
    AlreadyRunningError,
    PidFileIOError,
    PortInUseError,
    SpawnFailure,
    StopFailure,
)
from .process_handle import ProcessHandle, SignalResult, get_process_handle

logger = get_logger(__name__)

STOP_GRACE_PERIOD = 2.0
STOP_POLL_INTERVAL = 0.1


class ServerState(Enum):
    """Where the supervisor is in the start/stop cycle."""

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED_STALE = "stopped_stale"


def home_to_pid_file(home: Union[str, Path]) -> str:
    """Turn a Jetty home into a legal file name.

    Example:
        /usr/local/jetty1 => _usr_local_jetty1.pid
    """
    return str(home).replace("/", "_").replace("\\", "_") + ".pid"


class Supervisor:
    """Starts, tracks and stops one Jetty server."""

    def __init__(
        self,
        config: Optional[JettyConfig] = None,
        process_handle: Optional[ProcessHandle] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the supervisor.

        Args:
            config: Optional configuration to apply right away
            process_handle: Process primitives (default: chosen for this OS)
            sleep: Blocking sleep used for the startup and stop waits
        """
        self.process_handle = process_handle or get_process_handle()
        self._sleep = sleep
        self.config: Optional[JettyConfig] = None
        self.state = ServerState.UNCONFIGURED
        self._pid: Optional[int] = None

        if config is not None:
            self.configure(config)

    def configure(self, config: JettyConfig) -> "Supervisor":
        """Replace the configuration, filling in derived defaults.

        Args:
            config: New configuration; the previous one is discarded

        Returns:
            Supervisor: self, for chaining
        """
        home = config.home
        if home is None:
            if config.app_root is None:
                raise ConfigurationError(
                    "You must set either app_root or home so I know where Jetty is",
                    env_vars=("JETTY_HOME", "JETTY_APP_ROOT"),
                )
            home = (Path(config.app_root) / "jetty").resolve()

        base_path = config.base_path
        if base_path is None:
            base_path = config.app_root if config.app_root is not None else Path(".")

        self.config = config.model_copy(
            update={
                "home": Path(home),
                "base_path": Path(base_path),
                "solr_home": config.solr_home or Path(home) / "solr",
                "fedora_home": config.fedora_home or Path(home) / "fedora" / "default",
            }
        )
        self._pid = None
        self.state = ServerState.CONFIGURED

        logger.debug(
            "Supervisor configured",
            home=str(self.config.home),
            port=self.config.port,
            pid_path=str(self.pid_path),
        )
        return self

    @property
    def pid_dir(self) -> Path:
        """The directory where the PID file is written."""
        config = self._require_config()
        return Path(config.pid_dir or config.base_path / "tmp" / "pids").resolve()

    @property
    def pid_file(self) -> str:
        """The PID file name, derived from the Jetty home unless overridden."""
        config = self._require_config()
        return config.pid_file or home_to_pid_file(config.home)

    @property
    def pid_path(self) -> Path:
        return self.pid_dir / self.pid_file

    @property
    def fallback_pid_path(self) -> Path:
        """Used when the PID directory is not writable."""
        config = self._require_config()
        return (config.base_path / "tmp" / self.pid_file).resolve()

    @property
    def pid(self) -> Optional[int]:
        """The PID of the managed Jetty, read from disk if not cached."""
        if self._pid is None:
            self._pid = self._read_pid_file()
        return self._pid

    @property
    def launch_command(self) -> List[str]:
        """The command that launches Jetty from its home directory."""
        config = self._require_config()
        command = [config.java_executable, f"-Djetty.port={config.port}"]
        for name, path in config.auxiliary_homes.items():
            command.append(f"-D{name}={path}")
        for name, value in config.system_properties.items():
            command.append(f"-D{name}={value}")
        command.extend(["-jar", config.launcher])
        return command

    def start(self) -> int:
        """Launch Jetty and record its PID.

        Does not wait for Jetty to accept connections; callers sleep
        ``startup_wait`` seconds for that.

        Returns:
            int: PID of the launched process

        Raises:
            AlreadyRunningError: A live process is recorded for this home
            PortInUseError: The configured port already has a listener
            SpawnFailure: The process could not be launched
            PidFileIOError: A stale PID file could not be removed, or the
                new PID could not be written anywhere
        """
        config = self._require_config()
        command = self.launch_command

        logger.debug(
            "Starting jetty",
            home=str(config.home),
            auxiliary_homes={k: str(v) for k, v in config.auxiliary_homes.items()},
            command=" ".join(command),
        )

        pid = self.pid
        if pid is not None:
            if self.process_handle.is_alive(pid):
                raise AlreadyRunningError(pid, self.pid_path)
            logger.warning(
                "Removing stale PID file", pid=pid, pid_path=str(self.pid_path)
            )
            # The new PID must not be shadowed by a leftover stale file
            self._remove_pid_files(strict=True)
            self._pid = None

        # Checked with or without a previous PID file
        if self.process_handle.is_port_open(config.port):
            raise PortInUseError(config.port)

        self.state = ServerState.STARTING
        try:
            pid = self.process_handle.spawn(command, config.home, quiet=config.quiet)
        except SpawnFailure:
            self.state = ServerState.CONFIGURED
            raise

        self._pid = pid
        self.state = ServerState.RUNNING
        self._write_pid_file(pid)

        logger.info("Jetty started", pid=pid, port=config.port)
        return pid

    def stop(self) -> bool:
        """Terminate the recorded Jetty process and remove its PID file.

        Never raises for a process that is already gone.

        Returns:
            bool: False if the process still looked alive after the grace
            period, True otherwise
        """
        self._require_config()

        pid = self.pid
        if pid is None:
            logger.debug("No PID recorded, nothing to stop", pid_path=str(self.pid_path))
            return True

        self.state = ServerState.STOPPING
        logger.debug("Killing process", pid=pid)

        try:
            delivered = self.process_handle.signal_terminate(pid) is SignalResult.DELIVERED
        except StopFailure as e:
            logger.error("Could not signal process", pid=pid, error=e.message)
            delivered = False

        if delivered:
            self._wait_for_exit(pid)

        self._remove_pid_files()
        self._pid = None

        if self.process_handle.is_alive(pid):
            logger.warning("Couldn't confirm process was killed", pid=pid)
            self.state = ServerState.STOPPED_STALE
            return False

        logger.info("Jetty stopped", pid=pid)
        self.state = ServerState.CONFIGURED
        return True

    def wrap(self, config: JettyConfig, body: Callable[[], Any]) -> Optional[Exception]:
        """Start Jetty, run ``body``, then stop Jetty whatever happened.

        Args:
            config: Configuration to start Jetty with
            body: Work to run against the live server, e.g. a test suite

        Returns:
            Optional[Exception]: The error raised by start or body, if any
        """
        error: Optional[Exception] = None
        self.configure(config)

        try:
            self.start()
            self.wait_for_startup()
            body()
        except Exception as e:
            error = e
            logger.error("Error while running against jetty", error=str(e))
        finally:
            self.stop()

        return error

    @contextmanager
    def running(self, config: JettyConfig) -> Iterator["Supervisor"]:
        """Context manager form of :meth:`wrap` that lets errors propagate."""
        self.configure(config)
        try:
            self.start()
            self.wait_for_startup()
            yield self
        finally:
            # Nothing was launched if start bailed out before spawning
            if self.state is not ServerState.CONFIGURED:
                self.stop()

    def is_running(self, config: Optional[JettyConfig] = None) -> bool:
        """Check whether a live Jetty is recorded for the configured home."""
        if config is not None:
            self.configure(config)
        pid = self.pid
        return pid is not None and self.process_handle.is_alive(pid)

    def current_pid(self, config: Optional[JettyConfig] = None) -> Optional[int]:
        """Return the recorded PID for the configured home, if any."""
        if config is not None:
            self.configure(config)
        return self.pid

    def wait_for_startup(self):
        """Sleep ``startup_wait`` seconds; stands in for a readiness check."""
        self._sleep(self._require_config().startup_wait)

    def is_port_open(self, port: int) -> bool:
        return self.process_handle.is_port_open(port)

    def _require_config(self) -> JettyConfig:
        if self.config is None:
            raise ConfigurationError("Supervisor has not been configured")
        return self.config

    def _pid_file_candidates(self) -> List[Path]:
        candidates = [self.pid_path]
        if self.fallback_pid_path != self.pid_path:
            candidates.append(self.fallback_pid_path)
        return candidates

    def _read_pid_file(self) -> Optional[int]:
        for path in self._pid_file_candidates():
            try:
                content = path.read_text()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Could not read PID file", pid_path=str(path), error=str(e))
                continue

            tokens = content.split()
            try:
                pid = int(tokens[0])
            except (IndexError, ValueError):
                logger.warning("Ignoring malformed PID file", pid_path=str(path))
                continue

            if pid > 0:
                return pid

        return None

    def _write_pid_file(self, pid: int):
        path = self.pid_path
        try:
            self.pid_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(f"{pid}\n")
        except OSError as e:
            path = self.fallback_pid_path
            logger.warning(
                "Could not write PID file, using fallback location",
                pid_path=str(self.pid_path),
                fallback=str(path),
                error=str(e),
            )
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(f"{pid}\n")
            except OSError as fallback_error:
                raise PidFileIOError(path, fallback_error) from fallback_error

        logger.debug("Wrote pid file", pid_path=str(path), pid=pid)

    def _remove_pid_files(self, strict: bool = False):
        for path in self._pid_file_candidates():
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                if strict:
                    raise PidFileIOError(path, e, action="remove") from e
                logger.warning("Could not remove PID file", pid_path=str(path), error=str(e))

    def _wait_for_exit(self, pid: int):
        for _ in range(int(STOP_GRACE_PERIOD / STOP_POLL_INTERVAL)):
            if not self.process_handle.is_alive(pid):
                return
            self._sleep(STOP_POLL_INTERVAL)


_default_supervisor: Optional[Supervisor] = None


def get_supervisor() -> Supervisor:
    """Return the shared supervisor, creating it on first use."""
    global _default_supervisor
    if _default_supervisor is None:
        _default_supervisor = Supervisor()
    return _default_supervisor


def configure(config: JettyConfig) -> Supervisor:
    return get_supervisor().configure(config)


def start(config: JettyConfig) -> Supervisor:
    """Configure the shared supervisor and start Jetty with one call."""
    supervisor = configure(config)
    supervisor.start()
    return supervisor


def stop(config: JettyConfig) -> Supervisor:
    """Configure the shared supervisor and stop Jetty with one call.

    Only ``home`` (and any PID file overrides) matter for stopping.
    """
    supervisor = configure(config)
    supervisor.stop()
    return supervisor


def wrap(config: JettyConfig, body: Callable[[], Any]) -> Optional[Exception]:
    return get_supervisor().wrap(config, body)


def is_running(config: JettyConfig) -> bool:
    return get_supervisor().is_running(config)


def current_pid(config: JettyConfig) -> Optional[int]:
    return get_supervisor().current_pid(config)


def is_port_open(port: int) -> bool:
    """Check whether something listens on ``port`` on localhost."""
    return get_supervisor().is_port_open(port)
