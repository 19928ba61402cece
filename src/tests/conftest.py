"""Pytest configuration and shared fixtures."""

import os
from pathlib import Path
from typing import Any, Dict, List, Set, Tuple, Union

import pytest

from jetty_wrapper.config import JettyConfig
from jetty_wrapper.management import ProcessHandle, SignalResult, Supervisor


class FakeProcessHandle(ProcessHandle):
    """In-memory process table standing in for the operating system."""

    def __init__(self, first_pid: int = 4242):
        super().__init__()
        self.next_pid = first_pid
        self.alive: Set[int] = set()
        self.open_ports: Set[int] = set()
        self.spawned: List[Tuple[List[str], Path, bool]] = []
        self.terminated: List[int] = []
        self.survives_sigterm = False

    def spawn(self, command: List[str], working_directory: Union[str, Path], quiet: bool = True) -> int:
        pid = self.next_pid
        self.next_pid += 1
        self.spawned.append((list(command), Path(working_directory), quiet))
        self.alive.add(pid)
        return pid

    def signal_terminate(self, pid: int) -> SignalResult:
        self.terminated.append(pid)
        if pid not in self.alive:
            return SignalResult.NOT_FOUND
        if not self.survives_sigterm:
            self.alive.discard(pid)
        return SignalResult.DELIVERED

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive

    def is_port_open(self, port: int, host: str = "127.0.0.1", timeout: float = 1.0) -> bool:
        return port in self.open_ports

    def _detach_options(self) -> Dict[str, Any]:
        return {}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep JETTY_* and LOG_* variables from the outer shell out of the tests."""
    for name in list(os.environ):
        if name.startswith(("JETTY_", "LOG_")):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_handle() -> FakeProcessHandle:
    return FakeProcessHandle()


@pytest.fixture
def sleeps() -> List[float]:
    """Records every sleep requested by the supervisor instead of sleeping."""
    return []


@pytest.fixture
def jetty_home(tmp_path) -> Path:
    home = tmp_path / "jetty"
    home.mkdir()
    return home


@pytest.fixture
def jetty_config(tmp_path, jetty_home) -> JettyConfig:
    return JettyConfig(home=jetty_home, base_path=tmp_path, port=8983, startup_wait=30)


@pytest.fixture
def supervisor(fake_handle, sleeps) -> Supervisor:
    return Supervisor(process_handle=fake_handle, sleep=sleeps.append)
