"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from hearth.core.controller import LocalLifecycleController
from hearth.core.readiness import ReadinessPoller
from hearth.core.state_machine import LifecycleStateMachine
from tests.helpers.fakes import (
    FakeBinder,
    FakeClock,
    FakeProbe,
    FakeProcess,
    RecordingNotifier,
)

# ============================================================================
# Config Isolation
# ============================================================================
# Keep tests away from the developer's real ~/.config/hearth and ~/.hearth.


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and XDG_CONFIG_HOME at a temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.delenv("APPDATA", raising=False)
    return home


# ============================================================================
# Lifecycle Fakes
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def process() -> FakeProcess:
    return FakeProcess()


@pytest.fixture
def binder() -> FakeBinder:
    return FakeBinder()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def state() -> LifecycleStateMachine:
    return LifecycleStateMachine()


@pytest.fixture
def controller(
    process: FakeProcess,
    binder: FakeBinder,
    probe: FakeProbe,
    notifier: RecordingNotifier,
    clock: FakeClock,
    state: LifecycleStateMachine,
) -> LocalLifecycleController:
    """Controller wired to in-memory fakes and a virtual clock."""
    return LocalLifecycleController(
        process=process,
        binder=binder,
        probe=probe,
        notifier=notifier,
        poller=ReadinessPoller(clock=clock),
        state=state,
        external_address="https://localhost:9090",
        help_url="https://example.com/help",
    )
