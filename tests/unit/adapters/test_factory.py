"""Tests for controller and config factories."""

from pathlib import Path

from hearth.adapters.config.toml_config_provider import TomlConfigProvider
from hearth.adapters.factory import ConfigFactory, ControllerFactory
from hearth.adapters.http.probe import HttpReadinessProbe
from hearth.adapters.notify.console import ConsoleNotifier
from hearth.adapters.process.subprocess_lifecycle import SubprocessLifecycle
from hearth.core.controller import LocalLifecycleController
from hearth.core.mailbox import SerializedController
from hearth.domain.config import HearthConfig
from hearth.domain.entities import LifecycleState
from tests.helpers.fakes import RecordingNotifier


def make_config(tmp_path: Path, **service) -> HearthConfig:
    data = {
        "service": {"command": ["svc"], "state_dir": str(tmp_path), **service},
        "readiness": {"health_path": "/health", "request_timeout": 1.5},
        "notify": {"help_url": "https://example.com/help", "open_links": True},
    }
    return HearthConfig.from_partial(HearthConfig.default(), data)


class TestControllerFactory:
    def test_probe_uses_readiness_config(self, tmp_path: Path) -> None:
        probe = ControllerFactory(make_config(tmp_path)).create_probe()

        assert isinstance(probe, HttpReadinessProbe)
        assert probe.health_path == "/health"
        assert probe.timeout == 1.5
        assert probe.verify_tls is False

    def test_process_lifecycle_uses_service_config(self, tmp_path: Path) -> None:
        process = ControllerFactory(make_config(tmp_path)).create_process_lifecycle()

        assert isinstance(process, SubprocessLifecycle)
        assert process.command == ["svc"]
        assert process.state_dir == tmp_path

    def test_confirm_ignored_unless_enabled(self, tmp_path: Path) -> None:
        def confirm() -> bool:
            return True

        factory = ControllerFactory(make_config(tmp_path))
        assert factory.create_process_lifecycle(confirm=confirm)._confirm is None

        factory = ControllerFactory(make_config(tmp_path, confirm_launch=True))
        assert factory.create_process_lifecycle(confirm=confirm)._confirm is confirm

    def test_notifier_follows_notify_config(self, tmp_path: Path) -> None:
        notifier = ControllerFactory(make_config(tmp_path)).create_notifier(quiet=True)

        assert isinstance(notifier, ConsoleNotifier)
        assert notifier.quiet is True
        assert notifier.open_links is True

    def test_controller_is_stopped_and_configured(self, tmp_path: Path) -> None:
        controller = ControllerFactory(make_config(tmp_path)).create_controller(
            notifier=RecordingNotifier()
        )

        assert isinstance(controller, LocalLifecycleController)
        assert controller.current() is LifecycleState.STOPPED
        assert controller.help_url == "https://example.com/help"
        assert controller.external_address == "https://localhost:9090"

    def test_serialized_controller(self, tmp_path: Path) -> None:
        serialized = ControllerFactory(make_config(tmp_path)).create_serialized_controller()

        assert isinstance(serialized, SerializedController)
        assert serialized.current() is LifecycleState.STOPPED


def test_config_factory_creates_toml_provider():
    assert isinstance(ConfigFactory().create_config_provider(), TomlConfigProvider)
