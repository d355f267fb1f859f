"""Factory classes for controller and adapter instantiation.

This module is the composition root: it wires the lifecycle controller to its
concrete collaborators from configuration, keeping the CLI layer free from
direct adapter imports. There is no global controller instance; callers own
the controller they create and pass it along.

The factories use lazy imports so commands that only need config do not load
the HTTP stack.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hearth.adapters.http.binder import HttpConnectionBinder
    from hearth.adapters.http.probe import HttpReadinessProbe
    from hearth.adapters.process.subprocess_lifecycle import SubprocessLifecycle
    from hearth.core.controller import LocalLifecycleController
    from hearth.core.mailbox import SerializedController
    from hearth.core.readiness import ReadinessPoller
    from hearth.domain.config import HearthConfig
    from hearth.ports.clock import Clock
    from hearth.ports.config import ConfigProvider
    from hearth.ports.notifier import OperatorNotifier


class ControllerFactory:
    """Factory for the lifecycle controller and its collaborators.

    Args:
        config: HearthConfig with service, readiness and notify settings.
        clock: Clock for readiness polling (default: system clock).
    """

    def __init__(self, config: HearthConfig, clock: Clock | None = None) -> None:
        self._config = config
        self._clock = clock

    def create_poller(self) -> ReadinessPoller:
        from hearth.core.readiness import ReadinessPoller

        return ReadinessPoller(clock=self._clock)

    def create_probe(self) -> HttpReadinessProbe:
        from hearth.adapters.http.probe import HttpReadinessProbe

        readiness = self._config.readiness
        return HttpReadinessProbe(
            health_path=readiness.health_path,
            timeout=readiness.request_timeout,
            verify_tls=readiness.verify_tls,
        )

    def create_binder(self) -> HttpConnectionBinder:
        from hearth.adapters.http.binder import HttpConnectionBinder

        readiness = self._config.readiness
        return HttpConnectionBinder(
            timeout=readiness.request_timeout,
            verify_tls=readiness.verify_tls,
        )

    def create_process_lifecycle(
        self, confirm: Callable[[], bool] | None = None
    ) -> SubprocessLifecycle:
        """Create the subprocess-backed process lifecycle.

        Args:
            confirm: Asked before launching. Only used when the config sets
                     confirm_launch.

        Returns:
            SubprocessLifecycle instance.
        """
        from hearth.adapters.process.subprocess_lifecycle import SubprocessLifecycle

        service = self._config.service
        return SubprocessLifecycle(
            command=service.command,
            state_dir=Path(service.state_dir).expanduser(),
            static_address=service.address,
            probe=self.create_probe(),
            poller=self.create_poller(),
            confirm=confirm if service.confirm_launch else None,
        )

    def create_notifier(self, quiet: bool = False) -> OperatorNotifier:
        from hearth.adapters.notify.console import ConsoleNotifier

        return ConsoleNotifier(quiet=quiet, open_links=self._config.notify.open_links)

    def create_controller(
        self,
        notifier: OperatorNotifier | None = None,
        confirm: Callable[[], bool] | None = None,
        quiet: bool = False,
    ) -> LocalLifecycleController:
        """Create a fully wired LocalLifecycleController.

        Args:
            notifier: Operator notifier (default: console notifier).
            confirm: Launch confirmation callback.
            quiet: Suppress progress output of the default notifier.

        Returns:
            Controller in the STOPPED state.
        """
        from hearth.core.controller import LocalLifecycleController

        return LocalLifecycleController(
            process=self.create_process_lifecycle(confirm=confirm),
            binder=self.create_binder(),
            probe=self.create_probe(),
            notifier=notifier or self.create_notifier(quiet=quiet),
            poller=self.create_poller(),
            external_address=self._config.readiness.external_address,
            help_url=self._config.notify.help_url,
        )

    def create_serialized_controller(
        self,
        notifier: OperatorNotifier | None = None,
        confirm: Callable[[], bool] | None = None,
        quiet: bool = False,
    ) -> SerializedController:
        """Create a controller whose operations run one at a time."""
        from hearth.core.mailbox import SerializedController

        return SerializedController(
            self.create_controller(notifier=notifier, confirm=confirm, quiet=quiet)
        )


class ConfigFactory:
    """Factory for creating configuration-related instances."""

    def create_config_provider(self) -> ConfigProvider:
        """Create a TomlConfigProvider instance.

        Returns:
            TomlConfigProvider instance.
        """
        from hearth.adapters.config.toml_config_provider import TomlConfigProvider

        return TomlConfigProvider()
