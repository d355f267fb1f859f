"""Lifecycle controller for the local service.

Drives start, stop, refresh and externally managed startup. Collaborator
errors are caught here and turned into one state transition plus one operator
notification; the public operations never raise them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from hearth.core.readiness import PollHandle, ReadinessPoller
from hearth.core.state_machine import LifecycleStateMachine, StateObserver
from hearth.core.timeouts import LifecycleTimeouts
from hearth.domain.config import DEFAULT_EXTERNAL_ADDRESS, DEFAULT_HELP_URL
from hearth.domain.entities import (
    Connection,
    LifecycleState,
    OperatorAction,
    PollOutcome,
)
from hearth.domain.exceptions import (
    AddressUnavailableError,
    BindError,
    HearthDomainError,
    StopError,
    UserCancelledError,
)
from hearth.ports.connections import ConnectionBinder
from hearth.ports.notifier import OperatorNotifier
from hearth.ports.process import ProcessLifecycle
from hearth.ports.readiness import ReadinessProbe

logger = logging.getLogger(__name__)

HELP_LABEL = "Help"


class LocalLifecycleController:
    """Controls the lifecycle of the single local service instance.

    Callers must serialize calls to start/stop/connect/refresh (see
    hearth.core.mailbox.SerializedController); the controller does no locking
    of its own.

    Args:
        process: Launches, stops and locates the service process.
        binder: Creates and releases connections.
        probe: Reachability check used while waiting for an external start.
        notifier: Operator notification sink.
        poller: Readiness poller (default: one using the system clock).
        state: State machine to drive (default: a fresh one in STOPPED).
        external_address: Address of an externally managed service.
        help_url: Documentation link attached to startup warnings.
    """

    def __init__(
        self,
        process: ProcessLifecycle,
        binder: ConnectionBinder,
        probe: ReadinessProbe,
        notifier: OperatorNotifier,
        poller: ReadinessPoller | None = None,
        state: LifecycleStateMachine | None = None,
        external_address: str = DEFAULT_EXTERNAL_ADDRESS,
        help_url: str = DEFAULT_HELP_URL,
    ) -> None:
        self._process = process
        self._binder = binder
        self._probe = probe
        self._notifier = notifier
        self._poller = poller or ReadinessPoller()
        self._state = state or LifecycleStateMachine()
        self.external_address = external_address
        self.help_url = help_url
        self._wait_handle: PollHandle | None = None

    # ----- State access -----

    def current(self) -> LifecycleState:
        return self._state.current()

    def bound_connection(self) -> Connection | None:
        return self._state.bound_connection()

    @property
    def is_started(self) -> bool:
        return self._state.is_started

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register a state-change observer. Returns an unsubscribe callable."""
        return self._state.subscribe(observer)

    def status(self) -> dict[str, Any]:
        """Summarize the controller state.

        Returns:
            Dictionary with state, started flag and bound connection details.
        """
        connection = self._state.bound_connection()
        return {
            "state": self._state.current().value,
            "started": self._state.is_started,
            "address": connection.address if connection else None,
            "identity": connection.identity if connection else None,
            "waiting": self._wait_handle is not None,
        }

    # ----- Start / stop -----

    async def start(self) -> bool:
        """Launch the service if needed and bind a connection to it.

        Already started: the launch call is repeated (it is idempotent) and the
        address is re-checked for drift, but no second connection is created.

        Returns:
            True if the controller ends up STARTED.
        """
        try:
            await self._process.install_and_start()
        except UserCancelledError:
            logger.info("Local service start cancelled by user")
            return False
        except HearthDomainError as e:
            logger.error(f"Failed to launch local service: {e}")
            self._fail_start(f"Failed to start the local service: {e.message}")
            return False

        if self._state.bound_connection() is not None:
            logger.info("Local service already started")
            await self.refresh()
            return self._state.current() is LifecycleState.STARTED

        self._state.transition(LifecycleState.STARTING)
        address = await self._lookup_address()
        if address is None:
            logger.error("Error getting address after the local service should have started")
            self._fail_start("Could not determine the address of the local service")
            return False

        logger.info(f"Local service appears to have started at {address}")
        return await self.connect(address)

    async def connect(self, address: str) -> bool:
        """Bind a connection to the service at `address` and move to STARTED.

        The new connection is fully resolved before the state flips. A
        previously bound connection is released once the new one is in place,
        or dropped if binding fails.

        Args:
            address: Service URI.

        Returns:
            True if the connection was bound.
        """
        previous = self._state.bound_connection()
        try:
            connection = await self._binder.bind(address)
        except BindError as e:
            logger.error(
                f"Error connecting to local service at {address} "
                f"after it should have started: {e}"
            )
            if previous is not None:
                self._state.unbind()
                await self._binder.release(previous)
            self._state.transition(LifecycleState.ERR_CONNECTING)
            self._notifier.notify_error(e.message)
            return False

        self._state.bind(connection)
        self._state.transition(LifecycleState.STARTED)
        if previous is not None and previous != connection:
            await self._binder.release(previous)
        logger.info(f"Connected to local service at {address} ({connection.identity})")
        return True

    async def stop(self) -> bool:
        """Stop the service and clear local state.

        Local state always ends in STOPPED with nothing bound, even if the
        process collaborator fails to stop the service.

        Returns:
            True if the process collaborator reported a clean stop.
        """
        connection = self._state.unbind()
        self._state.transition(LifecycleState.STOPPING)
        stopped = True
        try:
            await self._process.stop()
        except StopError as e:
            stopped = False
            logger.error(f"Failed to stop local service: {e}")
            self._notifier.notify_error(f"Failed to stop the local service: {e.message}")
        finally:
            if connection is not None:
                await self._binder.release(connection)
            self._state.transition(LifecycleState.STOPPED)
        return stopped

    async def restart(self) -> bool:
        """Stop, then start the service."""
        logger.info("Restarting local service...")
        await self.stop()
        return await self.start()

    # ----- Drift detection -----

    async def refresh(self) -> bool:
        """Rebind if the service address changed behind our back.

        Returns:
            True if the address drifted and a rebind was attempted.
        """
        address = await self._lookup_address()
        bound = self._state.bound_connection()
        if bound is None or not address or address == bound.address:
            return False

        logger.info(
            f"Local service address changed from {bound.address} to {address}, reconnecting"
        )
        await self.connect(address)
        return True

    # ----- Externally managed start -----

    async def wait_for_externally_managed_start(
        self,
        timeout_seconds: float = LifecycleTimeouts.EXTERNAL_START_WAIT,
        interval_seconds: float = LifecycleTimeouts.EXTERNAL_START_INTERVAL,
    ) -> bool:
        """Wait for a service we do not launch ourselves, then bind to it.

        Polls the well-known external address. Halfway through the budget the
        operator gets a "taking longer than usual" warning; on timeout a final
        warning and ERR_CONNECTING. A cancelled wait changes nothing further.

        Args:
            timeout_seconds: Total time to wait.
            interval_seconds: Delay between probes.

        Returns:
            True if the service came up and was bound.
        """
        if self._state.bound_connection() is not None:
            logger.info("Local service already connected, not waiting")
            return True

        address = self.external_address
        # Rejects a bad budget before any state change
        handle = self._poller.start_session(
            lambda: self._probe.ping(address),
            interval_seconds,
            timeout_seconds,
            on_escalate=lambda elapsed: self._on_start_timeout(False, elapsed),
        )
        self._wait_handle = handle

        logger.info(f"Waiting for the local service to come up on {address}")
        self._state.transition(LifecycleState.STARTING)
        self._notifier.notify_progress("Waiting for the local service to start...")
        try:
            result = await handle.result()
        finally:
            self._wait_handle = None

        if result.outcome is PollOutcome.CANCELLED:
            return False
        if result.outcome is PollOutcome.TIMED_OUT:
            self._on_start_timeout(True, timeout_seconds)
            self._state.transition(LifecycleState.ERR_CONNECTING)
            return False

        return await self.connect(address)

    def cancel_wait(self) -> bool:
        """Cancel an in-flight externally managed start wait.

        Only a wait that is already polling can be cancelled.

        Returns:
            True if a wait was polling.
        """
        if self._wait_handle is None:
            return False
        self._wait_handle.cancel()
        return True

    # ----- Helpers -----

    def _help_actions(self) -> list[OperatorAction]:
        return [OperatorAction(label=HELP_LABEL, url=self.help_url)]

    def _on_start_timeout(self, failure: bool, secs_elapsed: float) -> None:
        if failure:
            message = (
                f"The local service failed to come up after {secs_elapsed:g} seconds. "
                f"Check the status of the service, and select {HELP_LABEL} to open "
                f"the documentation. Run the wait again to restart the connection process."
            )
        else:
            message = (
                "The local service is taking longer than usual to start. "
                f"Check the status of the service, and select {HELP_LABEL} to open "
                "the documentation."
            )
        self._notifier.notify_warning(message, self._help_actions())

    def _fail_start(self, message: str) -> None:
        self._state.transition(LifecycleState.ERR_CONNECTING)
        self._notifier.notify_error(message, self._help_actions())

    async def _lookup_address(self) -> str | None:
        try:
            return await self._process.get_service_address()
        except AddressUnavailableError as e:
            logger.warning(f"Could not determine local service address: {e}")
            return None
