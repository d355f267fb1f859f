"""Authoritative lifecycle state for the local service.

Owns the current LifecycleState and the bound Connection, and broadcasts every
state change to registered observers.
"""

import logging
from collections.abc import Callable

from hearth.domain.entities import Connection, LifecycleState

logger = logging.getLogger(__name__)

StateObserver = Callable[[LifecycleState, LifecycleState], None]

S = LifecycleState

# Transitions the controller is expected to make. Anything else is still
# applied but logged as unexpected.
EXPECTED_TRANSITIONS: frozenset[tuple[LifecycleState, LifecycleState]] = frozenset({
    (S.STOPPED, S.STARTING),
    (S.ERR_CONNECTING, S.STARTING),
    (S.STARTING, S.STARTED),
    (S.STARTING, S.ERR_CONNECTING),
    (S.STARTING, S.STARTING),
    (S.STOPPED, S.ERR_CONNECTING),
    (S.ERR_CONNECTING, S.ERR_CONNECTING),
    (S.STARTED, S.STARTED),
    (S.STARTED, S.ERR_CONNECTING),
    (S.STARTED, S.STOPPING),
    (S.STARTING, S.STOPPING),
    (S.ERR_CONNECTING, S.STOPPING),
    (S.STOPPING, S.STOPPED),
    (S.STOPPED, S.STOPPING),
})


class LifecycleStateMachine:
    """State holder for the local service lifecycle.

    Transitions are permissive: any state may move to any other. The
    controller is responsible for calling transition() only at the right
    points, and for pairing bind() with STARTED and unbind() with STOPPED.
    """

    def __init__(self, initial: LifecycleState = LifecycleState.STOPPED) -> None:
        self._state = initial
        self._connection: Connection | None = None
        self._observers: list[StateObserver] = []

    def current(self) -> LifecycleState:
        """Return the current state."""
        return self._state

    @property
    def is_started(self) -> bool:
        """True while the service is up, including while a stop is in flight."""
        return self._state in (LifecycleState.STARTED, LifecycleState.STOPPING)

    def bound_connection(self) -> Connection | None:
        """Return the bound connection, if any."""
        return self._connection

    def bind(self, connection: Connection) -> None:
        """Take ownership of a connection, replacing any previous one.

        Args:
            connection: Fully resolved connection to the running service.
        """
        self._connection = connection

    def unbind(self) -> Connection | None:
        """Drop the bound connection.

        Returns:
            The connection that was bound, or None.
        """
        connection, self._connection = self._connection, None
        return connection

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register an observer called with (old_state, new_state).

        Args:
            observer: Callback run synchronously on every transition.

        Returns:
            Callable that removes the observer again.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def transition(self, new_state: LifecycleState) -> None:
        """Overwrite the state and notify observers.

        Observers run in registration order. An observer that raises is
        logged and skipped; the remaining observers still run.

        Args:
            new_state: State to move to.
        """
        old_state = self._state
        if (old_state, new_state) not in EXPECTED_TRANSITIONS:
            logger.warning(
                f"Unexpected lifecycle transition from {old_state} to {new_state}"
            )
        logger.debug(f"Local service state changing from {old_state} to {new_state}")
        self._state = new_state

        for observer in list(self._observers):
            try:
                observer(old_state, new_state)
            except Exception:
                logger.exception(f"State observer {observer!r} failed")
