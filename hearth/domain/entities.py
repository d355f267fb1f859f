"""Domain entities and value objects.

Core domain models for the local service lifecycle. These are pure Python
dataclasses and enums with no dependencies on infrastructure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class LifecycleState(str, Enum):
    """Lifecycle state of the local service.

    Exactly one state is authoritative at a time. The state only changes
    through LifecycleStateMachine.transition().
    """

    STOPPED = "stopped"
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    ERR_CONNECTING = "error_connecting"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Connection:
    """A logical connection bound to a running local service.

    Connections are replaced wholesale on rebind, never mutated.

    Attributes:
        address: URI the service was reachable at when the connection was bound.
        identity: Opaque handle identifying the bound service instance.
    """

    address: str
    identity: str

    def __post_init__(self) -> None:
        if not self.address:
            raise ValueError("Connection address cannot be empty")


class PollOutcome(str, Enum):
    """How a readiness wait ended."""

    READY = "ready"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollResult:
    """Result of a readiness wait.

    Attributes:
        outcome: READY, TIMED_OUT or CANCELLED.
        tries: Number of probe calls that were issued.
        elapsed_seconds: Polling time that passed, in seconds.
    """

    outcome: PollOutcome
    tries: int
    elapsed_seconds: float

    @property
    def is_ready(self) -> bool:
        return self.outcome is PollOutcome.READY


@dataclass
class PollSession:
    """Bookkeeping for one readiness wait.

    Created per wait and never shared between waits.

    Attributes:
        interval_seconds: Delay between probe calls.
        max_tries: Probe budget, floor(timeout / interval).
        escalate_at_try: Probe number at which the one-time escalation fires.
        tries_so_far: Probe calls issued so far.
        escalated: Whether the escalation already fired.
    """

    interval_seconds: float
    max_tries: int
    escalate_at_try: int
    tries_so_far: int = 0
    escalated: bool = False

    @classmethod
    def create(cls, interval_seconds: float, timeout_seconds: float) -> PollSession:
        """Build a session from an interval and an overall timeout.

        Args:
            interval_seconds: Delay between probe calls, must be positive.
            timeout_seconds: Total budget, must be at least one interval.

        Returns:
            A fresh PollSession.

        Raises:
            ValueError: If the interval is not positive or the timeout is
                shorter than one interval.
        """
        if interval_seconds <= 0:
            raise ValueError(
                f"interval_seconds must be positive, got {interval_seconds}"
            )
        if timeout_seconds < interval_seconds:
            raise ValueError(
                f"timeout_seconds ({timeout_seconds}) must be at least "
                f"interval_seconds ({interval_seconds})"
            )
        max_tries = math.floor(timeout_seconds / interval_seconds)
        # Round half up: 5 tries escalate at 3, not at 2
        escalate_at_try = math.floor(max_tries / 2 + 0.5)
        return cls(
            interval_seconds=interval_seconds,
            max_tries=max_tries,
            escalate_at_try=escalate_at_try,
        )

    @property
    def elapsed_seconds(self) -> float:
        return self.tries_so_far * self.interval_seconds

    @property
    def exhausted(self) -> bool:
        return self.tries_so_far >= self.max_tries

    def should_escalate(self) -> bool:
        return not self.escalated and self.tries_so_far == self.escalate_at_try


@dataclass(frozen=True)
class OperatorAction:
    """An action offered alongside an operator notification.

    Attributes:
        label: Button or hint label shown to the operator (e.g. "Help").
        url: Link the action opens.
    """

    label: str
    url: str
