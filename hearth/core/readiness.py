"""Bounded readiness polling.

Repeatedly runs a readiness probe at a fixed interval until it succeeds, the
probe budget is exhausted, or the wait is cancelled. Partway through the
budget a one-time escalation callback fires so callers can tell the operator
that startup is taking longer than usual.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from hearth.domain.entities import PollOutcome, PollResult, PollSession
from hearth.ports.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
EscalationCallback = Callable[[float], None]


class PollHandle:
    """Handle to an in-flight readiness wait.

    Returned by ReadinessPoller.start_session(). Use cancel() to stop the wait
    and result() to await its outcome.
    """

    def __init__(self, session: PollSession) -> None:
        self.session = session
        self._task: asyncio.Task[PollResult] | None = None
        self._cancel_requested = False

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Stop the wait. No probe is started after this call.

        A probe already in flight is abandoned and its answer discarded.
        """
        if self._task is None or self._task.done():
            return
        self._cancel_requested = True
        self._task.cancel()

    def _cancelled_result(self) -> PollResult:
        return PollResult(
            outcome=PollOutcome.CANCELLED,
            tries=self.session.tries_so_far,
            elapsed_seconds=self.session.elapsed_seconds,
        )

    async def result(self) -> PollResult:
        """Wait for the outcome of the session.

        If the awaiting task is itself cancelled, the session is cancelled too
        and the CancelledError propagates to the awaiter.

        Returns:
            PollResult with outcome READY, TIMED_OUT or CANCELLED.
        """
        if self._task is None:
            raise RuntimeError("Poll session was never started")
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled() and self._cancel_requested:
                # Cancelled before the session got to run
                return self._cancelled_result()
            self.cancel()
            raise


class ReadinessPoller:
    """Polls a readiness probe with a bounded budget.

    Probes never overlap: each probe call is awaited before the next interval
    starts. A probe that raises counts as "not ready yet" and only costs one
    attempt.

    Args:
        clock: Clock used for sleeping between probes (default: SystemClock).
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def start_session(
        self,
        probe: Probe,
        interval_seconds: float,
        timeout_seconds: float,
        on_escalate: EscalationCallback | None = None,
        name: str = "Local service",
    ) -> PollHandle:
        """Start polling in the background.

        Must be called from within a running event loop.

        Args:
            probe: Async reachability check returning True once ready.
            interval_seconds: Delay before each probe call.
            timeout_seconds: Total budget; max tries = floor(timeout / interval).
            on_escalate: Called once with the elapsed seconds when half of the
                probe budget is used up without success.
            name: Name used in log messages.

        Returns:
            PollHandle for cancelling and awaiting the session.

        Raises:
            ValueError: If interval or timeout are invalid.
        """
        session = PollSession.create(interval_seconds, timeout_seconds)
        handle = PollHandle(session)
        handle._task = asyncio.create_task(
            self._run(handle, probe, on_escalate, name)
        )
        return handle

    async def wait_until_ready(
        self,
        probe: Probe,
        interval_seconds: float,
        timeout_seconds: float,
        on_escalate: EscalationCallback | None = None,
    ) -> PollResult:
        """Poll until the probe succeeds or the budget runs out.

        Args:
            probe: Async reachability check returning True once ready.
            interval_seconds: Delay before each probe call.
            timeout_seconds: Total budget; max tries = floor(timeout / interval).
            on_escalate: One-time progress callback fired at the halfway try.

        Returns:
            PollResult with outcome READY or TIMED_OUT (CANCELLED if the
            session was cancelled through its handle).
        """
        handle = self.start_session(
            probe, interval_seconds, timeout_seconds, on_escalate
        )
        return await handle.result()

    async def _run(
        self,
        handle: PollHandle,
        probe: Probe,
        on_escalate: EscalationCallback | None,
        name: str,
    ) -> PollResult:
        session = handle.session
        started_at = self._clock.monotonic()
        try:
            while True:
                await self._clock.sleep(session.interval_seconds)
                session.tries_so_far += 1

                if await self._probe_once(probe, session):
                    return self._finish(session, PollOutcome.READY, name, started_at)

                if session.exhausted:
                    return self._finish(session, PollOutcome.TIMED_OUT, name, started_at)

                if session.should_escalate():
                    session.escalated = True
                    self._escalate(on_escalate, session)
        except asyncio.CancelledError:
            if not handle.cancel_requested:
                raise
            logger.info(
                f"Stopped waiting for {name} after {session.tries_so_far} tries"
            )
            return handle._cancelled_result()

    async def _probe_once(self, probe: Probe, session: PollSession) -> bool:
        try:
            return bool(await probe())
        except Exception as e:
            logger.debug(
                f"Readiness probe failed on try {session.tries_so_far}: {e}"
            )
            return False

    def _escalate(
        self, on_escalate: EscalationCallback | None, session: PollSession
    ) -> None:
        if on_escalate is None:
            return
        try:
            on_escalate(session.elapsed_seconds)
        except Exception:
            logger.exception("Escalation callback failed")

    def _finish(
        self,
        session: PollSession,
        outcome: PollOutcome,
        name: str,
        started_at: float,
    ) -> PollResult:
        took = self._clock.monotonic() - started_at
        if outcome is PollOutcome.READY:
            logger.info(
                f"{name} came up after {session.tries_so_far} tries (took {took:.1f}s)"
            )
        else:
            logger.error(f"{name} did NOT come up after {session.tries_so_far} tries")
        return PollResult(
            outcome=outcome,
            tries=session.tries_so_far,
            elapsed_seconds=session.elapsed_seconds,
        )
