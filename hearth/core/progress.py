"""Progress display for lifecycle operations.

Shows a Rich spinner while the local service is starting or stopping, driven
by lifecycle state changes.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.progress import Progress, SpinnerColumn, TextColumn

from hearth.domain.entities import LifecycleState

if TYPE_CHECKING:
    from hearth.core.mailbox import SerializedController

logger = logging.getLogger(__name__)

STATE_DESCRIPTIONS: dict[LifecycleState, str] = {
    LifecycleState.STARTING: "Starting local service...",
    LifecycleState.STARTED: "Local service started",
    LifecycleState.STOPPING: "Stopping local service...",
    LifecycleState.STOPPED: "Local service stopped",
    LifecycleState.ERR_CONNECTING: "Local service failed to connect",
}


@contextmanager
def lifecycle_progress(
    controller: "SerializedController",
    quiet: bool = False,
    description: str | None = None,
) -> Generator[None, None, None]:
    """Show a transient spinner that follows lifecycle state changes.

    Args:
        controller: Controller whose state changes drive the spinner.
        quiet: If True, show nothing.
        description: Label shown until the first state change (default: the
            description of the current state).
    """
    if quiet:
        yield
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        task = progress.add_task(
            description or STATE_DESCRIPTIONS[controller.current()], total=None
        )

        def on_change(old: LifecycleState, new: LifecycleState) -> None:
            progress.update(task, description=STATE_DESCRIPTIONS[new])

        unsubscribe = controller.subscribe(on_change)
        try:
            yield
        finally:
            unsubscribe()
