"""Operator notification port.

Defines the callback interface the lifecycle controller uses to tell the
operator about progress, warnings, and errors, without the core depending on a
specific UI library.
"""

from collections.abc import Sequence
from typing import Protocol

from hearth.domain.entities import OperatorAction


class OperatorNotifier(Protocol):
    """Protocol for fire-and-forget operator notifications.

    Implementations must not block and must not raise.
    """

    def notify_progress(self, message: str) -> None:
        """Report a non-fatal progress update.

        Args:
            message: Progress message (e.g. "Waiting for the service to start...").
        """
        ...

    def notify_warning(self, message: str, actions: Sequence[OperatorAction] = ()) -> None:
        """Report a warning the operator may act on.

        Args:
            message: Warning message.
            actions: Actions offered alongside the message.
        """
        ...

    def notify_error(self, message: str, actions: Sequence[OperatorAction] = ()) -> None:
        """Report a failure.

        Args:
            message: Error message.
            actions: Actions offered alongside the message.
        """
        ...
