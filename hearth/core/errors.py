"""CLI error handling with actionable hints.

Provides consistent error formatting and common error factory functions
for all hearth CLI commands.
"""

from typing import NoReturn

import click


class HearthCliError(click.ClickException):
    """CLI error with actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.

    Example:
        raise HearthCliError(
            "Local service failed to start",
            hint="Run 'hearth status' for details"
        )
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present."""
        msg = self.message
        if self.hint:
            msg += f"\nHint: {self.hint}"
        return msg


def start_failed_error() -> NoReturn:
    """Raise error when the local service could not be started and bound.

    Raises:
        HearthCliError: Always raises with status hint.
    """
    raise HearthCliError(
        "Failed to start the local service",
        hint="Check 'hearth status' for details, or try 'hearth restart'",
    )


def wait_failed_error(address: str) -> NoReturn:
    """Raise error when an externally managed service never came up.

    Args:
        address: Address that was polled.

    Raises:
        HearthCliError: Always raises with address context.
    """
    raise HearthCliError(
        f"Local service at {address} did not come up",
        hint="Check that the service is running, or raise [readiness] timeout",
    )


def stop_failed_error() -> NoReturn:
    """Raise error when the service process could not be stopped.

    Raises:
        HearthCliError: Always raises with cleanup hint.
    """
    raise HearthCliError(
        "Failed to stop the local service",
        hint="The process may need manual cleanup. Check 'hearth status'",
    )
