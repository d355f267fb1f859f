"""Console operator notifier.

Prints lifecycle progress, warnings and errors to the terminal with click,
rendering attached actions as hint lines.
"""

import logging
from collections.abc import Sequence

import click

from hearth.domain.entities import OperatorAction

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """Operator notifier that writes to stderr.

    Args:
        quiet: Suppress progress messages (warnings and errors still show).
        open_links: Open the first action link in a browser on warnings and errors.
    """

    def __init__(self, quiet: bool = False, open_links: bool = False) -> None:
        self.quiet = quiet
        self.open_links = open_links

    def _show_actions(self, actions: Sequence[OperatorAction]) -> None:
        for action in actions:
            click.echo(f"  {action.label}: {action.url}", err=True)
        if self.open_links and actions:
            # click.launch returns a non-zero code when no browser is available
            if click.launch(actions[0].url) != 0:
                logger.debug(f"Could not open {actions[0].url}")

    def notify_progress(self, message: str) -> None:
        logger.info(message)
        if not self.quiet:
            click.secho(message, fg="cyan", err=True)

    def notify_warning(self, message: str, actions: Sequence[OperatorAction] = ()) -> None:
        logger.warning(message)
        click.secho(f"⚠ {message}", fg="yellow", err=True)
        self._show_actions(actions)

    def notify_error(self, message: str, actions: Sequence[OperatorAction] = ()) -> None:
        logger.error(message)
        click.secho(f"✗ {message}", fg="red", err=True)
        self._show_actions(actions)
