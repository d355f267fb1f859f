"""Tests for the lifecycle progress spinner."""

from unittest.mock import MagicMock, patch

from hearth.core.progress import STATE_DESCRIPTIONS, lifecycle_progress
from hearth.domain.entities import LifecycleState


def make_controller() -> MagicMock:
    controller = MagicMock()
    controller.current.return_value = LifecycleState.STOPPED
    controller.subscribe.return_value = MagicMock(name="unsubscribe")
    return controller


def test_every_state_has_a_description():
    assert set(STATE_DESCRIPTIONS) == set(LifecycleState)


def test_quiet_does_not_subscribe():
    controller = make_controller()

    with lifecycle_progress(controller, quiet=True):
        pass

    controller.subscribe.assert_not_called()


def test_state_changes_update_description():
    controller = make_controller()

    with patch("hearth.core.progress.Progress") as mock_progress_cls:
        progress = mock_progress_cls.return_value.__enter__.return_value
        progress.add_task.return_value = 7

        with lifecycle_progress(controller):
            on_change = controller.subscribe.call_args[0][0]
            on_change(LifecycleState.STOPPED, LifecycleState.STARTING)

    progress.add_task.assert_called_once_with(
        STATE_DESCRIPTIONS[LifecycleState.STOPPED], total=None
    )
    progress.update.assert_called_once_with(
        7, description=STATE_DESCRIPTIONS[LifecycleState.STARTING]
    )
    controller.subscribe.return_value.assert_called_once_with()


def test_description_overrides_first_label():
    controller = make_controller()

    with patch("hearth.core.progress.Progress") as mock_progress_cls:
        progress = mock_progress_cls.return_value.__enter__.return_value

        with lifecycle_progress(controller, description="Launching local service..."):
            pass

    progress.add_task.assert_called_once_with("Launching local service...", total=None)
