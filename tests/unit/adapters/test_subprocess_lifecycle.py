"""Unit tests for the subprocess-backed process lifecycle."""

import asyncio
import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from hearth.adapters.process.subprocess_lifecycle import (
    ADDRESS_FILE_ENV,
    SubprocessLifecycle,
)
from hearth.core.readiness import ReadinessPoller
from hearth.domain.exceptions import LaunchError, StopError, UserCancelledError
from tests.helpers.fakes import FakeClock, FakeProbe

SERVICE_URL = "http://127.0.0.1:9090"


@pytest.fixture
def lifecycle(tmp_path: Path) -> SubprocessLifecycle:
    """Create a SubprocessLifecycle with state files under tmp_path."""
    return SubprocessLifecycle(
        command=["my-service", "--port", "0"],
        state_dir=tmp_path,
        poller=ReadinessPoller(clock=FakeClock()),
        ready_timeout=3,
        ready_interval=1,
    )


class TestInit:
    def test_default_state_dir_is_home_hearth(self, isolated_home: Path) -> None:
        lifecycle = SubprocessLifecycle(command=[])

        assert lifecycle.state_dir == isolated_home / ".hearth"
        assert lifecycle.pid_file == isolated_home / ".hearth" / "service.pid"
        assert lifecycle.address_file == isolated_home / ".hearth" / "service.url"

    def test_command_is_copied(self) -> None:
        command = ["svc"]
        lifecycle = SubprocessLifecycle(command=command)
        command.append("--extra")

        assert lifecycle.command == ["svc"]


class TestProcessInspection:
    def test_get_pid_missing_file(self, lifecycle: SubprocessLifecycle) -> None:
        assert lifecycle.get_pid() is None

    def test_get_pid_invalid_contents(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("not-a-pid")
        assert lifecycle.get_pid() is None

    def test_get_pid_valid(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("4242\n")
        assert lifecycle.get_pid() == 4242

    def test_current_process_is_alive(self, lifecycle: SubprocessLifecycle) -> None:
        assert lifecycle.is_process_alive(os.getpid()) is True

    def test_missing_process_is_dead(self, lifecycle: SubprocessLifecycle) -> None:
        with patch("os.kill", side_effect=ProcessLookupError):
            assert lifecycle.is_process_alive(4242) is False

    def test_is_running_without_pid_file(self, lifecycle: SubprocessLifecycle) -> None:
        assert lifecycle.is_running() is False


class TestReadAddress:
    def test_published_address(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.address_file.write_text(SERVICE_URL + "\n")
        assert lifecycle.read_address() == SERVICE_URL

    def test_static_address_fallback(self, tmp_path: Path) -> None:
        lifecycle = SubprocessLifecycle(
            command=["svc"], state_dir=tmp_path, static_address=SERVICE_URL
        )
        assert lifecycle.read_address() == SERVICE_URL

    def test_empty_address_file(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.address_file.write_text("  \n")
        assert lifecycle.read_address() is None

    def test_dead_process_has_no_address(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("4242")
        lifecycle.address_file.write_text(SERVICE_URL)

        with patch.object(lifecycle, "is_process_alive", return_value=False):
            assert lifecycle.read_address() is None

    def test_cleanup_removes_stale_files(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("4242")
        lifecycle.address_file.write_text(SERVICE_URL)

        with patch.object(lifecycle, "is_process_alive", return_value=False):
            lifecycle.cleanup_stale_files()

        assert not lifecycle.pid_file.exists()
        assert not lifecycle.address_file.exists()

    def test_cleanup_keeps_live_files(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("4242")
        lifecycle.address_file.write_text(SERVICE_URL)

        with patch.object(lifecycle, "is_process_alive", return_value=True):
            lifecycle.cleanup_stale_files()

        assert lifecycle.pid_file.exists()
        assert lifecycle.address_file.exists()


class TestSpawn:
    def test_spawn_detaches_and_sets_address_file_env(
        self, lifecycle: SubprocessLifecycle
    ) -> None:
        with patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = MagicMock(pid=4242)

            lifecycle._spawn_background_process()

            args, kwargs = mock_popen.call_args
            assert args[0] == ["my-service", "--port", "0"]
            assert kwargs["start_new_session"] is True
            assert kwargs["env"][ADDRESS_FILE_ENV] == str(lifecycle.address_file)

    def test_spawn_keeps_user_address_file_env(
        self, lifecycle: SubprocessLifecycle
    ) -> None:
        with patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = MagicMock(pid=4242)
            with patch.dict(os.environ, {ADDRESS_FILE_ENV: "/custom/url"}):
                lifecycle._spawn_background_process()

            assert mock_popen.call_args[1]["env"][ADDRESS_FILE_ENV] == "/custom/url"

    def test_spawn_sends_output_to_log_file(self, lifecycle: SubprocessLifecycle) -> None:
        with patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = MagicMock(pid=4242)

            lifecycle._spawn_background_process()

            kwargs = mock_popen.call_args[1]
            assert os.fspath(kwargs["stdout"].name) == str(lifecycle.log_file)
            assert kwargs["stderr"] == subprocess.STDOUT
            assert subprocess.PIPE not in (kwargs["stdout"], kwargs["stderr"])
        assert lifecycle.log_file.exists()

    def test_instant_failure_reports_logged_output(
        self, lifecycle: SubprocessLifecycle
    ) -> None:
        lifecycle.log_file.write_text("output from an earlier run\n")
        with patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = MagicMock(pid=4242)
            lifecycle._spawn_background_process()
        with open(lifecycle.log_file, "a") as log:
            log.write("port already in use\n")
        process = MagicMock()
        process.poll.return_value = 2
        lifecycle.pid_file.write_text("4242")

        with patch("time.sleep"):
            with pytest.raises(LaunchError) as exc_info:
                lifecycle._check_instant_failure(process)

        assert "exit code: 2" in exc_info.value.message
        assert "port already in use" in exc_info.value.message
        assert "earlier run" not in exc_info.value.message
        assert str(lifecycle.log_file) in exc_info.value.hint
        assert not lifecycle.pid_file.exists()

    @pytest.mark.slow
    def test_service_writing_to_stderr_keeps_running(self, tmp_path: Path) -> None:
        script = (
            "import sys, time\n"
            "for _ in range(20):\n"
            "    sys.stderr.write('request handled\\n'); sys.stderr.flush()\n"
            "    time.sleep(0.02)\n"
            "time.sleep(5)\n"
        )
        lifecycle = SubprocessLifecycle(
            command=[sys.executable, "-c", script], state_dir=tmp_path
        )

        pid = lifecycle._launch()
        try:
            time.sleep(0.5)
            assert lifecycle.is_process_alive(pid)
            assert "request handled" in lifecycle.log_file.read_text()
        finally:
            lifecycle._stop_pid(pid)

    def test_launch_spawn_error_becomes_launch_error(
        self, lifecycle: SubprocessLifecycle
    ) -> None:
        with patch("subprocess.Popen", side_effect=FileNotFoundError("my-service")):
            with pytest.raises(LaunchError, match="Failed to start local service"):
                lifecycle._launch()


class TestInstallAndStart:
    def test_already_running_does_not_launch(
        self, lifecycle: SubprocessLifecycle
    ) -> None:
        with (
            patch.object(lifecycle, "is_running", return_value=True),
            patch.object(lifecycle, "_launch") as mock_launch,
        ):
            asyncio.run(lifecycle.install_and_start())

        mock_launch.assert_not_called()

    def test_no_command_is_launch_error(self, tmp_path: Path) -> None:
        lifecycle = SubprocessLifecycle(command=[], state_dir=tmp_path)

        with pytest.raises(LaunchError, match="No service command configured") as exc_info:
            asyncio.run(lifecycle.install_and_start())

        assert "hearth wait" in exc_info.value.hint

    def test_declined_confirmation_cancels(self, tmp_path: Path) -> None:
        lifecycle = SubprocessLifecycle(
            command=["svc"], state_dir=tmp_path, confirm=lambda: False
        )

        with patch.object(lifecycle, "_launch") as mock_launch:
            with pytest.raises(UserCancelledError):
                asyncio.run(lifecycle.install_and_start())

        mock_launch.assert_not_called()

    def test_launch_waits_until_address_answers(self, tmp_path: Path) -> None:
        probe = FakeProbe(results=[False], default=True)
        lifecycle = SubprocessLifecycle(
            command=["svc"],
            state_dir=tmp_path,
            probe=probe,
            poller=ReadinessPoller(clock=FakeClock()),
            ready_timeout=5,
            ready_interval=1,
        )
        lifecycle.address_file.write_text(SERVICE_URL)

        with patch.object(lifecycle, "_launch", return_value=4242):
            asyncio.run(lifecycle.install_and_start())

        assert probe.calls == [SERVICE_URL, SERVICE_URL]

    def test_unresponsive_process_is_terminated(
        self, lifecycle: SubprocessLifecycle
    ) -> None:
        with (
            patch.object(lifecycle, "_launch", return_value=4242),
            patch.object(lifecycle, "is_process_alive", return_value=True),
            patch.object(lifecycle, "_stop_pid", return_value=True) as mock_stop,
        ):
            with pytest.raises(LaunchError, match="did not answer after 3s"):
                asyncio.run(lifecycle.install_and_start())

        mock_stop.assert_called_once_with(4242)

    def test_process_dying_during_startup(self, lifecycle: SubprocessLifecycle) -> None:
        with (
            patch.object(lifecycle, "_launch", return_value=4242),
            patch.object(lifecycle, "is_process_alive", return_value=False),
        ):
            with pytest.raises(LaunchError, match="exited unexpectedly"):
                asyncio.run(lifecycle.install_and_start())


class TestStop:
    def test_stop_without_pid_file(self, lifecycle: SubprocessLifecycle) -> None:
        asyncio.run(lifecycle.stop())

    def test_stop_escalates_to_sigkill(self, lifecycle: SubprocessLifecycle) -> None:
        with (
            patch.object(
                lifecycle, "_send_signal_and_wait", side_effect=[False, True]
            ) as mock_send,
        ):
            assert lifecycle._stop_pid(4242) is True

        sent = [c.args[1] for c in mock_send.call_args_list]
        assert sent == [signal.SIGTERM, signal.SIGKILL]

    def test_graceful_stop_skips_sigkill(self, lifecycle: SubprocessLifecycle) -> None:
        with patch.object(
            lifecycle, "_send_signal_and_wait", return_value=True
        ) as mock_send:
            assert lifecycle._stop_pid(4242) is True

        mock_send.assert_called_once()

    def test_survivor_raises_stop_error(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("4242")

        with (
            patch.object(lifecycle, "is_process_alive", return_value=True),
            patch.object(lifecycle, "_stop_pid", return_value=False),
        ):
            with pytest.raises(StopError) as exc_info:
                asyncio.run(lifecycle.stop())

        assert str(lifecycle.pid_file) in exc_info.value.hint

    def test_stop_cleans_up_files(self, lifecycle: SubprocessLifecycle) -> None:
        lifecycle.pid_file.write_text("4242")
        lifecycle.address_file.write_text(SERVICE_URL)
        alive = iter([True, False, False])

        with (
            patch.object(lifecycle, "is_process_alive", side_effect=lambda pid: next(alive)),
            patch.object(lifecycle, "_stop_pid", return_value=True),
        ):
            asyncio.run(lifecycle.stop())

        assert not lifecycle.pid_file.exists()
        assert not lifecycle.address_file.exists()
