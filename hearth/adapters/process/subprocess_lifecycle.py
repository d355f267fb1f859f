"""Local service process management (launch/stop/locate).

Handles spawning, stopping, and monitoring the local service process, and
reading the address the service publishes once it is listening.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import subprocess
import time
from collections.abc import Callable
from pathlib import Path

from hearth.core.readiness import ReadinessPoller
from hearth.core.timeouts import LifecycleTimeouts
from hearth.domain.exceptions import (
    AddressUnavailableError,
    LaunchError,
    StopError,
    UserCancelledError,
)
from hearth.ports.readiness import ReadinessProbe

logger = logging.getLogger(__name__)

ADDRESS_FILE_ENV = "HEARTH_ADDRESS_FILE"


class SubprocessLifecycle:
    """Process lifecycle backed by a detached subprocess.

    The service is launched from `command` in its own session. Its PID is
    recorded in `service.pid` under the state directory. A running service
    publishes its address by writing it to the file named in the
    HEARTH_ADDRESS_FILE environment variable; without that file the static
    address is used.
    """

    def __init__(
        self,
        command: list[str],
        state_dir: Path | None = None,
        static_address: str | None = None,
        probe: ReadinessProbe | None = None,
        poller: ReadinessPoller | None = None,
        confirm: Callable[[], bool] | None = None,
        ready_timeout: float = LifecycleTimeouts.READY_WAIT,
        ready_interval: float = LifecycleTimeouts.READY_CHECK_INTERVAL,
    ):
        """Initialize lifecycle manager.

        Args:
            command: Argument vector that launches the service
            state_dir: Directory for PID, address and log files (default: ~/.hearth)
            static_address: Address to use when the service publishes none
            probe: Reachability check run against the published address
            poller: Poller used to wait for the launched service
            confirm: Asked before launching; returning False cancels the launch
            ready_timeout: Seconds to wait for the launched service to answer
            ready_interval: Seconds between readiness checks
        """
        self.command = list(command)
        self.state_dir = state_dir or (Path.home() / ".hearth")
        self.pid_file = self.state_dir / "service.pid"
        self.address_file = self.state_dir / "service.url"
        self.log_file = self.state_dir / "service.log"
        self.static_address = static_address
        self.ready_timeout = ready_timeout
        self.ready_interval = ready_interval
        self._probe = probe
        self._poller = poller or ReadinessPoller()
        self._confirm = confirm
        self._log_offset = 0

    # ----- Process inspection -----

    def get_pid(self) -> int | None:
        """Get service PID from PID file.

        Returns:
            PID if file exists and contains valid PID, else None
        """
        if not self.pid_file.exists():
            return None

        try:
            pid_str = self.pid_file.read_text().strip()
            return int(pid_str)
        except (OSError, ValueError):
            return None

    def is_process_alive(self, pid: int) -> bool:
        """Check if a process is alive.

        Args:
            pid: Process ID

        Returns:
            True if process exists and is not a zombie
        """
        try:
            self._reap_zombie(pid)
            # Signal 0 only checks that the process exists
            os.kill(pid, 0)
            return True
        except OSError:
            return False

    def is_running(self) -> bool:
        """Check if the service process recorded in the PID file is alive."""
        pid = self.get_pid()
        return pid is not None and self.is_process_alive(pid)

    def _reap_zombie(self, pid: int) -> None:
        with contextlib.suppress(ChildProcessError, OSError):
            os.waitpid(pid, os.WNOHANG)

    def read_address(self) -> str | None:
        """Read the address the service published.

        Returns:
            Published address, the static address if none was published, or
            None if the recorded process is dead.

        Raises:
            AddressUnavailableError: If the address file exists but cannot be read.
        """
        pid = self.get_pid()
        if pid is not None and not self.is_process_alive(pid):
            return None

        if self.address_file.exists():
            try:
                address = self.address_file.read_text(encoding="utf-8").strip()
            except OSError as e:
                raise AddressUnavailableError(
                    f"Failed to read service address from {self.address_file}: {e}"
                ) from e
            return address or None

        return self.static_address

    def cleanup_stale_files(self) -> None:
        """Clean up stale PID and address files."""
        pid = self.get_pid()
        if pid is not None and not self.is_process_alive(pid):
            logger.info(f"Removing stale PID file (process {pid} not found)")
            self.pid_file.unlink(missing_ok=True)
            pid = None

        if pid is None and self.address_file.exists():
            logger.info(f"Removing stale address file: {self.address_file}")
            self.address_file.unlink(missing_ok=True)

    # ----- Launch -----

    def _spawn_background_process(self) -> subprocess.Popen:
        """Spawn the service as a detached background process.

        The service's stdout and stderr are appended to the log file, so the
        service keeps a writable output for as long as it runs.

        Returns:
            The spawned process
        """
        logger.info(f"Starting local service: {' '.join(self.command)}")

        env = os.environ.copy()
        env.setdefault(ADDRESS_FILE_ENV, str(self.address_file))

        # The child keeps its own copy of the log descriptor
        with open(self.log_file, "ab") as log:
            self._log_offset = log.tell()
            return subprocess.Popen(
                self.command,
                stdout=log,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
                env=env,
            )

    def _write_pid_file(self, process: subprocess.Popen) -> None:
        """Write PID file for the spawned process.

        Raises:
            LaunchError: If PID file cannot be written
        """
        try:
            self.pid_file.write_text(str(process.pid))
            logger.info(f"Local service started with PID {process.pid}")
        except OSError as e:
            # Terminate so the process is not orphaned without a PID file
            process.terminate()
            raise LaunchError(f"Failed to write PID file: {e}") from e

    def _read_log_tail(self, max_lines: int = 20) -> str:
        """Read the last lines the service logged since the latest launch."""
        try:
            with open(self.log_file, "rb") as log:
                log.seek(self._log_offset)
                output = log.read().decode("utf-8", errors="replace")
        except OSError:
            logger.debug(f"Failed to read service log {self.log_file}")
            return ""
        return "\n".join(output.strip().splitlines()[-max_lines:])

    def _check_instant_failure(self, process: subprocess.Popen) -> None:
        """Check if the process failed immediately after spawn.

        Raises:
            LaunchError: If process exited immediately
        """
        time.sleep(LifecycleTimeouts.INSTANT_FAILURE_WAIT)
        exit_code = process.poll()
        if exit_code is not None:
            self.pid_file.unlink(missing_ok=True)
            output = self._read_log_tail()

            error_msg = f"Local service failed to start (exit code: {exit_code})"
            if output:
                error_msg += f"\nOutput: {output}"
            raise LaunchError(
                error_msg,
                hint=f"Check the service command: {self.command}\n"
                f"Full output in: {self.log_file}",
            )

    def _launch(self) -> int:
        """Spawn the service and record its PID.

        Returns:
            PID of the spawned process

        Raises:
            LaunchError: If the process could not be spawned or died at once
        """
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.cleanup_stale_files()

        try:
            process = self._spawn_background_process()
        except OSError as e:
            raise LaunchError(f"Failed to start local service: {e}") from e

        self._write_pid_file(process)
        self._check_instant_failure(process)
        return process.pid

    async def _probe_launched(self) -> bool:
        address = await asyncio.to_thread(self.read_address)
        if not address:
            return False
        if self._probe is None:
            return True
        return await self._probe.ping(address)

    async def install_and_start(self) -> None:
        """Launch the service unless it is already running.

        Raises:
            UserCancelledError: If the confirm callback declined the launch
            LaunchError: If the service could not be launched or never answered
        """
        if await asyncio.to_thread(self.is_running):
            logger.info("Local service already running")
            return

        if not self.command:
            raise LaunchError(
                "No service command configured",
                hint="Set 'command' under [service] in config.toml, "
                "or use 'hearth wait' for an externally managed service",
            )

        if self._confirm is not None and not self._confirm():
            raise UserCancelledError()

        pid = await asyncio.to_thread(self._launch)

        result = await self._poller.wait_until_ready(
            self._probe_launched, self.ready_interval, self.ready_timeout
        )
        if result.is_ready:
            return

        if await asyncio.to_thread(self.is_process_alive, pid):
            logger.warning(
                f"Local service process {pid} not responding after "
                f"{self.ready_timeout:g}s, terminating..."
            )
            await asyncio.to_thread(self._stop_pid, pid)
            raise LaunchError(
                f"Local service started but did not answer after {self.ready_timeout:g}s. "
                "Process was terminated.",
                hint=f"Check service logs at: {self.log_file}",
            )
        self.pid_file.unlink(missing_ok=True)
        raise LaunchError(
            f"Local service process {pid} exited unexpectedly during startup",
            hint=f"Check service logs at: {self.log_file}",
        )

    # ----- Stop -----

    def _wait_for_death(self, pid: int, timeout_secs: float) -> bool:
        """Wait for a process to die within the given timeout.

        Returns:
            True if process died, False if still alive after timeout
        """
        check_interval = LifecycleTimeouts.DEATH_CHECK_INTERVAL
        checks = max(1, int(timeout_secs / check_interval))
        for _ in range(checks):
            time.sleep(check_interval)
            if not self.is_process_alive(pid):
                return True
        return False

    def _send_signal_and_wait(
        self, pid: int, sig: signal.Signals, timeout_secs: float
    ) -> bool | None:
        """Send a signal to a process and wait for it to die.

        Returns:
            True if process died, False if still alive after timeout,
            None if signal failed (process may have died or permission error)
        """
        try:
            os.kill(pid, sig)
        except OSError:
            return None

        return self._wait_for_death(pid, timeout_secs)

    def _stop_pid(self, pid: int) -> bool:
        """Stop a process with SIGTERM, escalating to SIGKILL.

        Returns:
            True if the process is gone
        """
        logger.info(f"Stopping local service (PID {pid})...")
        result = self._send_signal_and_wait(
            pid, signal.SIGTERM, LifecycleTimeouts.SIGTERM_WAIT
        )
        if result is True:
            logger.info("Local service stopped gracefully")
            return True
        if result is None and not self.is_process_alive(pid):
            logger.info("Process already dead")
            return True

        logger.warning("Local service did not stop gracefully, sending SIGKILL...")
        result = self._send_signal_and_wait(
            pid, signal.SIGKILL, LifecycleTimeouts.SIGKILL_WAIT
        )
        if result is True or (result is None and not self.is_process_alive(pid)):
            logger.info("Local service force-killed")
            return True

        logger.error("Local service survived SIGKILL")
        return False

    def _stop_sync(self) -> bool:
        pid = self.get_pid()
        if pid is None:
            logger.info("Local service not running (no PID file)")
            self.cleanup_stale_files()
            return True

        if not self.is_process_alive(pid):
            logger.info(f"Local service not running (process {pid} not found)")
            self.cleanup_stale_files()
            return True

        if self._stop_pid(pid):
            self.cleanup_stale_files()
            return True
        return False

    async def stop(self) -> None:
        """Stop the service.

        Raises:
            StopError: If the process survived SIGKILL
        """
        if not await asyncio.to_thread(self._stop_sync):
            raise StopError(
                "Local service could not be stopped",
                hint=f"Manual cleanup required; PID file: {self.pid_file}",
            )

    async def get_service_address(self) -> str | None:
        """Get the address of the running service, if any."""
        return await asyncio.to_thread(self.read_address)
