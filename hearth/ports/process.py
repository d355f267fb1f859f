"""Port interface for controlling the local service process.

Defines the protocol the lifecycle controller uses to launch, stop, and locate
the local service. The spawning mechanism itself lives in an adapter.
"""

from typing import Protocol


class ProcessLifecycle(Protocol):
    """Protocol for managing the local service process."""

    async def install_and_start(self) -> None:
        """Install and launch the service if it is not already running.

        Must be idempotent: a no-op when the service is already up.

        Raises:
            UserCancelledError: If the operator declined or aborted the launch.
            LaunchError: If the service could not be launched.
        """
        ...

    async def stop(self) -> None:
        """Stop the service.

        Raises:
            StopError: If the service could not be stopped.
        """
        ...

    async def get_service_address(self) -> str | None:
        """Get the address the running service is reachable at.

        Returns:
            Service URI, or None if the address is not available.

        Raises:
            AddressUnavailableError: If looking up the address failed.
        """
        ...
