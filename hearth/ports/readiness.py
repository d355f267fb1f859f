"""Port interface for readiness probes."""

from typing import Protocol


class ReadinessProbe(Protocol):
    """Protocol for side-effect-free reachability checks."""

    async def ping(self, address: str) -> bool:
        """Check whether the service at `address` is reachable.

        May raise on transient failures; callers treat that as "not ready".

        Args:
            address: Service URI.

        Returns:
            True if the service answered.
        """
        ...
