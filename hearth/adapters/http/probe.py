"""HTTP readiness probe.

Checks whether something is listening at a service address. Any HTTP response
below 500 counts as reachable: the service may still reject the request (401,
404), but it is up and answering.
"""

import logging

import httpx

from hearth.core.timeouts import LifecycleTimeouts

logger = logging.getLogger(__name__)


class HttpReadinessProbe:
    """Readiness probe that issues a GET against the service address.

    Args:
        health_path: Path appended to the address (e.g. "/health").
        timeout: Per-request timeout in seconds.
        verify_tls: Verify TLS certificates.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        health_path: str = "",
        timeout: float = LifecycleTimeouts.HTTP_REQUEST,
        verify_tls: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.health_path = health_path
        self.timeout = timeout
        self.verify_tls = verify_tls
        self._transport = transport

    def _url(self, address: str) -> str:
        return address.rstrip("/") + self.health_path if self.health_path else address

    async def ping(self, address: str) -> bool:
        """Check whether the service at `address` answers.

        Args:
            address: Service URI.

        Returns:
            True if the service answered with a status below 500.
        """
        url = self._url(address)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify_tls,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.debug(f"Ping {url} failed: {e}")
            return False

        if response.status_code >= 500:
            logger.debug(f"Ping {url} returned {response.status_code}")
            return False
        return True
