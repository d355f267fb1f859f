"""HTTP connection binder and connection registry.

Binding a connection asks the service for its environment, which confirms the
address really serves the expected API and yields an identity for the
connection. Live connections are tracked in a registry so they can be released
exactly once.
"""

from __future__ import annotations

import logging
import uuid

import httpx

from hearth.core.timeouts import LifecycleTimeouts
from hearth.domain.entities import Connection
from hearth.domain.exceptions import BindError

logger = logging.getLogger(__name__)

ENVIRONMENT_PATH = "/api/v1/environment"
IDENTITY_KEYS = ("workspace_id", "id")


class ConnectionRegistry:
    """In-memory registry of live connections."""

    def __init__(self) -> None:
        self._connections: dict[Connection, None] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    def add(self, connection: Connection) -> None:
        self._connections[connection] = None

    def remove(self, connection: Connection) -> bool:
        """Remove a connection.

        Returns:
            True if the connection was registered.
        """
        if connection not in self._connections:
            return False
        del self._connections[connection]
        return True

    def all(self) -> list[Connection]:
        return list(self._connections)


class HttpConnectionBinder:
    """Binds connections by querying the service environment endpoint.

    Args:
        registry: Registry tracking live connections (default: a new one).
        timeout: Per-request timeout in seconds.
        verify_tls: Verify TLS certificates.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        timeout: float = LifecycleTimeouts.HTTP_REQUEST,
        verify_tls: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.timeout = timeout
        self.verify_tls = verify_tls
        self._transport = transport

    async def _fetch_environment(self, address: str) -> dict:
        url = address.rstrip("/") + ENVIRONMENT_PATH
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify_tls,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BindError(
                f"Service at {address} rejected the connection "
                f"(HTTP {e.response.status_code})"
            ) from e
        except httpx.HTTPError as e:
            raise BindError(f"Could not connect to service at {address}: {e}") from e

        try:
            data = response.json()
        except ValueError:
            logger.debug(f"Environment response from {url} is not JSON")
            return {}
        return data if isinstance(data, dict) else {}

    async def bind(self, address: str) -> Connection:
        """Create a connection to the service at `address`.

        Raises:
            BindError: If the service cannot be reached or rejects the request.
        """
        environment = await self._fetch_environment(address)
        identity = next(
            (str(environment[key]) for key in IDENTITY_KEYS if environment.get(key)),
            None,
        )
        if identity is None:
            identity = uuid.uuid4().hex
            logger.debug(f"Service at {address} reported no identity, using {identity}")

        connection = Connection(address=address, identity=identity)
        self.registry.add(connection)
        logger.info(f"Bound connection {identity} to {address}")
        return connection

    async def release(self, connection: Connection) -> None:
        """Release a connection and remove it from the registry."""
        if self.registry.remove(connection):
            logger.info(f"Released connection {connection.identity} to {connection.address}")
        else:
            logger.debug(f"Connection {connection.identity} was not registered")
