"""Port interface for binding connections to the local service."""

from typing import Protocol

from hearth.domain.entities import Connection


class ConnectionBinder(Protocol):
    """Protocol for creating and releasing connections.

    The binder owns the registry of live connections. The lifecycle controller
    asks it for a connection once the service is reachable and releases the
    connection again on stop or rebind.
    """

    async def bind(self, address: str) -> Connection:
        """Establish a connection to the service at `address`.

        Args:
            address: Service URI.

        Returns:
            The bound Connection.

        Raises:
            BindError: If the service at `address` could not be bound.
        """
        ...

    async def release(self, connection: Connection) -> None:
        """Release a connection and drop it from the registry.

        Args:
            connection: Connection previously returned by bind().
        """
        ...
