"""Domain exceptions for Hearth lifecycle logic.

These exceptions are raised by lifecycle collaborators (process control,
connection binding) and caught at the controller boundary, where they are
converted into a state transition plus a single operator notification.
"""


class HearthDomainError(Exception):
    """Base exception for all domain errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class UserCancelledError(HearthDomainError):
    """Raised when the operator declines or aborts a launch.

    Not a failure: the controller swallows it without notifying.
    """

    def __init__(self, message: str = "Cancelled by user", hint: str | None = None) -> None:
        super().__init__(message, hint)


class LaunchError(HearthDomainError):
    """Raised when the local service could not be installed or launched."""

    pass


class StopError(HearthDomainError):
    """Raised when the local service could not be stopped."""

    pass


class AddressUnavailableError(HearthDomainError):
    """Raised when the address of the running service cannot be determined."""

    pass


class BindError(HearthDomainError):
    """Raised when a connection to the service address cannot be established."""

    pass
