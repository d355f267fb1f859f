"""Config domain models for hearth.

Configuration is stored in .hearth/config.toml (local) and
~/.config/hearth/config.toml (global) and describes how the local service is
launched, how readiness is checked, and how the operator is notified. This
module defines the domain models that represent validated configuration state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

DEFAULT_EXTERNAL_ADDRESS = "https://localhost:9090"
DEFAULT_HELP_URL = "https://github.com/hearth-dev/hearth#troubleshooting"


def _require_http_url(name: str, value: str) -> None:
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"{name} must be an http(s) URL, got {value!r}")


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration for the managed local service process.

    Attributes:
        command: Argument vector that launches the service. Empty means the
                 process is managed externally and `start` cannot launch it.
        state_dir: Directory for PID, address and log files (default: ~/.hearth)
        address: Static service address, used when the service does not
                 publish one through its address file.
        confirm_launch: Ask the operator before launching the service.

    Raises:
        ValueError: If address is set but is not an http(s) URL.
    """

    command: list[str] = field(default_factory=list)
    state_dir: str = "~/.hearth"
    address: str | None = None
    confirm_launch: bool = False

    def __post_init__(self) -> None:
        """Validate service config after initialization."""
        if self.address is not None:
            _require_http_url("address", self.address)


@dataclass(frozen=True)
class ReadinessConfig:
    """Configuration for readiness checks.

    Attributes:
        external_address: Well-known address of an externally managed service.
        timeout: Seconds to wait for an externally managed service (default: 180)
        interval: Seconds between readiness probes (default: 2)
        health_path: Path appended to the address when probing (default: "")
        request_timeout: Per-request HTTP timeout in seconds (default: 2.0)
        verify_tls: Verify TLS certificates (local services are often self-signed)

    Raises:
        ValueError: If interval or request_timeout is not positive, or timeout
                    is shorter than one interval.
    """

    external_address: str = DEFAULT_EXTERNAL_ADDRESS
    timeout: float = 180
    interval: float = 2
    health_path: str = ""
    request_timeout: float = 2.0
    verify_tls: bool = False

    def __post_init__(self) -> None:
        """Validate readiness config after initialization."""
        _require_http_url("external_address", self.external_address)
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.timeout < self.interval:
            raise ValueError(
                f"timeout ({self.timeout}) must be at least interval ({self.interval})"
            )
        if self.request_timeout <= 0:
            raise ValueError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )
        if self.health_path and not self.health_path.startswith("/"):
            raise ValueError(
                f"health_path must start with '/', got {self.health_path!r}"
            )


@dataclass(frozen=True)
class NotifyConfig:
    """Configuration for operator notifications.

    Attributes:
        help_url: Documentation link offered with startup warnings and errors.
        open_links: Open the help link in a browser when a startup warning or error occurs.
    """

    help_url: str = DEFAULT_HELP_URL
    open_links: bool = False

    def __post_init__(self) -> None:
        """Validate notify config after initialization."""
        _require_http_url("help_url", self.help_url)


@dataclass(frozen=True)
class HearthConfig:
    """Complete hearth configuration.

    Attributes:
        service: Managed service process configuration
        readiness: Readiness probe configuration
        notify: Operator notification configuration
    """

    service: ServiceConfig = field(default_factory=ServiceConfig)
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)

    @staticmethod
    def default() -> HearthConfig:
        """Create a config with all default values."""
        return HearthConfig(
            service=ServiceConfig(),
            readiness=ReadinessConfig(),
            notify=NotifyConfig(),
        )

    @staticmethod
    def from_partial(base: HearthConfig, data: dict[str, Any]) -> HearthConfig:
        """Overlay raw config data on top of an existing config.

        Keys missing from `data` keep the value from `base`. Each section is
        rebuilt through its dataclass so validation runs on the merged values.

        Args:
            base: Config providing values for anything not in `data`.
            data: Raw TOML data, keyed by section name.

        Returns:
            New HearthConfig with the overrides applied.

        Raises:
            ValueError: If a section is not a table, contains unknown keys,
                        or the merged values fail validation.
        """
        sections: dict[str, Any] = {}
        for section_field in fields(base):
            name = section_field.name
            override = data.get(name)
            if override is None:
                continue
            if not isinstance(override, dict):
                raise ValueError(f"[{name}] must be a table, got {type(override).__name__}")

            current = getattr(base, name)
            known = {f.name for f in fields(current)}
            unknown = set(override) - known
            if unknown:
                raise ValueError(
                    f"Unknown key(s) in [{name}]: {', '.join(sorted(unknown))}"
                )
            try:
                sections[name] = replace(current, **override)
            except TypeError as e:
                raise ValueError(f"Invalid value in [{name}]: {e}") from e

        return replace(base, **sections)
