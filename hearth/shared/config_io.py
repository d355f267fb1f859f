"""Configuration I/O utilities for reading and writing TOML config files.

This module handles serialization/deserialization of HearthConfig to/from TOML format.
"""

import os
import platform
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from hearth.domain.config import HearthConfig


def get_global_config_path() -> Path:
    """Get the path to the global config file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/hearth/config.toml or ~/.config/hearth/config.toml
    - Windows: %APPDATA%/hearth/config.toml

    Returns:
        Path to the global config file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "hearth" / "config.toml"
        return Path.home() / ".config" / "hearth" / "config.toml"

    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / "hearth" / "config.toml"
    return Path.home() / ".config" / "hearth" / "config.toml"


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Args:
        path: Path to config.toml file

    Returns:
        Dictionary with parsed TOML data

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def load_config(path: Path) -> HearthConfig:
    """Load configuration from a TOML file on top of the defaults.

    Args:
        path: Path to config.toml file

    Returns:
        Parsed HearthConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed or fails validation
    """
    data = load_config_data(path)
    return HearthConfig.from_partial(HearthConfig.default(), data)


def config_to_data(config: HearthConfig) -> dict[str, Any]:
    """Convert a HearthConfig to TOML-serializable data.

    TOML has no null, so unset optional values are omitted.
    """
    service: dict[str, Any] = {
        "command": config.service.command,
        "state_dir": config.service.state_dir,
        "confirm_launch": config.service.confirm_launch,
    }
    if config.service.address is not None:
        service["address"] = config.service.address

    return {
        "service": service,
        "readiness": {
            "external_address": config.readiness.external_address,
            "timeout": config.readiness.timeout,
            "interval": config.readiness.interval,
            "health_path": config.readiness.health_path,
            "request_timeout": config.readiness.request_timeout,
            "verify_tls": config.readiness.verify_tls,
        },
        "notify": {
            "help_url": config.notify.help_url,
            "open_links": config.notify.open_links,
        },
    }


def save_config(config: HearthConfig, path: Path) -> None:
    """Save configuration to a TOML file.

    Args:
        config: HearthConfig to save
        path: Destination path for config.toml
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(config_to_data(config), f)


def create_default_config_file(path: Path) -> None:
    """Create a default config.toml file with comments.

    Args:
        path: Destination path for config.toml
    """
    defaults = HearthConfig.default()
    # Template string keeps the comments
    template = f"""\
# Hearth Configuration
# Created by: hearth config init

[service]
# Command that launches the local service, e.g. ["my-service", "--port", "0"].
# Leave empty if the service is started by something else (use 'hearth wait').
command = []

# Directory for PID, address and log files
state_dir = "{defaults.service.state_dir}"

# Static service address, used when the service does not write its address
# to the file named in $HEARTH_ADDRESS_FILE
# address = "http://localhost:9090"

# Ask before launching the service
confirm_launch = false

[readiness]
# Address of an externally managed service ('hearth wait')
external_address = "{defaults.readiness.external_address}"

# Seconds to wait for an externally managed service, and between probes
timeout = {defaults.readiness.timeout:g}
interval = {defaults.readiness.interval:g}

# Path appended to the address when probing (e.g. "/health")
health_path = ""

# Per-request timeout in seconds
request_timeout = {defaults.readiness.request_timeout:g}

# Verify TLS certificates (local services are often self-signed)
verify_tls = false

[notify]
# Documentation link offered with startup warnings
help_url = "{defaults.notify.help_url}"

# Open the help link in a browser when a startup error occurs
open_links = false
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(template)
