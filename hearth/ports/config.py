"""Configuration provider port.

Defines the interface for loading and accessing application configuration.
"""

from pathlib import Path
from typing import Protocol

from hearth.domain.config import HearthConfig


class ConfigProvider(Protocol):
    """Protocol for loading and providing configuration."""

    def load(self, hearth_dir: Path) -> HearthConfig:
        """Load configuration from the hearth directory.

        Args:
            hearth_dir: Path to .hearth directory containing config.toml

        Returns:
            HearthConfig instance with loaded or default values

        Note:
            Implementations should gracefully fall back to defaults
            if config file is missing or invalid.
        """
        ...
