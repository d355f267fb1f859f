"""TOML-based configuration provider.

Loads configuration from .hearth/config.toml with global config fallback.

Config loading priority (highest to lowest):
1. Local: .hearth/config.toml (project-specific)
2. Global: ~/.config/hearth/config.toml (user defaults)
3. Built-in defaults
"""

import logging
from pathlib import Path

from hearth.domain.config import HearthConfig
from hearth.shared.config_io import get_global_config_path, load_config_data

logger = logging.getLogger(__name__)


class TomlConfigProvider:
    """Configuration provider that loads from TOML files.

    Implements config cascade:
    1. Load global config (~/.config/hearth/config.toml) if present
    2. Load local config (.hearth/config.toml) if present
    3. Local values override global values (key-level merge per section)
    4. Missing values fall back to built-in defaults

    Gracefully handles missing or invalid configs with warnings.
    """

    def load(self, hearth_dir: Path) -> HearthConfig:
        """Load configuration with global fallback.

        Args:
            hearth_dir: Path to .hearth directory containing config.toml

        Returns:
            HearthConfig instance with merged global/local values or defaults
        """
        local_path = hearth_dir / "config.toml"
        global_path = get_global_config_path()

        config = HearthConfig.default()

        if global_path.exists():
            try:
                global_data = load_config_data(global_path)
                config = HearthConfig.from_partial(config, global_data)
                logger.debug("Loaded global config from %s", global_path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Failed to parse global config at %s: %s. Ignoring global config.",
                    global_path,
                    e,
                )

        if local_path.exists():
            try:
                local_data = load_config_data(local_path)
                config = HearthConfig.from_partial(config, local_data)
                logger.debug("Loaded local config from %s", local_path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Failed to parse config.toml: %s. Using global/default configuration.",
                    e,
                )

        return config
