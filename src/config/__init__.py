"""Configuration loading for the Nakadi client.

Configuration is loaded from a single YAML file (src/config/config.yaml by
default) with a required ``nakadi:`` section.

Main Functions
--------------

    - load_config(): Load NakadiSettings from a YAML file
    - get_config(): Get or load the singleton settings instance
    - set_config(): Replace the singleton (tests)
    - reset_config(): Reset the singleton settings instance

Usage Examples
--------------

Load configuration and build a client:
    >>> from config import get_config
    >>> from nakadi import Client
    >>>
    >>> settings = get_config()
    >>> client = Client.from_config(settings)

Custom config path:
    >>> from pathlib import Path
    >>> settings = load_config(config_path=Path("/custom/path/config.yaml"))

Configuration Priority
---------------------

Settings are merged in the following priority (highest to lowest):

1. Environment variables (NAKADI_URL, NAKADI_TIMEOUT_SECONDS)
2. ``overrides`` passed to load_config()
3. YAML configuration file (with ${VAR:-default} expansion)
4. Dataclass defaults
"""

from config.config import (
    DEFAULT_CONFIG_FILE,
    NakadiSettings,
    get_config,
    load_config,
    reset_config,
    set_config,
)

__all__ = [
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "NakadiSettings",
    "DEFAULT_CONFIG_FILE",
]
