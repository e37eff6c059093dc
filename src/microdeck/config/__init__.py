"""Configuration loading for microdeck.

Main components:
- Settings: process settings with MICRODECK_* environment overrides
- ManifestParser: load and validate deployment manifests
- UserConfig: the currently selected deployment
"""

from microdeck.config.loader import ManifestParser, substitute_env_vars
from microdeck.config.settings import Settings
from microdeck.config.user_config import UserConfig, load_user_config, save_user_config

__all__ = [
    "ManifestParser",
    "Settings",
    "UserConfig",
    "load_user_config",
    "save_user_config",
    "substitute_env_vars",
]
