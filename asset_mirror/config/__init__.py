"""
Config Module — Remote settings loading and validation.
"""

from .loader import DEFAULT_CONFIG_PATH, RemoteSettings, load_settings
from .validator import ConfigIssue, ConfigValidator

__all__ = [
    "RemoteSettings",
    "load_settings",
    "DEFAULT_CONFIG_PATH",
    "ConfigValidator",
    "ConfigIssue",
]
