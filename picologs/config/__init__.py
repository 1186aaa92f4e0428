"""
Configuration for the picologs pipeline.
"""

from .settings import (
    Settings,
    ClassifierSettings,
    CorrelationSettings,
    SpreeSettings,
    get_settings,
    reload_settings,
)
from .loader import ConfigLoader, load_and_apply_config

__all__ = [
    "Settings",
    "ClassifierSettings",
    "CorrelationSettings",
    "SpreeSettings",
    "get_settings",
    "reload_settings",
    "ConfigLoader",
    "load_and_apply_config",
]
