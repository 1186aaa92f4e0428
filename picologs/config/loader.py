"""
Configuration loader for picologs.

Allows users to override settings via YAML configuration files.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Optional, Any

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads and applies custom configuration from YAML files."""

    @staticmethod
    def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to custom config file. If None, looks for:
                        1. picologs.yaml in current directory
                        2. config/picologs.yaml
                        3. ~/.picologs/picologs.yaml

        Returns:
            Configuration dictionary
        """
        search_paths = [
            Path("picologs.yaml"),
            Path("config/picologs.yaml"),
            Path.home() / ".picologs" / "picologs.yaml",
        ]

        if config_path:
            search_paths.insert(0, Path(config_path))

        for path in search_paths:
            if path.exists():
                try:
                    with open(path, "r") as f:
                        config = yaml.safe_load(f) or {}
                        logger.info(f"Loaded configuration from {path}")
                        return config
                except (OSError, yaml.YAMLError) as e:
                    logger.error(f"Failed to load config from {path}: {e}")

        logger.debug("No custom configuration file found, using defaults")
        return {}

    @staticmethod
    def apply_config(config: Dict[str, Any], settings: Settings) -> None:
        """
        Apply custom configuration on top of settings.

        Args:
            config: Configuration dictionary from YAML
            settings: Settings instance to update in place
        """
        classifier = config.get("classifier") or {}
        if "regex_timeout" in classifier:
            try:
                settings.classifier.regex_timeout = float(classifier["regex_timeout"])
                logger.debug(f"Regex timeout set to {settings.classifier.regex_timeout}s")
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid regex timeout {classifier['regex_timeout']!r}: {e}")

        if "npc_prefixes" in classifier:
            settings.classifier.npc_prefixes = tuple(str(p) for p in classifier["npc_prefixes"])
            logger.debug(f"NPC prefixes: {settings.classifier.npc_prefixes}")

        if "npc_markers" in classifier:
            settings.classifier.npc_markers = tuple(str(m) for m in classifier["npc_markers"])
            logger.debug(f"NPC markers: {settings.classifier.npc_markers}")

        correlation = config.get("correlation") or {}
        for kind, seconds in (correlation.get("windows") or {}).items():
            if seconds is None:
                # null disables deduplication for the kind
                settings.correlation.windows.pop(kind, None)
                logger.debug(f"Deduplication disabled for {kind}")
                continue
            try:
                settings.correlation.windows[kind] = float(seconds)
                logger.debug(f"Dedup window for {kind}: {seconds}s")
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid dedup window for {kind}: {e}")

        spree = config.get("spree") or {}
        if "window" in spree:
            try:
                settings.spree.window = float(spree["window"])
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid spree window {spree['window']!r}: {e}")
        if "min_kills" in spree:
            try:
                settings.spree.min_kills = int(spree["min_kills"])
            except (ValueError, TypeError) as e:
                logger.warning(f"Invalid spree minimum {spree['min_kills']!r}: {e}")

        if "log_level" in config:
            settings.log_level = str(config["log_level"]).lower()

        logger.info("Custom configuration applied successfully")


def load_and_apply_config(
    config_path: Optional[str] = None, settings: Optional[Settings] = None
) -> Settings:
    """
    Load and apply configuration in one step.

    Args:
        config_path: Optional path to custom config file
        settings: Settings to update, the global instance by default

    Returns:
        The updated, validated settings
    """
    settings = settings or get_settings()
    loader = ConfigLoader()
    config = loader.load_config(config_path)
    if config:
        loader.apply_config(config, settings)
    settings.validate()
    return settings
