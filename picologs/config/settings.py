"""
Configuration settings for the Picologs event pipeline.

Handles environment variables and defaults for classification, correlation
windows, spree aggregation and logging.
"""

import os
import logging
from typing import Dict, Optional, Tuple
from dataclasses import dataclass, field

from ..exceptions import ConfigurationError


# Seconds within which two reports with the same correlation key are one occurrence
DEFAULT_DEDUP_WINDOWS: Dict[str, float] = {
    "actor_death": 5.0,
    "vehicle_destruction": 10.0,
    "vehicle_control_flow": 5.0,
    "location_change": 5.0,
    "connection": 5.0,
}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_csv(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    return tuple(dict.fromkeys(parts))


@dataclass
class ClassifierSettings:
    """Pattern matching settings."""

    # Upper bound for a single pattern attempt
    regex_timeout: float = 0.1

    # Entity names treated as non-player
    npc_prefixes: Tuple[str, ...] = ("PU_", "NPC_")
    npc_markers: Tuple[str, ...] = ("_NPC_", "kopion")

    @classmethod
    def from_env(cls) -> "ClassifierSettings":
        """Load classifier settings from environment variables."""
        return cls(
            regex_timeout=_env_float("PICOLOGS_REGEX_TIMEOUT", 0.1),
            npc_prefixes=_env_csv("PICOLOGS_NPC_PREFIXES", ("PU_", "NPC_")),
            npc_markers=_env_csv("PICOLOGS_NPC_MARKERS", ("_NPC_", "kopion")),
        )


@dataclass
class CorrelationSettings:
    """Deduplication window settings, keyed by event type value."""

    windows: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_DEDUP_WINDOWS))

    @classmethod
    def from_env(cls) -> "CorrelationSettings":
        """Load correlation windows from environment variables."""
        windows = {}
        for kind, default in DEFAULT_DEDUP_WINDOWS.items():
            windows[kind] = _env_float(f"PICOLOGS_DEDUP_WINDOW_{kind.upper()}", default)
        return cls(windows=windows)

    def window_for(self, kind: str) -> Optional[float]:
        """Window in seconds for an event type, None when the kind is not deduplicated."""
        return self.windows.get(kind)


@dataclass
class SpreeSettings:
    """Kill spree aggregation settings."""

    window: float = 120.0
    min_kills: int = 2

    @classmethod
    def from_env(cls) -> "SpreeSettings":
        """Load spree settings from environment variables."""
        return cls(
            window=_env_float("PICOLOGS_SPREE_WINDOW", 120.0),
            min_kills=_env_int("PICOLOGS_SPREE_MIN_KILLS", 2),
        )


@dataclass
class Settings:
    """Main settings container."""

    classifier: ClassifierSettings
    correlation: CorrelationSettings
    spree: SpreeSettings

    log_level: str = "warning"

    @classmethod
    def defaults(cls) -> "Settings":
        """Settings with every value at its built-in default."""
        return cls(
            classifier=ClassifierSettings(),
            correlation=CorrelationSettings(),
            spree=SpreeSettings(),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Load all settings from environment variables."""
        return cls(
            classifier=ClassifierSettings.from_env(),
            correlation=CorrelationSettings.from_env(),
            spree=SpreeSettings.from_env(),
            log_level=os.getenv("PICOLOGS_LOG_LEVEL", "warning").lower(),
        )

    def validate(self):
        """Validate configuration settings."""
        errors = []

        if self.classifier.regex_timeout <= 0:
            errors.append(f"Regex timeout must be positive: {self.classifier.regex_timeout}")

        for kind, seconds in self.correlation.windows.items():
            if seconds <= 0:
                errors.append(f"Dedup window for {kind} must be positive: {seconds}")

        if self.spree.window <= 0:
            errors.append(f"Spree window must be positive: {self.spree.window}")
        if self.spree.min_kills < 2:
            errors.append(f"Spree minimum must be at least 2 kills: {self.spree.min_kills}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def log_configuration(self):
        """Log current configuration."""
        logger = logging.getLogger(__name__)

        logger.info("=== Picologs Configuration ===")
        logger.info(f"Regex timeout: {self.classifier.regex_timeout * 1000:.0f}ms")
        for kind, seconds in sorted(self.correlation.windows.items()):
            logger.info(f"Dedup window {kind}: {seconds:.1f}s")
        logger.info(f"Spree window: {self.spree.window:.0f}s, minimum kills: {self.spree.min_kills}")
        logger.info(f"Log Level: {self.log_level}")
        logger.info("=== End Configuration ===")


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading it on first use."""
    global settings
    if settings is None:
        settings = Settings.from_env()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment variables."""
    global settings
    settings = Settings.from_env()
    return settings
