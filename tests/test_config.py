"""
Unit tests for settings and the YAML configuration loader.
"""

import pytest

from picologs.config.loader import ConfigLoader, load_and_apply_config
from picologs.config.settings import (
    DEFAULT_DEDUP_WINDOWS,
    ClassifierSettings,
    CorrelationSettings,
    Settings,
    SpreeSettings,
    get_settings,
    reload_settings,
)
from picologs.exceptions import ConfigurationError


class TestSettings:
    """Test built-in defaults and environment overrides."""

    def test_defaults(self):
        settings = Settings.defaults()

        assert settings.classifier.regex_timeout == 0.1
        assert settings.classifier.npc_prefixes == ("PU_", "NPC_")
        assert settings.correlation.windows == DEFAULT_DEDUP_WINDOWS
        assert settings.correlation.window_for("actor_death") == 5.0
        assert settings.correlation.window_for("vehicle_destruction") == 10.0
        assert settings.correlation.window_for("system_quit") is None
        assert settings.spree.window == 120.0
        assert settings.spree.min_kills == 2
        settings.validate()

    def test_defaults_are_not_shared(self):
        first = CorrelationSettings()
        first.windows["actor_death"] = 99.0
        assert CorrelationSettings().windows["actor_death"] == 5.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PICOLOGS_REGEX_TIMEOUT", "0.25")
        monkeypatch.setenv("PICOLOGS_NPC_PREFIXES", "AI_, PU_ ,AI_")
        monkeypatch.setenv("PICOLOGS_DEDUP_WINDOW_ACTOR_DEATH", "8")
        monkeypatch.setenv("PICOLOGS_SPREE_WINDOW", "60")
        monkeypatch.setenv("PICOLOGS_SPREE_MIN_KILLS", "4")
        monkeypatch.setenv("PICOLOGS_LOG_LEVEL", "DEBUG")

        settings = Settings.from_env()

        assert settings.classifier.regex_timeout == 0.25
        assert settings.classifier.npc_prefixes == ("AI_", "PU_")
        assert settings.correlation.windows["actor_death"] == 8.0
        assert settings.correlation.windows["connection"] == 5.0
        assert settings.spree.window == 60.0
        assert settings.spree.min_kills == 4
        assert settings.log_level == "debug"

    @pytest.mark.parametrize(
        "name, value",
        [
            ("PICOLOGS_REGEX_TIMEOUT", "fast"),
            ("PICOLOGS_SPREE_MIN_KILLS", "2.5"),
            ("PICOLOGS_DEDUP_WINDOW_CONNECTION", "soon"),
        ],
    )
    def test_invalid_env(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            Settings.from_env()

    @pytest.mark.parametrize(
        "settings",
        [
            Settings(ClassifierSettings(regex_timeout=0), CorrelationSettings(), SpreeSettings()),
            Settings(ClassifierSettings(), CorrelationSettings({"actor_death": -1}), SpreeSettings()),
            Settings(ClassifierSettings(), CorrelationSettings(), SpreeSettings(window=0)),
            Settings(ClassifierSettings(), CorrelationSettings(), SpreeSettings(min_kills=1)),
        ],
    )
    def test_validate_rejects(self, settings):
        with pytest.raises(ConfigurationError):
            settings.validate()

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestConfigLoader:
    """Test YAML overrides."""

    def test_apply_yaml_file(self, tmp_path):
        config_file = tmp_path / "picologs.yaml"
        config_file.write_text(
            "classifier:\n"
            "  regex_timeout: 0.05\n"
            "  npc_markers: [_NPC_, kopion, vanduul]\n"
            "correlation:\n"
            "  windows:\n"
            "    actor_death: 7\n"
            "    connection: null\n"
            "spree:\n"
            "  window: 90\n"
            "  min_kills: 3\n"
            "log_level: WARNING\n"
        )

        settings = load_and_apply_config(str(config_file), Settings.defaults())

        assert settings.classifier.regex_timeout == 0.05
        assert settings.classifier.npc_markers == ("_NPC_", "kopion", "vanduul")
        assert settings.correlation.windows["actor_death"] == 7.0
        assert "connection" not in settings.correlation.windows
        assert settings.spree.window == 90.0
        assert settings.spree.min_kills == 3
        assert settings.log_level == "warning"

    def test_invalid_values_are_skipped(self):
        settings = Settings.defaults()
        ConfigLoader.apply_config(
            {"spree": {"window": "long"}, "correlation": {"windows": {"actor_death": "x"}}},
            settings,
        )

        assert settings.spree.window == 120.0
        assert settings.correlation.windows["actor_death"] == 5.0

    def test_invalid_result_fails_validation(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("spree:\n  min_kills: 1\n")

        with pytest.raises(ConfigurationError):
            load_and_apply_config(str(config_file), Settings.defaults())

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))

        settings = load_and_apply_config(str(tmp_path / "absent.yaml"), Settings.defaults())
        assert settings.spree.window == 120.0

    def test_malformed_yaml(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("spree: [unclosed\n")

        assert ConfigLoader.load_config(str(config_file)) == {}


class TestGlobalSettings:
    """Test the lazily loaded global settings."""

    def test_get_and_reload(self, monkeypatch):
        monkeypatch.setenv("PICOLOGS_SPREE_WINDOW", "45")
        settings = reload_settings()

        assert settings.spree.window == 45.0
        assert get_settings() is settings

        monkeypatch.setenv("PICOLOGS_SPREE_WINDOW", "30")
        assert get_settings().spree.window == 45.0
        assert reload_settings().spree.window == 30.0
