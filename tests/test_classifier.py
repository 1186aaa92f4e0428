"""
Unit tests for the pattern classifier and normalization rules.
"""

import logging
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from picologs.config.settings import ClassifierSettings
from picologs.parser.classifier import LogClassifier, classify
from picologs.parser.events import (
    ActorDeathEvent,
    ConnectionEvent,
    DestroyLevel,
    LocationEvent,
    SystemQuitEvent,
    Vector3,
    VehicleControlEvent,
    VehicleDestructionEvent,
    make_event_id,
)
from picologs.parser.normalize import (
    display_location,
    humanize_damage_type,
    is_npc_name,
    strip_vehicle_suffix,
)
from picologs.parser.patterns import compile_pattern, safe_search
from picologs.parser.tokenizer import RawLogLine


ARRIVAL = datetime(2030, 1, 1, tzinfo=timezone.utc)
TS = "<2024.01.01-12:00:00.000>"


def kill_line(victim="VictimPlayer", victim_id="12345", killer="KillerPlayer", killer_id="67890",
              weapon="wpn_rifle_ballistic_01", weapon_class="Ballistic_Rifle",
              damage="Ballistic", zone="Stanton_Crusader", ts=TS):
    return (
        f"{ts} [Notice] <Actor Death> CActor::Kill: '{victim}' [{victim_id}] in zone '{zone}' "
        f"killed by '{killer}' [{killer_id}] using '{weapon}' [Class {weapon_class}] "
        f"with damage type '{damage}' from direction x: 1.0, y: 0.5, z: -0.3 [Team_ActorTech][Actor]"
    )


class TestClassifier:
    """Test classification of each recognized line shape."""

    def setup_method(self):
        self.classifier = LogClassifier()

    def classify(self, text):
        return self.classifier.classify(RawLogLine(text, ARRIVAL))

    def test_connection(self):
        """Test the character login line."""
        event = self.classify(
            f"{TS} AccountLoginCharacterStatus_Character - name TestPlayer EntityId[12345]"
        )

        assert isinstance(event, ConnectionEvent)
        assert event.player_name == "TestPlayer"
        assert event.entity_id == "12345"
        assert event.timestamp == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert event.summary() == "TestPlayer connected"

    def test_connection_with_geid(self, sample_log_lines):
        """Test the login line variant carrying a geid."""
        event = self.classify(sample_log_lines[0])

        assert isinstance(event, ConnectionEvent)
        assert event.player_name == "Alice"
        assert event.entity_id == "200146295176"

    def test_actor_death(self):
        """Test extraction of every actor death field."""
        event = self.classify(kill_line())

        assert isinstance(event, ActorDeathEvent)
        assert event.victim_name == "VictimPlayer"
        assert event.victim_id == "12345"
        assert event.zone == "Stanton_Crusader"
        assert event.killer_name == "KillerPlayer"
        assert event.killer_id == "67890"
        assert event.weapon_instance == "wpn_rifle_ballistic_01"
        assert event.weapon_class == "Ballistic_Rifle"
        assert event.damage_type == "Ballistic"
        assert event.damage_label == "ballistic"
        assert event.direction == Vector3(1.0, 0.5, -0.3)
        assert event.victim_is_npc is False
        assert event.killer_is_npc is False
        assert event.correlation_key() == (event.event_type, "12345")
        assert event.summary() == "KillerPlayer killed VictimPlayer using Ballistic_Rifle (ballistic)"

    def test_actor_death_without_direction(self):
        """Test that the direction vector is optional."""
        text = kill_line().split(" from direction")[0]
        event = self.classify(text)

        assert isinstance(event, ActorDeathEvent)
        assert event.direction is None

    def test_actor_death_with_brackets_in_names(self):
        """Test names containing brackets and punctuation."""
        event = self.classify(
            kill_line(victim="Player[Name]", killer="Killer_Name.Test", zone="Zone[1]")
        )

        assert event.victim_name == "Player[Name]"
        assert event.killer_name == "Killer_Name.Test"
        assert event.zone == "Zone[1]"

    def test_npc_victim(self):
        """Test NPC detection on a reserved prefix."""
        event = self.classify(
            kill_line(victim="PU_SecurityGuard_01", weapon_class="Ballistic_Pistol")
        )

        assert event.victim_is_npc is True
        assert event.summary() == "KillerPlayer killed NPC using Ballistic_Pistol (ballistic)"

    def test_suicide(self):
        """Test that suicides are attributed to the victim."""
        event = self.classify(
            kill_line(victim="SuicidePlayer", killer="SomeoneElse", killer_id="999", damage="Suicide")
        )

        assert event.is_suicide is True
        assert event.killer_name == "SuicidePlayer"
        assert event.killer_id == "12345"
        assert event.is_self_kill is True
        assert event.summary() == "SuicidePlayer committed suicide"

    def test_self_destruct_with_owner(self):
        """Test a death caused by someone else's ship self-destruct."""
        event = self.classify(kill_line(killer="OwnerPlayer", damage="SelfDestruct"))

        assert event.is_self_destruct is True
        assert event.summary() == "VictimPlayer died when OwnerPlayer self-destructed their ship"

    def test_unattributed_killer(self):
        """Test the literal unknown killer."""
        event = self.classify(
            kill_line(victim="Player", killer="unknown", killer_id="0", weapon="unknown",
                      weapon_class="unknown", damage="unknown")
        )

        assert event.killer_attributed is False
        assert event.is_self_kill is False
        assert event.summary() == "Player was killed (unknown)"

    def test_vehicle_destruction_named_levels(self):
        """Test the destroyLevel from/to form."""
        event = self.classify(
            f"{TS} <Vehicle Destruction> Vehicle 'AEGS_Gladius_12345' [12345] caused by "
            f"'EnemyPlayer' [67890] destroyLevel from 'None' to 'HardDeath'"
        )

        assert isinstance(event, VehicleDestructionEvent)
        assert event.vehicle_name == "AEGS_Gladius"
        assert event.vehicle_raw_name == "AEGS_Gladius_12345"
        assert event.vehicle_id == "12345"
        assert event.cause_name == "EnemyPlayer"
        assert event.cause_id == "67890"
        assert event.destroy_level_from == DestroyLevel.NONE
        assert event.destroy_level_to == DestroyLevel.HARD
        assert event.severity() == 2
        assert event.summary() == "AEGS_Gladius was destroyed by EnemyPlayer"

    def test_vehicle_destruction_numeric_levels(self, sample_log_lines):
        """Test the advanced from destroy level N to M form."""
        event = self.classify(sample_log_lines[4])

        assert isinstance(event, VehicleDestructionEvent)
        assert event.vehicle_name == "AEGS_Gladius"
        assert event.vehicle_id == "7654321"
        assert event.zone == "Stanton"
        assert event.cause_name == "Alice"
        assert event.destroy_level_from == DestroyLevel.NONE
        assert event.destroy_level_to == DestroyLevel.HARD

    def test_ship_destruction_soft_death(self):
        """Test the ship destruction tag and a soft death."""
        event = self.classify(
            f"{TS} <Ship Destruction> Vehicle 'MISC_Prospector_12345' [12345] caused by "
            f"'Environment' [0] destroyLevel from 'None' to 'SoftDeath'"
        )

        assert event.destroy_level_to == DestroyLevel.SOFT
        assert event.summary() == "MISC_Prospector was disabled by Environment"

    def test_vehicle_control_flow(self, sample_log_lines):
        """Test boarding a vehicle."""
        event = self.classify(sample_log_lines[2])

        assert isinstance(event, VehicleControlEvent)
        assert event.vehicle_name == "AEGS_Gladius"
        assert event.vehicle_raw_name == "AEGS_Gladius_1234567"
        assert event.vehicle_id == "1234567"
        assert event.summary() == "Someone boarded AEGS_Gladius"

    def test_location(self):
        """Test the inventory request carrying a location."""
        event = self.classify(
            f"{TS} <RequestLocationInventory> Player[TestPlayer] Location[Stanton_ArcCorp_Area18]"
        )

        assert isinstance(event, LocationEvent)
        assert event.player == "TestPlayer"
        assert event.player_name == "TestPlayer"
        assert event.location == "Stanton ArcCorp Area18"
        assert event.location_raw == "Stanton_ArcCorp_Area18"

    def test_system_quit(self, sample_log_lines):
        """Test the quit line with and without a player token."""
        event = self.classify(sample_log_lines[5])
        assert isinstance(event, SystemQuitEvent)
        assert event.player == "Alice"
        assert event.correlation_key() is None

        event = self.classify(f"{TS} <SystemQuit> Player quit the game")
        assert isinstance(event, SystemQuitEvent)
        assert event.player is None

    @pytest.mark.parametrize(
        "text",
        [
            "Random text with no structure",
            f"{TS} [Trace] Some unrelated engine chatter",
            f"{TS} <Vehicle Destruction> Vehicle destroyed",
            f"{TS} <Actor Death> CActor::Kill...",
            f"{TS} <RequestLocationInventory> Inventory requested",
            f"{TS} <Vehicle Control Flow> Ship boarded",
        ],
    )
    def test_unrecognized_lines(self, text):
        """Test that non-matching lines yield no event."""
        assert self.classify(text) is None

    def test_purity(self, sample_log_lines):
        """Test that identical text always yields identical events."""
        for text in sample_log_lines:
            first = self.classify(text)
            second = self.classify(text)
            assert first == second
            if first is not None:
                assert first.to_dict() == second.to_dict()

    def test_ids_depend_on_timestamp_and_text(self):
        """Test deterministic event ids."""
        event = self.classify(kill_line())
        later = self.classify(kill_line(ts="<2024.01.01-12:00:03.000>"))

        assert event.id == make_event_id(event.timestamp, event.source_text)
        assert event.id != later.id

    def test_module_level_classify(self):
        """Test the default classifier shortcut."""
        event = classify(RawLogLine(kill_line(), ARRIVAL))
        assert isinstance(event, ActorDeathEvent)

    def test_custom_npc_prefixes(self):
        """Test NPC prefixes taken from settings."""
        classifier = LogClassifier(ClassifierSettings(npc_prefixes=("AI_",), npc_markers=()))
        event = classifier.classify(RawLogLine(kill_line(victim="AI_Pirate"), ARRIVAL))
        assert event.victim_is_npc is True

        event = classifier.classify(RawLogLine(kill_line(victim="PU_Guard"), ARRIVAL))
        assert event.victim_is_npc is False


class TestPatternTimeout:
    """Test that pattern timeouts read as no match."""

    def make_slow_pattern(self):
        pattern = Mock()
        pattern.pattern = "(a+)+$"
        pattern.search.side_effect = TimeoutError()
        return pattern

    def test_safe_search_timeout(self, caplog):
        """Test that a timeout returns None and logs a warning."""
        with caplog.at_level(logging.WARNING, logger="picologs.parser.patterns"):
            assert safe_search(self.make_slow_pattern(), "aaaa!", timeout=0.01) is None

        assert "timeout" in caplog.text.lower()

    def test_safe_search_passes_timeout(self):
        """Test that the timeout reaches the regex engine."""
        pattern = Mock()
        safe_search(pattern, "text", timeout=0.25)
        pattern.search.assert_called_once_with("text", timeout=0.25)

    def test_classifier_timeout_is_no_match(self):
        """Test that a timed-out actor death pattern yields no event."""
        classifier = LogClassifier()
        with patch.object(LogClassifier, "ACTOR_DEATH", self.make_slow_pattern()):
            assert classifier.classify(RawLogLine(kill_line(), ARRIVAL)) is None

        # Following lines are unaffected
        assert isinstance(classifier.classify(RawLogLine(kill_line(), ARRIVAL)), ActorDeathEvent)

    def test_real_pattern_search(self):
        """Test the regex engine helpers on a real pattern."""
        pattern = compile_pattern(r"name (?P<name>\w+)")
        match = safe_search(pattern, "the name Alice")
        assert match.group("name") == "Alice"


class TestNormalization:
    """Test the normalization rules."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("ANVL_Arrow_9876", "ANVL_Arrow"),
            ("AEGS_Gladius_1", "AEGS_Gladius"),
            ("Gladius", "Gladius"),
            ("RSI_Constellation_Andromeda", "RSI_Constellation_Andromeda"),
        ],
    )
    def test_strip_vehicle_suffix(self, raw, expected):
        assert strip_vehicle_suffix(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("VehicleDestruction", "vehicle destruction"),
            ("SelfDestruct", "self destruct"),
            ("Ballistic", "ballistic"),
            ("Bullet_Energy", "bullet energy"),
            ("", "unknown"),
        ],
    )
    def test_humanize_damage_type(self, raw, expected):
        assert humanize_damage_type(raw) == expected

    def test_display_location(self):
        assert display_location("Stanton_ArcCorp_Area18") == "Stanton ArcCorp Area18"
        assert display_location(None) is None

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("PU_Pilot_01", True),
            ("NPC_Guard", True),
            ("Outlaw_NPC_Pilot", True),
            ("Kopion_Adult_123", True),
            ("Alice", False),
            ("pu_lowercase", False),
            ("unknown", False),
            (None, False),
        ],
    )
    def test_npc_names(self, name, expected):
        assert is_npc_name(name, ("PU_", "NPC_"), ("_NPC_", "kopion")) is expected
