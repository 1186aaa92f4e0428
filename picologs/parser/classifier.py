"""
Pattern classifier turning Game.log lines into typed events.
"""

import logging
from typing import Callable, Dict, Optional

from ..config.settings import ClassifierSettings
from .events import (
    ActorDeathEvent,
    ConnectionEvent,
    DestroyLevel,
    LocationEvent,
    LogEvent,
    SystemQuitEvent,
    Vector3,
    VehicleControlEvent,
    VehicleDestructionEvent,
    make_event_id,
)
from .normalize import (
    UNKNOWN,
    display_location,
    humanize_damage_type,
    is_npc_name,
    strip_vehicle_suffix,
)
from .patterns import compile_pattern, safe_search
from .tokenizer import LineTokenizer, ParsedLine, RawLogLine

logger = logging.getLogger(__name__)


class LogClassifier:
    """
    Classifies single log lines into at most one event.

    Classification is a pure function of the line text: no state is kept
    between calls, and identical text always produces an identical event.
    Each pattern attempt is bounded by ``regex_timeout``; a timeout reads as
    no match.
    """

    CONNECTION_MARKER = compile_pattern(r"AccountLoginCharacterStatus_Character")
    CONNECTION_NAME = compile_pattern(r"- name (?P<name>[^\s\[\]]+)")
    CONNECTION_ENTITY_ID = compile_pattern(r"EntityId\[(?P<id>\d+)\]|- geid (?P<geid>\d+)")

    ACTOR_DEATH = compile_pattern(
        r"'(?P<victim_name>[^']+)' \[(?P<victim_id>\d+)\] in zone '(?P<zone>[^']+)'"
        r" killed by '(?P<killer_name>[^']+)' \[(?P<killer_id>\d+)\]"
        r" using '(?P<weapon_instance>[^']+)' \[Class (?P<weapon_class>[^\]]+)\]"
        r" with damage type '(?P<damage_type>[^']+)'"
        r"(?: from direction x: (?P<dx>-?[\d.]+),\s*y: (?P<dy>-?[\d.]+),\s*z: (?P<dz>-?[\d.]+))?"
    )

    VEHICLE = compile_pattern(r"Vehicle '(?P<name>[^']+)' \[(?P<id>\d+)\]")
    VEHICLE_ZONE = compile_pattern(r"in zone '(?P<zone>[^']+)'")
    VEHICLE_CAUSE = compile_pattern(r"caused by '(?P<name>[^']+)' \[(?P<id>\d+)\]")
    DESTROY_LEVEL_NAMED = compile_pattern(r"destroyLevel from '(?P<from>[^']+)' to '(?P<to>[^']+)'")
    DESTROY_LEVEL_NUMERIC = compile_pattern(r"destroy level (?P<from>\d+) to (?P<to>\d+)")

    CONTROLLED_VEHICLE = compile_pattern(r"'(?P<name>[A-Za-z0-9_]+)' \[(?P<id>\d+)\]")

    PLAYER_TOKEN = compile_pattern(r"Player\[(?P<player>[^\]]+)\]")
    LOCATION_TOKEN = compile_pattern(r"Location\[(?P<location>[^\]]+)\]")
    QUIT_NAME = compile_pattern(r"\bname (?P<player>[^\s\[\]]+)")

    def __init__(self, settings: Optional[ClassifierSettings] = None):
        """
        Initialize the classifier.

        Args:
            settings: Classifier settings, defaults when omitted
        """
        self.settings = settings or ClassifierSettings()
        self.tokenizer = LineTokenizer(timeout=self.settings.regex_timeout)

        # Handlers by tag found in the body
        self._tag_handlers: Dict[str, Callable[[ParsedLine], Optional[LogEvent]]] = {
            "actor death": self._classify_actor_death,
            "vehicle destruction": self._classify_vehicle_destruction,
            "ship destruction": self._classify_vehicle_destruction,
            "vehicle control flow": self._classify_vehicle_control,
            "requestlocationinventory": self._classify_location,
            "systemquit": self._classify_system_quit,
        }

    def classify(self, line: RawLogLine) -> Optional[LogEvent]:
        """
        Classify a raw line.

        Args:
            line: Raw line with its arrival time

        Returns:
            The classified event, or None when no pattern matches
        """
        parsed = self.tokenizer.parse_line(line)
        if parsed is None:
            return None

        if self._search(self.CONNECTION_MARKER, parsed.body):
            event = self._classify_connection(parsed)
        else:
            handler = self._tag_handlers.get((parsed.tag or "").lower())
            event = handler(parsed) if handler else None

        if event is None:
            logger.debug(f"No event pattern matched: {parsed.raw_line[:80]}")
        return event

    def _search(self, pattern, text: str):
        return safe_search(pattern, text, self.settings.regex_timeout)

    def _is_npc(self, name: Optional[str]) -> bool:
        return is_npc_name(name, self.settings.npc_prefixes, self.settings.npc_markers)

    @staticmethod
    def _base(parsed: ParsedLine) -> dict:
        return {
            "id": make_event_id(parsed.timestamp, parsed.raw_line),
            "timestamp": parsed.timestamp,
            "source_text": parsed.raw_line,
        }

    def _classify_connection(self, parsed: ParsedLine) -> Optional[ConnectionEvent]:
        name_match = self._search(self.CONNECTION_NAME, parsed.body)
        if not name_match:
            return None

        entity_id = None
        id_match = self._search(self.CONNECTION_ENTITY_ID, parsed.body)
        if id_match:
            entity_id = id_match.group("id") or id_match.group("geid")

        return ConnectionEvent(
            **self._base(parsed),
            player_name=name_match.group("name"),
            entity_id=entity_id,
        )

    def _classify_actor_death(self, parsed: ParsedLine) -> Optional[ActorDeathEvent]:
        match = self._search(self.ACTOR_DEATH, parsed.body)
        if not match:
            return None

        victim_name = match.group("victim_name")
        victim_id = match.group("victim_id")
        killer_name = match.group("killer_name")
        killer_id = match.group("killer_id")
        damage_type = match.group("damage_type")

        # Suicides are always self-inflicted, whatever the killer field says
        if damage_type == "Suicide":
            killer_name, killer_id = victim_name, victim_id

        direction = None
        if match.group("dx") is not None:
            try:
                direction = Vector3(
                    float(match.group("dx")), float(match.group("dy")), float(match.group("dz"))
                )
            except ValueError:
                direction = None

        return ActorDeathEvent(
            **self._base(parsed),
            victim_name=victim_name,
            victim_id=victim_id,
            zone=match.group("zone"),
            killer_name=killer_name,
            killer_id=killer_id,
            weapon_instance=match.group("weapon_instance"),
            weapon_class=match.group("weapon_class"),
            damage_type=damage_type,
            damage_label=humanize_damage_type(damage_type),
            direction=direction,
            victim_is_npc=self._is_npc(victim_name),
            killer_is_npc=self._is_npc(killer_name),
        )

    def _classify_vehicle_destruction(
        self, parsed: ParsedLine
    ) -> Optional[VehicleDestructionEvent]:
        vehicle = self._search(self.VEHICLE, parsed.body)
        if not vehicle:
            return None

        levels = self._search(self.DESTROY_LEVEL_NAMED, parsed.body) or self._search(
            self.DESTROY_LEVEL_NUMERIC, parsed.body
        )
        if not levels:
            return None
        level_to = DestroyLevel.parse(levels.group("to"))
        if level_to is None:
            return None
        level_from = DestroyLevel.parse(levels.group("from")) or DestroyLevel.NONE

        zone = self._search(self.VEHICLE_ZONE, parsed.body)
        cause = self._search(self.VEHICLE_CAUSE, parsed.body)
        raw_name = vehicle.group("name")

        return VehicleDestructionEvent(
            **self._base(parsed),
            vehicle_name=strip_vehicle_suffix(raw_name),
            vehicle_raw_name=raw_name,
            vehicle_id=vehicle.group("id"),
            zone=zone.group("zone") if zone else None,
            cause_name=cause.group("name") if cause else UNKNOWN,
            cause_id=cause.group("id") if cause else None,
            destroy_level_from=level_from,
            destroy_level_to=level_to,
        )

    def _classify_vehicle_control(self, parsed: ParsedLine) -> Optional[VehicleControlEvent]:
        match = self._search(self.CONTROLLED_VEHICLE, parsed.body)
        if not match:
            return None

        raw_name = match.group("name")
        return VehicleControlEvent(
            **self._base(parsed),
            vehicle_name=strip_vehicle_suffix(raw_name),
            vehicle_raw_name=raw_name,
            vehicle_id=match.group("id"),
        )

    def _classify_location(self, parsed: ParsedLine) -> Optional[LocationEvent]:
        player = self._search(self.PLAYER_TOKEN, parsed.body)
        location = self._search(self.LOCATION_TOKEN, parsed.body)
        if not player or not location:
            return None

        raw_location = location.group("location")
        return LocationEvent(
            **self._base(parsed),
            player=player.group("player"),
            player_name=player.group("player"),
            location=display_location(raw_location),
            location_raw=raw_location,
        )

    def _classify_system_quit(self, parsed: ParsedLine) -> SystemQuitEvent:
        player = self._search(self.PLAYER_TOKEN, parsed.body) or self._search(
            self.QUIT_NAME, parsed.body
        )
        return SystemQuitEvent(
            **self._base(parsed),
            player=player.group("player") if player else None,
        )


_default_classifier: Optional[LogClassifier] = None


def classify(line: RawLogLine) -> Optional[LogEvent]:
    """Classify a line with default settings."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = LogClassifier()
    return _default_classifier.classify(line)
