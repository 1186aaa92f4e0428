"""
Event classes for classified Game.log events.

Each event kind is its own dataclass carrying only the fields relevant to it,
discriminated by the ``event_type`` class attribute.
"""

import hashlib
from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, List, Optional, Tuple, Type
from dataclasses import dataclass, field, fields
from enum import Enum, IntEnum

from .normalize import UNKNOWN, identity_key, is_null_id, is_unattributed


class EventType(Enum):
    """Enumeration of event kinds."""

    CONNECTION = "connection"
    ACTOR_DEATH = "actor_death"
    VEHICLE_DESTRUCTION = "vehicle_destruction"
    VEHICLE_CONTROL_FLOW = "vehicle_control_flow"
    LOCATION_CHANGE = "location_change"
    SYSTEM_QUIT = "system_quit"
    OTHER = "other"

    # Synthesized by the spree aggregator, never classified from a line
    KILLING_SPREE = "killing_spree"


class DestroyLevel(IntEnum):
    """Vehicle destroy levels, ordered by severity."""

    NONE = 0
    SOFT = 1
    HARD = 2

    @classmethod
    def parse(cls, token: Any) -> Optional["DestroyLevel"]:
        """
        Parse a destroy level as written in the log.

        Accepts numeric levels (``0``, ``1``, ``2``) and the named forms
        (``None``, ``SoftDeath``, ``HardDeath``).
        """
        if token is None:
            return None
        if isinstance(token, int):
            try:
                return cls(token)
            except ValueError:
                return None

        value = str(token).strip().lower()
        if value in ("0", "none"):
            return cls.NONE
        if value in ("1", "soft", "softdeath"):
            return cls.SOFT
        if value in ("2", "hard", "harddeath"):
            return cls.HARD
        return None


@dataclass(frozen=True)
class Vector3:
    """Direction vector attached to actor deaths."""

    x: float
    y: float
    z: float


# (event kind, identifying value) pair shared by reports of one occurrence
CorrelationKey = Tuple[EventType, str]


def make_event_id(timestamp: datetime, text: str) -> str:
    """Deterministic id for a line observed at a timestamp."""
    content = f"{timestamp.isoformat()}|{text}"
    return hashlib.sha1(content.encode("utf-8")).hexdigest()[:20]


def _display(name: Optional[str], is_npc: bool = False) -> str:
    if is_unattributed(name):
        return "Unknown"
    if is_npc:
        return "NPC"
    return name


def _serialize(value: Any) -> Any:
    if isinstance(value, LogEvent):
        return value.to_dict()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Vector3):
        return {"x": value.x, "y": value.y, "z": value.z}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


@dataclass
class LogEvent:
    """Base class for all events."""

    id: str
    timestamp: datetime
    source_text: str

    # Reporting player, None until the pipeline stamps it
    player: Optional[str] = None
    reported_by: List[str] = field(default_factory=list)

    event_type: ClassVar[EventType] = EventType.OTHER
    emoji: ClassVar[str] = "📝"

    # Fields a merge never overwrites
    PRESERVED_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"id", "timestamp", "player", "reported_by"}
    )

    def correlation_key(self) -> Optional[CorrelationKey]:
        """Key identifying the real-world occurrence, None when not derivable."""
        return None

    def severity(self) -> Optional[int]:
        """Ordered severity for kinds that have one."""
        return None

    def summary(self) -> str:
        """One-line description of the event."""
        return self.event_type.value.replace("_", " ")

    def add_reporters(self, reporters: Iterable[Optional[str]]) -> bool:
        """
        Add reporting identities, keeping first-insertion order.

        Returns:
            True if any identity was new
        """
        seen = {identity_key(r) for r in self.reported_by}
        added = False
        for reporter in reporters:
            if not reporter or not reporter.strip():
                continue
            key = identity_key(reporter)
            if key in seen:
                continue
            seen.add(key)
            self.reported_by.append(reporter)
            added = True
        return added

    def update_from(self, other: "LogEvent") -> None:
        """Copy the displayed fields of another event of the same kind."""
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot update {type(self).__name__} from {type(other).__name__}"
            )
        for f in fields(self):
            if f.name not in self.PRESERVED_FIELDS:
                setattr(self, f.name, getattr(other, f.name))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary form for peers and persistence."""
        data = {"event_type": self.event_type.value}
        for f in fields(self):
            data[f.name] = _serialize(getattr(self, f.name))
        return data


@dataclass
class ConnectionEvent(LogEvent):
    """Player logged in with a character."""

    player_name: str = UNKNOWN
    entity_id: Optional[str] = None

    event_type: ClassVar[EventType] = EventType.CONNECTION
    emoji: ClassVar[str] = "🛜"

    def correlation_key(self) -> Optional[CorrelationKey]:
        if is_unattributed(self.player_name):
            return None
        return (self.event_type, identity_key(self.player_name))

    def summary(self) -> str:
        return f"{_display(self.player_name)} connected"


@dataclass
class ActorDeathEvent(LogEvent):
    """An actor (player or NPC) was killed."""

    victim_name: str = UNKNOWN
    victim_id: Optional[str] = None
    zone: Optional[str] = None
    killer_name: str = UNKNOWN
    killer_id: Optional[str] = None
    weapon_instance: str = UNKNOWN
    weapon_class: str = UNKNOWN

    # Raw token from the log and its readable form
    damage_type: str = UNKNOWN
    damage_label: str = UNKNOWN

    direction: Optional[Vector3] = None
    victim_is_npc: bool = False
    killer_is_npc: bool = False

    event_type: ClassVar[EventType] = EventType.ACTOR_DEATH
    emoji: ClassVar[str] = "💀"

    @property
    def is_suicide(self) -> bool:
        return self.damage_type == "Suicide"

    @property
    def is_self_destruct(self) -> bool:
        return self.damage_type == "SelfDestruct"

    @property
    def killer_attributed(self) -> bool:
        return not is_unattributed(self.killer_name)

    @property
    def is_self_kill(self) -> bool:
        """Killer and victim are the same entity."""
        if self.is_suicide:
            return True
        if not is_null_id(self.killer_id) and self.killer_id == self.victim_id:
            return True
        return False

    def correlation_key(self) -> Optional[CorrelationKey]:
        if is_null_id(self.victim_id):
            return None
        return (self.event_type, self.victim_id)

    def summary(self) -> str:
        victim = _display(self.victim_name, self.victim_is_npc)
        killer = _display(self.killer_name, self.killer_is_npc)

        if self.is_suicide:
            return f"{victim} committed suicide"
        if self.is_self_destruct:
            if self.killer_attributed and self.killer_name != self.victim_name:
                return f"{victim} died when {killer} self-destructed their ship"
            return f"{victim} died in a ship self-destruct"
        if not self.killer_attributed:
            return f"{victim} was killed ({self.damage_label})"
        if self.is_self_kill:
            return f"{victim} killed themselves ({self.damage_label})"
        if is_unattributed(self.weapon_class):
            return f"{killer} killed {victim} ({self.damage_label})"
        return f"{killer} killed {victim} using {self.weapon_class} ({self.damage_label})"


@dataclass
class VehicleDestructionEvent(LogEvent):
    """A vehicle advanced to a new destroy level."""

    vehicle_name: str = UNKNOWN
    vehicle_raw_name: str = UNKNOWN
    vehicle_id: Optional[str] = None
    zone: Optional[str] = None
    cause_name: str = UNKNOWN
    cause_id: Optional[str] = None
    destroy_level_from: DestroyLevel = DestroyLevel.NONE
    destroy_level_to: DestroyLevel = DestroyLevel.NONE

    event_type: ClassVar[EventType] = EventType.VEHICLE_DESTRUCTION
    emoji: ClassVar[str] = "💥"

    def correlation_key(self) -> Optional[CorrelationKey]:
        if is_null_id(self.vehicle_id):
            return None
        return (self.event_type, self.vehicle_id)

    def severity(self) -> Optional[int]:
        return int(self.destroy_level_to)

    def summary(self) -> str:
        if self.destroy_level_to == DestroyLevel.HARD:
            text = f"{self.vehicle_name} was destroyed"
        elif self.destroy_level_to == DestroyLevel.SOFT:
            text = f"{self.vehicle_name} was disabled"
        else:
            text = f"{self.vehicle_name} was restored"
        if not is_unattributed(self.cause_name):
            text += f" by {self.cause_name}"
        return text


@dataclass
class VehicleControlEvent(LogEvent):
    """A player took control of (boarded) a vehicle."""

    vehicle_name: str = UNKNOWN
    vehicle_raw_name: str = UNKNOWN
    vehicle_id: Optional[str] = None

    event_type: ClassVar[EventType] = EventType.VEHICLE_CONTROL_FLOW
    emoji: ClassVar[str] = "🚀"

    def correlation_key(self) -> Optional[CorrelationKey]:
        if is_null_id(self.vehicle_id):
            return None
        return (self.event_type, self.vehicle_id)

    def summary(self) -> str:
        who = self.player or "Someone"
        return f"{who} boarded {self.vehicle_name}"


@dataclass
class LocationEvent(LogEvent):
    """Inventory request revealing the player's location."""

    player_name: str = UNKNOWN
    location: Optional[str] = None
    location_raw: Optional[str] = None

    event_type: ClassVar[EventType] = EventType.LOCATION_CHANGE
    emoji: ClassVar[str] = "📍"

    def correlation_key(self) -> Optional[CorrelationKey]:
        if is_unattributed(self.player_name):
            return None
        return (self.event_type, identity_key(self.player_name))

    def summary(self) -> str:
        return f"{_display(self.player_name)} is at {self.location or 'an unknown location'}"


@dataclass
class SystemQuitEvent(LogEvent):
    """The game client quit."""

    event_type: ClassVar[EventType] = EventType.SYSTEM_QUIT
    emoji: ClassVar[str] = "👋"

    def summary(self) -> str:
        return f"{self.player or 'Player'} quit the game"


@dataclass
class OtherEvent(LogEvent):
    """Event of a kind this build does not model, received from a peer."""

    kind: str = "other"
    attributes: Dict[str, Any] = field(default_factory=dict)

    event_type: ClassVar[EventType] = EventType.OTHER

    def summary(self) -> str:
        return f"{self.kind.replace('_', ' ')} event"


@dataclass
class SpreeEvent(LogEvent):
    """Parent event grouping one killer's consecutive kills."""

    killer_name: str = UNKNOWN
    killer_id: Optional[str] = None
    kill_count: int = 0
    children: List[ActorDeathEvent] = field(default_factory=list)

    # Set once the spree window has closed
    finalized: bool = False

    event_type: ClassVar[EventType] = EventType.KILLING_SPREE
    emoji: ClassVar[str] = "🔥"

    def summary(self) -> str:
        return f"{self.killer_name} killing spree ×{self.kill_count}"


# Event classes by kind, used when rebuilding events from peer payloads
EVENT_CLASSES: Dict[EventType, Type[LogEvent]] = {
    EventType.CONNECTION: ConnectionEvent,
    EventType.ACTOR_DEATH: ActorDeathEvent,
    EventType.VEHICLE_DESTRUCTION: VehicleDestructionEvent,
    EventType.VEHICLE_CONTROL_FLOW: VehicleControlEvent,
    EventType.LOCATION_CHANGE: LocationEvent,
    EventType.SYSTEM_QUIT: SystemQuitEvent,
    EventType.OTHER: OtherEvent,
    EventType.KILLING_SPREE: SpreeEvent,
}
