"""
Validation schemas for events received from peers.

Peers send events in the ``LogEvent.to_dict()`` form. Every payload is
validated here, with length and size bounds, before it is rebuilt into an
event and handed to the correlator.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Type

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

from ..exceptions import PeerPayloadError
from .events import (
    ActorDeathEvent,
    DestroyLevel,
    EVENT_CLASSES,
    EventType,
    LogEvent,
    OtherEvent,
    SpreeEvent,
    Vector3,
)
from .normalize import UNKNOWN, humanize_damage_type, strip_vehicle_suffix
from .tokenizer import as_utc

# Maximum lengths to keep peer input bounded
MAX_ID_LENGTH = 100
MAX_TYPE_LENGTH = 50
MAX_NAME_LENGTH = 200
MAX_FIELD_LENGTH = 1000
MAX_SOURCE_LENGTH = 2000
MAX_REPORTERS = 64
MAX_CHILDREN = 256
MAX_ATTRIBUTES = 32

EventId = Annotated[str, StringConstraints(min_length=1, max_length=MAX_ID_LENGTH)]
EntityId = Annotated[str, StringConstraints(max_length=32)]
Name = Annotated[str, StringConstraints(max_length=MAX_NAME_LENGTH)]
Text = Annotated[str, StringConstraints(max_length=MAX_FIELD_LENGTH)]


class RemoteEvent(BaseModel):
    """Fields common to every event payload."""

    model_config = ConfigDict(extra="ignore")

    id: EventId
    event_type: Annotated[str, StringConstraints(max_length=MAX_TYPE_LENGTH)]
    timestamp: datetime
    player: Optional[Name] = None
    source_text: Annotated[str, StringConstraints(max_length=MAX_SOURCE_LENGTH)] = ""
    reported_by: List[Name] = Field(default_factory=list, max_length=MAX_REPORTERS)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_event(self) -> LogEvent:
        """Rebuild the event dataclass from the validated payload."""
        event_class = EVENT_CLASSES[EventType(self.event_type)]
        return event_class(**self.model_dump(exclude={"event_type"}))


class RemoteConnection(RemoteEvent):
    event_type: Literal["connection"]
    player_name: Name = UNKNOWN
    entity_id: Optional[EntityId] = None


class RemoteVector(BaseModel):
    x: float
    y: float
    z: float


class RemoteActorDeath(RemoteEvent):
    event_type: Literal["actor_death"]
    victim_name: Name = UNKNOWN
    victim_id: Optional[EntityId] = None
    zone: Optional[Text] = None
    killer_name: Name = UNKNOWN
    killer_id: Optional[EntityId] = None
    weapon_instance: Text = UNKNOWN
    weapon_class: Text = UNKNOWN
    damage_type: Name = UNKNOWN
    damage_label: Optional[Name] = None
    direction: Optional[RemoteVector] = None
    victim_is_npc: bool = False
    killer_is_npc: bool = False

    def to_event(self) -> ActorDeathEvent:
        data = self.model_dump(exclude={"event_type", "direction"})
        if not data.get("damage_label"):
            data["damage_label"] = humanize_damage_type(self.damage_type)
        direction = None
        if self.direction is not None:
            direction = Vector3(self.direction.x, self.direction.y, self.direction.z)
        return ActorDeathEvent(**data, direction=direction)


class RemoteVehicleDestruction(RemoteEvent):
    event_type: Literal["vehicle_destruction"]
    vehicle_name: Optional[Name] = None
    vehicle_raw_name: Name = UNKNOWN
    vehicle_id: Optional[EntityId] = None
    zone: Optional[Text] = None
    cause_name: Name = UNKNOWN
    cause_id: Optional[EntityId] = None
    destroy_level_from: DestroyLevel = DestroyLevel.NONE
    destroy_level_to: DestroyLevel

    @field_validator("destroy_level_from", "destroy_level_to", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> DestroyLevel:
        level = DestroyLevel.parse(value)
        if level is None:
            raise ValueError(f"unknown destroy level {value!r}")
        return level

    def to_event(self) -> LogEvent:
        event = super().to_event()
        if not self.vehicle_name:
            event.vehicle_name = strip_vehicle_suffix(self.vehicle_raw_name)
        return event


class RemoteVehicleControl(RemoteEvent):
    event_type: Literal["vehicle_control_flow"]
    vehicle_name: Optional[Name] = None
    vehicle_raw_name: Name = UNKNOWN
    vehicle_id: Optional[EntityId] = None

    def to_event(self) -> LogEvent:
        event = super().to_event()
        if not self.vehicle_name:
            event.vehicle_name = strip_vehicle_suffix(self.vehicle_raw_name)
        return event


class RemoteLocation(RemoteEvent):
    event_type: Literal["location_change"]
    player_name: Name = UNKNOWN
    location: Optional[Text] = None
    location_raw: Optional[Text] = None


class RemoteSystemQuit(RemoteEvent):
    event_type: Literal["system_quit"]


class RemoteSpree(RemoteEvent):
    event_type: Literal["killing_spree"]
    killer_name: Name = UNKNOWN
    killer_id: Optional[EntityId] = None
    kill_count: int = Field(default=0, ge=0)
    children: List[RemoteActorDeath] = Field(default_factory=list, max_length=MAX_CHILDREN)
    finalized: bool = False

    def to_event(self) -> SpreeEvent:
        data = self.model_dump(exclude={"event_type", "children"})
        return SpreeEvent(**data, children=[child.to_event() for child in self.children])


class RemoteOther(RemoteEvent):
    """Payload of a kind this build does not know; extra fields are kept."""

    model_config = ConfigDict(extra="allow")

    def to_event(self) -> OtherEvent:
        extra = dict(self.model_extra or {})
        kind = self.event_type
        if kind == EventType.OTHER.value:
            # Already an OtherEvent on the sending side
            kind = str(extra.pop("kind", kind))[:MAX_TYPE_LENGTH]
            nested = extra.pop("attributes", None)
            if isinstance(nested, dict):
                extra.update(nested)
        if len(extra) > MAX_ATTRIBUTES:
            raise ValueError(f"too many attributes ({len(extra)} > {MAX_ATTRIBUTES})")
        base = self.model_dump(include={"id", "timestamp", "player", "source_text", "reported_by"})
        return OtherEvent(**base, kind=kind, attributes=extra)


REMOTE_MODELS: Dict[str, Type[RemoteEvent]] = {
    EventType.CONNECTION.value: RemoteConnection,
    EventType.ACTOR_DEATH.value: RemoteActorDeath,
    EventType.VEHICLE_DESTRUCTION.value: RemoteVehicleDestruction,
    EventType.VEHICLE_CONTROL_FLOW.value: RemoteVehicleControl,
    EventType.LOCATION_CHANGE.value: RemoteLocation,
    EventType.SYSTEM_QUIT.value: RemoteSystemQuit,
    EventType.KILLING_SPREE.value: RemoteSpree,
}


def parse_remote_event(payload: Any, sender_id: Optional[str] = None) -> LogEvent:
    """
    Validate a peer payload and rebuild the event it describes.

    Args:
        payload: Decoded JSON object received from a peer
        sender_id: Sender identity, carried on errors

    Returns:
        The rebuilt event

    Raises:
        PeerPayloadError: If the payload fails validation
    """
    if not isinstance(payload, dict):
        raise PeerPayloadError(
            f"Event payload must be an object, got {type(payload).__name__}", sender_id
        )

    kind = payload.get("event_type")
    model = REMOTE_MODELS.get(kind, RemoteOther)
    try:
        validated = model.model_validate(payload)
        return validated.to_event()
    except ValidationError as e:
        raise PeerPayloadError(
            f"Invalid {kind!r} payload ({e.error_count()} errors): {e.errors()[0]['msg']}",
            sender_id,
        ) from e
    except ValueError as e:
        raise PeerPayloadError(f"Invalid {kind!r} payload: {e}", sender_id) from e
