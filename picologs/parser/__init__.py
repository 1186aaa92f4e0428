"""
Game.log parsing: tokenization, typed events and classification.
"""

from .tokenizer import LineTokenizer, ParsedLine, RawLogLine
from .events import (
    EventType,
    DestroyLevel,
    Vector3,
    LogEvent,
    ConnectionEvent,
    ActorDeathEvent,
    VehicleDestructionEvent,
    VehicleControlEvent,
    LocationEvent,
    SystemQuitEvent,
    OtherEvent,
    SpreeEvent,
)
from .classifier import LogClassifier, classify
from .schemas import parse_remote_event

__all__ = [
    "LineTokenizer",
    "ParsedLine",
    "RawLogLine",
    "EventType",
    "DestroyLevel",
    "Vector3",
    "LogEvent",
    "ConnectionEvent",
    "ActorDeathEvent",
    "VehicleDestructionEvent",
    "VehicleControlEvent",
    "LocationEvent",
    "SystemQuitEvent",
    "OtherEvent",
    "SpreeEvent",
    "LogClassifier",
    "classify",
    "parse_remote_event",
]
