"""
Normalization rules applied to names and tokens at classification time.
"""

from typing import Iterable, Optional

import regex

VEHICLE_SUFFIX = regex.compile(r"_\d+$")
CAMEL_BOUNDARY = regex.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
WHITESPACE = regex.compile(r"\s+")

# Literal value the game writes for a field it could not attribute
UNKNOWN = "unknown"

# Entity ids that never identify a real entity
NULL_IDS = {"", "0", UNKNOWN}


def strip_vehicle_suffix(name: Optional[str]) -> Optional[str]:
    """Remove the trailing ``_<digits>`` instance suffix from a vehicle name."""
    if not name:
        return name
    return VEHICLE_SUFFIX.sub("", name)


def humanize_damage_type(token: Optional[str]) -> str:
    """
    Convert a CamelCase damage type token into lower-case words.

    ``VehicleDestruction`` becomes ``vehicle destruction``.
    """
    if not token:
        return UNKNOWN
    words = CAMEL_BOUNDARY.sub(" ", token).replace("_", " ")
    return WHITESPACE.sub(" ", words).strip().lower()


def display_location(raw: Optional[str]) -> Optional[str]:
    """Location names use underscores in the log, spaces on screen."""
    if raw is None:
        return None
    return WHITESPACE.sub(" ", raw.replace("_", " ")).strip()


def is_unattributed(value: Optional[str]) -> bool:
    """True when the game did not attribute this field (``unknown`` or missing)."""
    return value is None or value.strip().lower() in ("", UNKNOWN)


def is_null_id(value: Optional[str]) -> bool:
    return value is None or value.strip().lower() in NULL_IDS


def is_npc_name(name: Optional[str], prefixes: Iterable[str], markers: Iterable[str]) -> bool:
    """
    Check whether an entity name belongs to a non-player entity.

    Args:
        name: Entity name from the log
        prefixes: Reserved name prefixes, matched case-sensitively
        markers: Reserved infix markers, matched case-insensitively

    Returns:
        True for NPC names
    """
    if not name or is_unattributed(name):
        return False
    if any(name.startswith(prefix) for prefix in prefixes if prefix):
        return True
    lowered = name.lower()
    return any(marker.lower() in lowered for marker in markers if marker)


def same_identity(a: Optional[str], b: Optional[str]) -> bool:
    """Player names compare case-insensitively."""
    if not a or not b:
        return False
    return a.strip().casefold() == b.strip().casefold()


def identity_key(name: str) -> str:
    """Key used to group state by player identity."""
    return name.strip().casefold()
