"""
Ordered event timeline backed by an arena of events keyed by id.

Every event the pipeline has accepted lives in the arena exactly once. The
top-level order holds the ids shown to collaborators; spree children stay in
the arena but are linked to their parent instead of appearing top-level.
"""

import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from ..parser.events import LogEvent

logger = logging.getLogger(__name__)


class TimelineChange(NamedTuple):
    """Incremental change delivered to timeline listeners."""

    kind: str  # "added", "updated" or "removed"
    event: LogEvent


TimelineListener = Callable[[TimelineChange], None]


class EventTimeline:
    """Arena of events plus the ordered list of top-level ids."""

    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"

    def __init__(self):
        self._events: Dict[str, LogEvent] = {}
        self._order: List[str] = []
        self._parents: Dict[str, str] = {}
        self._listeners: List[TimelineListener] = []

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._events

    def __len__(self) -> int:
        return len(self._order)

    def get(self, event_id: str) -> Optional[LogEvent]:
        """Look up any event, top-level or child, by id."""
        return self._events.get(event_id)

    def events(self) -> List[LogEvent]:
        """Top-level events in output order."""
        return [self._events[event_id] for event_id in self._order]

    def position(self, event_id: str) -> Optional[int]:
        """Index of a top-level event, None for children and unknown ids."""
        try:
            return self._order.index(event_id)
        except ValueError:
            return None

    def is_top_level(self, event_id: str) -> bool:
        return event_id in self._events and event_id not in self._parents

    def parent_of(self, event_id: str) -> Optional[LogEvent]:
        parent_id = self._parents.get(event_id)
        return self._events.get(parent_id) if parent_id else None

    def top_level_of(self, event_id: str) -> Optional[LogEvent]:
        """The event itself, or its parent when it is a child."""
        return self.parent_of(event_id) or self._events.get(event_id)

    def append(self, event: LogEvent) -> int:
        """Add a new event at the end of the output order."""
        return self.insert_at(len(self._order), event)

    def insert_at(self, position: int, event: LogEvent) -> int:
        """
        Add a new event at a top-level position.

        Raises:
            ValueError: If an event with the same id is already stored
        """
        if event.id in self._events:
            raise ValueError(f"Event {event.id} is already in the timeline")

        position = max(0, min(position, len(self._order)))
        self._events[event.id] = event
        self._order.insert(position, event.id)
        self._notify(self.ADDED, event)
        return position

    def demote(self, child_id: str, parent_id: str) -> Optional[int]:
        """
        Move an event under a parent, removing it from the top-level order.

        Returns:
            The position the child held, None if it was not top-level

        Raises:
            ValueError: If the child already belongs to another parent
        """
        for event_id in (child_id, parent_id):
            if event_id not in self._events:
                raise KeyError(f"Unknown event {event_id}")
        current = self._parents.get(child_id)
        if current is not None and current != parent_id:
            raise ValueError(f"Event {child_id} is already a child of {current}")

        position = self.position(child_id)
        if position is not None:
            del self._order[position]
            self._notify(self.REMOVED, self._events[child_id])
        self._parents[child_id] = parent_id
        return position

    def touch(self, event: LogEvent):
        """Report an in-place change to an event, and to its parent if it has one."""
        self._notify(self.UPDATED, event)
        parent = self.parent_of(event.id)
        if parent is not None:
            self._notify(self.UPDATED, parent)

    def add_listener(self, listener: TimelineListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: TimelineListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, kind: str, event: LogEvent):
        change = TimelineChange(kind, event)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Timeline listener failed on {kind} {event.id}: {e}")
