"""
Deduplication of independent reports of the same occurrence.

Reports sharing a correlation key whose timestamps fall within the window for
their kind are merged into the record that arrived first. The record keeps its
id and output position; reporters accumulate, and a report of higher severity
replaces the displayed fields.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, NamedTuple, Optional

from ..config.settings import CorrelationSettings
from ..parser.events import CorrelationKey, LogEvent
from .timeline import EventTimeline

logger = logging.getLogger(__name__)


@dataclass
class DedupWindowEntry:
    """Recently seen occurrence, kept while inside its window."""

    key: CorrelationKey
    event_id: str

    # Timestamp of the surviving record; merges never widen it
    timestamp: datetime

    def matches(self, timestamp: datetime, window: timedelta) -> bool:
        """True when the timestamp is less than one window away from this occurrence."""
        return abs(timestamp - self.timestamp) < window

    def is_stale(self, now: datetime, window: timedelta) -> bool:
        return self.timestamp + window <= now


class CorrelationResult(NamedTuple):
    """Outcome of correlating one report."""

    event: LogEvent  # surviving record
    inserted: bool  # True when the report became a new record
    changed: bool = False  # True when an existing record was modified


class EventCorrelator:
    """
    Merges reports of the same occurrence into one timeline record.

    Keyless events and kinds without a configured window pass straight
    through. Events whose id is already in the timeline (the same event
    delivered twice) merge regardless of key.
    """

    def __init__(self, timeline: EventTimeline, settings: Optional[CorrelationSettings] = None):
        """
        Initialize the correlator.

        Args:
            timeline: Timeline the surviving records are written to
            settings: Window settings, defaults when omitted
        """
        self.timeline = timeline
        self.settings = settings or CorrelationSettings()

        self._entries: Dict[CorrelationKey, List[DedupWindowEntry]] = {}
        self._high_water: Optional[datetime] = None

        self.stats = {
            "inserted": 0,
            "merged": 0,
            "upgraded": 0,
            "evicted": 0,
        }

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def correlate(self, event: LogEvent) -> CorrelationResult:
        """
        Correlate a report against recent history.

        Args:
            event: Newly classified or received event

        Returns:
            The surviving record and whether it was newly inserted
        """
        existing = self.timeline.get(event.id)
        if existing is not None:
            return self._merge(existing, event)

        key = event.correlation_key()
        window = self._window(key)
        if key is None or window is None:
            return self._insert(event)

        self._advance_high_water(event.timestamp)

        for entry in self._entries.get(key, []):
            if entry.matches(event.timestamp, window):
                survivor = self.timeline.get(entry.event_id)
                if survivor is None:
                    continue
                result = self._merge(survivor, event)
                # A severity upgrade may move the survivor's timestamp
                entry.timestamp = survivor.timestamp
                return result

        result = self._insert(event)
        self._entries.setdefault(key, []).append(
            DedupWindowEntry(key=key, event_id=event.id, timestamp=event.timestamp)
        )
        return result

    def evict_stale(self, now: Optional[datetime] = None) -> int:
        """
        Drop window entries older than their window relative to ``now``.

        Args:
            now: Reference time, the newest processed timestamp by default

        Returns:
            Number of entries evicted
        """
        now = now or self._high_water
        if now is None:
            return 0

        evicted = 0
        for key in list(self._entries):
            window = self._window(key)
            if window is None:
                evicted += len(self._entries.pop(key))
                continue
            kept = [e for e in self._entries[key] if not e.is_stale(now, window)]
            evicted += len(self._entries[key]) - len(kept)
            if kept:
                self._entries[key] = kept
            else:
                del self._entries[key]

        if evicted:
            self.stats["evicted"] += evicted
            logger.debug(f"Evicted {evicted} stale dedup entries")
        return evicted

    def _window(self, key: Optional[CorrelationKey]) -> Optional[timedelta]:
        if key is None:
            return None
        seconds = self.settings.window_for(key[0].value)
        if seconds is None:
            return None
        return timedelta(seconds=seconds)

    def _advance_high_water(self, timestamp: datetime):
        if self._high_water is None or timestamp > self._high_water:
            self._high_water = timestamp
            self.evict_stale()

    def _insert(self, event: LogEvent) -> CorrelationResult:
        self.timeline.append(event)
        self.stats["inserted"] += 1
        return CorrelationResult(event, inserted=True, changed=True)

    def _merge(self, survivor: LogEvent, report: LogEvent) -> CorrelationResult:
        changed = survivor.add_reporters(report.reported_by)

        if type(survivor) is type(report):
            new_level = report.severity()
            old_level = survivor.severity()
            if new_level is not None and old_level is not None and new_level > old_level:
                timestamp = max(survivor.timestamp, report.timestamp)
                survivor.update_from(report)
                survivor.timestamp = timestamp
                self.stats["upgraded"] += 1
                changed = True
                logger.debug(f"Upgraded {survivor.id} to severity {new_level}")

        self.stats["merged"] += 1
        if changed:
            self.timeline.touch(survivor)
        return CorrelationResult(survivor, inserted=False, changed=changed)
