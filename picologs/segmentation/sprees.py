"""
Kill spree aggregation.

Groups one killer's consecutive kills inside a rolling window into a single
parent event. The parent takes the top-level place of its first kill and the
kills become its children.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..config.settings import SpreeSettings
from ..correlation.timeline import EventTimeline
from ..parser.events import ActorDeathEvent, LogEvent, SpreeEvent
from ..parser.normalize import identity_key, same_identity

logger = logging.getLogger(__name__)


def make_spree_id(killer_key: str, first_kill_id: str) -> str:
    """Deterministic spree id, identical on every peer that sees the same first kill."""
    digest = hashlib.sha1(f"{killer_key}|{first_kill_id}".encode("utf-8")).hexdigest()
    return f"spree-{digest[:16]}"


@dataclass
class SpreeGroup:
    """Rolling kill buffer for one killer."""

    killer_key: str
    kill_ids: List[str] = field(default_factory=list)
    spree_id: Optional[str] = None
    last_kill: Optional[datetime] = None


@dataclass
class SpreeUpdate:
    """Result of aggregating one kill."""

    spree: Optional[SpreeEvent]
    created: bool = False

    # Spree closed by this kill, if any
    finalized: Optional[SpreeEvent] = None


class SpreeAggregator:
    """
    Aggregates kills reported by their killer into spree events.

    A kill is a candidate when the reporting identity is the killer, the
    killer is attributed and the death is not self-inflicted. Anything else
    passes through untouched.
    """

    def __init__(self, timeline: EventTimeline, settings: Optional[SpreeSettings] = None):
        """
        Initialize the aggregator.

        Args:
            timeline: Timeline holding the kills and spree parents
            settings: Window and threshold settings, defaults when omitted
        """
        self.timeline = timeline
        self.settings = settings or SpreeSettings()
        self.window = timedelta(seconds=self.settings.window)
        self.min_kills = max(2, self.settings.min_kills)

        self.groups: Dict[str, SpreeGroup] = {}
        self._high_water: Optional[datetime] = None

        self.stats = {
            "candidates": 0,
            "sprees_created": 0,
            "sprees_finalized": 0,
        }

    @staticmethod
    def is_candidate(event: LogEvent, reporter: Optional[str]) -> bool:
        """True when the event is a kill reported by its own killer."""
        if not isinstance(event, ActorDeathEvent):
            return False
        if not reporter or not event.killer_attributed:
            return False
        if event.is_self_kill:
            return False
        return same_identity(reporter, event.killer_name)

    def aggregate(self, event: LogEvent, reporter: Optional[str]) -> Optional[SpreeUpdate]:
        """
        Add a kill to its killer's buffer.

        Args:
            event: Surviving record from the correlator
            reporter: Identity that reported this copy of the event

        Returns:
            Spree update when the kill was buffered, None when it stays standalone
        """
        if not self.is_candidate(event, reporter):
            return None

        self.stats["candidates"] += 1
        key = identity_key(event.killer_name)
        group = self.groups.get(key)
        if group is None:
            group = self.groups[key] = SpreeGroup(killer_key=key)

        if event.id in group.kill_ids:
            # Known kill, only its reporters may have changed
            spree = self._active_spree(group)
            if spree is not None:
                self._refresh(spree, group)
                self.timeline.touch(spree)
            return SpreeUpdate(spree)

        parent = self.timeline.parent_of(event.id)
        if parent is not None:
            # Already a child of an earlier spree, typically a re-sent batch
            parent.add_reporters(event.reported_by)
            self.timeline.touch(parent)
            return None

        kills = self._buffered_kills(group)
        if kills and kills[-1].timestamp - event.timestamp > self.window:
            logger.debug(f"Kill {event.id} predates the spree window for {event.killer_name}")
            return None

        kept = [k for k in kills if event.timestamp - k.timestamp <= self.window]
        finalized = None
        spree = self._active_spree(group)
        if spree is not None and len(kept) < len(kills):
            finalized = self._finalize(group, spree)
            spree = None
            kept = []

        kept.append(event)
        kept.sort(key=lambda k: k.timestamp)
        group.kill_ids = [k.id for k in kept]
        group.last_kill = max(k.timestamp for k in kept)
        self._evict_idle(event.timestamp)

        if len(kept) < self.min_kills:
            return SpreeUpdate(spree, finalized=finalized)

        created = False
        if spree is None:
            spree = self._create(group, kept)
            created = True
        else:
            self.timeline.demote(event.id, spree.id)
            self._refresh(spree, group)
            self.timeline.touch(spree)

        return SpreeUpdate(spree, created=created, finalized=finalized)

    def finalize_all(self) -> List[SpreeEvent]:
        """Close every active spree and empty all buffers."""
        finalized = []
        for group in self.groups.values():
            spree = self._active_spree(group)
            if spree is not None:
                finalized.append(self._finalize(group, spree))
        self.groups.clear()
        return finalized

    def _buffered_kills(self, group: SpreeGroup) -> List[ActorDeathEvent]:
        kills = [self.timeline.get(kill_id) for kill_id in group.kill_ids]
        return [k for k in kills if k is not None]

    def _active_spree(self, group: SpreeGroup) -> Optional[SpreeEvent]:
        if group.spree_id is None:
            return None
        return self.timeline.get(group.spree_id)

    def _create(self, group: SpreeGroup, kills: List[ActorDeathEvent]) -> SpreeEvent:
        first = kills[0]
        spree = SpreeEvent(
            id=make_spree_id(group.killer_key, first.id),
            timestamp=first.timestamp,
            source_text=first.source_text,
            player=first.killer_name,
            killer_name=first.killer_name,
            killer_id=first.killer_id,
        )
        positions = [self.timeline.position(k.id) for k in kills]
        positions = [p for p in positions if p is not None]
        position = min(positions) if positions else len(self.timeline)

        group.spree_id = spree.id
        self._refresh(spree, group)
        self.timeline.insert_at(position, spree)
        for kill in kills:
            self.timeline.demote(kill.id, spree.id)

        self.stats["sprees_created"] += 1
        logger.info(f"{spree.killer_name} started a killing spree ({spree.kill_count} kills)")
        return spree

    def _refresh(self, spree: SpreeEvent, group: SpreeGroup):
        kills = self._buffered_kills(group)
        spree.children = kills
        spree.kill_count = len(kills)
        spree.timestamp = max(k.timestamp for k in kills)
        spree.source_text = kills[-1].source_text
        for kill in kills:
            spree.add_reporters(kill.reported_by)

    def _finalize(self, group: SpreeGroup, spree: SpreeEvent) -> SpreeEvent:
        spree.finalized = True
        group.spree_id = None
        group.kill_ids = []
        self.timeline.touch(spree)
        self.stats["sprees_finalized"] += 1
        logger.debug(f"Finalized spree {spree.id} with {spree.kill_count} kills")
        return spree

    def _evict_idle(self, now: datetime):
        """Finalize and drop groups whose latest kill is out of the window."""
        if self._high_water is not None and now <= self._high_water:
            return
        self._high_water = now

        for key in list(self.groups):
            group = self.groups[key]
            if group.last_kill is None or now - group.last_kill <= self.window:
                continue
            spree = self._active_spree(group)
            if spree is not None:
                self._finalize(group, spree)
            del self.groups[key]
