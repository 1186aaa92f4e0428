"""
Serialized processing pipeline for local log lines and peer events.

Local lines go through classification, correlation and spree aggregation.
Events received from peers are validated and enter at the correlation stage;
they are never re-classified. All mutation happens under one lock, so lines
from the file watcher and events from several peer connections are processed
one at a time in arrival order.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config.settings import Settings, get_settings
from ..correlation.dedup import EventCorrelator
from ..correlation.timeline import EventTimeline, TimelineListener
from ..exceptions import PeerPayloadError
from ..parser.classifier import LogClassifier
from ..parser.events import ConnectionEvent, LogEvent, SpreeEvent
from ..parser.normalize import is_unattributed
from ..parser.schemas import parse_remote_event
from ..parser.tokenizer import RawLogLine
from ..segmentation.sprees import SpreeAggregator, SpreeUpdate
from ..sync.store import KeyValueStore
from ..sync.tracker import SyncTracker

logger = logging.getLogger(__name__)


class LogProcessor:
    """
    Runs the event pipeline for one local player.

    Features:
    - Classification of local Game.log lines
    - Deduplication across local and peer reports
    - Kill spree aggregation
    - Per-peer delta sync cursors
    - Change callbacks for incremental display
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        reporter: Optional[str] = None,
        store: Optional[KeyValueStore] = None,
    ):
        """
        Initialize the processor.

        Args:
            settings: Pipeline settings, the global settings when omitted
            reporter: Local player identity; learned from the first
                connection line when omitted
            store: Key-value store for sync cursors
        """
        self.settings = settings or get_settings()
        self.reporter = reporter

        self.timeline = EventTimeline()
        self.classifier = LogClassifier(self.settings.classifier)
        self.correlator = EventCorrelator(self.timeline, self.settings.correlation)
        self.aggregator = SpreeAggregator(self.timeline, self.settings.spree)
        self.sync = SyncTracker(self.timeline, store)

        self._lock = threading.RLock()
        self._stats = {
            "lines_processed": 0,
            "events_classified": 0,
            "events_inserted": 0,
            "events_merged": 0,
            "remote_received": 0,
            "remote_rejected": 0,
            "sprees_created": 0,
        }

    def process_line(
        self, line: Union[RawLogLine, str], arrival_time: Optional[datetime] = None
    ) -> Optional[LogEvent]:
        """
        Process one line from the local log.

        Args:
            line: Raw line, or its text
            arrival_time: Time the line was read, now when omitted; only
                used when the line carries no timestamp

        Returns:
            The surviving record for the line, None when nothing matched
        """
        if isinstance(line, str):
            line = RawLogLine(line, arrival_time or datetime.now(timezone.utc))

        with self._lock:
            self._stats["lines_processed"] += 1
            event = self.classifier.classify(line)
            if event is None:
                return None

            self._stats["events_classified"] += 1
            if isinstance(event, ConnectionEvent) and self.reporter is None:
                if not is_unattributed(event.player_name):
                    self.reporter = event.player_name
                    logger.info(f"Local player identified as {self.reporter}")

            if event.player is None:
                event.player = self.reporter
            event.add_reporters([self.reporter])
            return self._submit(event, self.reporter)

    def process_lines(self, lines: Iterable[Union[RawLogLine, str]]) -> List[LogEvent]:
        """Process lines in order, returning the records they produced."""
        results = []
        for line in lines:
            event = self.process_line(line)
            if event is not None:
                results.append(event)
        return results

    def ingest_remote(
        self,
        payload: Dict[str, Any],
        sender_id: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> List[LogEvent]:
        """
        Accept an event received from a peer.

        Spree payloads are unpacked into their kills, which are correlated
        and aggregated locally.

        Args:
            payload: Event in ``to_dict()`` form
            sender_id: Sender identity from the transport
            sender_name: Sender display name

        Returns:
            The surviving records

        Raises:
            PeerPayloadError: If the payload fails validation
        """
        with self._lock:
            self._stats["remote_received"] += 1
            try:
                event = parse_remote_event(payload, sender_id)
            except PeerPayloadError as e:
                self._stats["remote_rejected"] += 1
                logger.warning(f"Rejected event from {sender_id or 'unknown peer'}: {e}")
                raise

            identity = event.player or sender_name or sender_id
            if isinstance(event, SpreeEvent):
                reports = event.children
            else:
                reports = [event]

            results = []
            for report in reports:
                if report.player is None:
                    report.player = identity
                report.add_reporters([identity])
                results.append(self._submit(report, identity))
            return results

    def finalize(self) -> List[SpreeEvent]:
        """Close all active sprees, e.g. at the end of a replay."""
        with self._lock:
            return self.aggregator.finalize_all()

    def events(self) -> List[LogEvent]:
        """Top-level events in output order."""
        with self._lock:
            return self.timeline.events()

    def get_event(self, event_id: str) -> Optional[LogEvent]:
        with self._lock:
            return self.timeline.get(event_id)

    def add_listener(self, listener: TimelineListener):
        """Register a callback receiving every ``TimelineChange``."""
        with self._lock:
            self.timeline.add_listener(listener)

    def remove_listener(self, listener: TimelineListener):
        with self._lock:
            self.timeline.remove_listener(listener)

    def events_since(self, peer: str, limit: Optional[int] = None) -> List[LogEvent]:
        with self._lock:
            return self.sync.events_since(peer, limit)

    def advance(self, peer: str, timestamp: datetime) -> datetime:
        with self._lock:
            return self.sync.advance(peer, timestamp)

    def cursor_for(self, peer: str) -> Optional[datetime]:
        with self._lock:
            return self.sync.cursor_for(peer)

    def get_stats(self) -> Dict[str, Any]:
        """Pipeline counters."""
        with self._lock:
            return {
                **self._stats,
                "top_level_events": len(self.timeline),
                "dedup_entries": len(self.correlator),
                "active_spree_groups": len(self.aggregator.groups),
                "reporter": self.reporter,
            }

    def _submit(self, event: LogEvent, reporter: Optional[str]) -> LogEvent:
        result = self.correlator.correlate(event)
        if result.inserted:
            self._stats["events_inserted"] += 1
        else:
            self._stats["events_merged"] += 1

        update: Optional[SpreeUpdate] = self.aggregator.aggregate(result.event, reporter)
        if update is not None and update.created:
            self._stats["sprees_created"] += 1
        return result.event
