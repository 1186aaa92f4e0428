"""
Per-peer delivery tracking.

Each peer has a cursor: the timestamp of the last event delivered to it.
Cursors only move forward and are written through to a key-value store so a
restarted client does not resend everything.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from ..correlation.timeline import EventTimeline
from ..parser.events import LogEvent
from ..parser.tokenizer import as_utc
from .store import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


class SyncTracker:
    """
    Computes outbound event batches per peer.

    Example:
        batch = tracker.events_since("peer-1", limit=50)
        send(batch)
        tracker.advance("peer-1", batch[-1].timestamp)
    """

    CURSOR_PREFIX = "sync_cursor:"

    def __init__(self, timeline: EventTimeline, store: Optional[KeyValueStore] = None):
        """
        Initialize the tracker.

        Args:
            timeline: Timeline whose top-level events are delivered
            store: Cursor persistence, in-memory when omitted
        """
        self.timeline = timeline
        self.store = store if store is not None else MemoryStore()
        self._cursors: Dict[str, datetime] = {}
        self._lock = threading.RLock()

    def cursor_for(self, peer: str) -> Optional[datetime]:
        """Last delivered timestamp for a peer, None when nothing was delivered."""
        with self._lock:
            if peer in self._cursors:
                return self._cursors[peer]

            raw = self.store.get(self._store_key(peer))
            if not raw:
                return None
            try:
                cursor = as_utc(datetime.fromisoformat(raw))
            except ValueError:
                logger.warning(f"Ignoring unreadable sync cursor for {peer}: {raw!r}")
                return None
            self._cursors[peer] = cursor
            return cursor

    def advance(self, peer: str, timestamp: datetime) -> datetime:
        """
        Move a peer's cursor forward.

        A timestamp older than the current cursor leaves it unchanged.

        Returns:
            The cursor after the call
        """
        timestamp = as_utc(timestamp)
        with self._lock:
            current = self.cursor_for(peer)
            if current is not None and timestamp <= current:
                return current

            self._cursors[peer] = timestamp
            self.store.set(self._store_key(peer), timestamp.isoformat())
            logger.debug(f"Sync cursor for {peer} advanced to {timestamp.isoformat()}")
            return timestamp

    def events_since(self, peer: str, limit: Optional[int] = None) -> List[LogEvent]:
        """
        Top-level events newer than the peer's cursor.

        Args:
            peer: Peer identity
            limit: Maximum batch size, unbounded when None

        Returns:
            Events in ascending timestamp order, ties in timeline order
        """
        with self._lock:
            cursor = self.cursor_for(peer)
            pending = [
                e for e in self.timeline.events() if cursor is None or e.timestamp > cursor
            ]
        pending.sort(key=lambda e: e.timestamp)
        if limit is not None:
            pending = pending[: max(0, limit)]
        return pending

    def pending_count(self, peer: str) -> int:
        return len(self.events_since(peer))

    def _store_key(self, peer: str) -> str:
        return f"{self.CURSOR_PREFIX}{peer}"
