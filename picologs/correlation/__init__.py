"""
Correlation of events reported by several observers.
"""

from .timeline import EventTimeline, TimelineChange
from .dedup import CorrelationResult, DedupWindowEntry, EventCorrelator

__all__ = [
    "EventTimeline",
    "TimelineChange",
    "CorrelationResult",
    "DedupWindowEntry",
    "EventCorrelator",
]
