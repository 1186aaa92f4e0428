"""
Delta synchronization with peers.
"""

from .store import KeyValueStore, MemoryStore
from .tracker import SyncTracker

__all__ = ["KeyValueStore", "MemoryStore", "SyncTracker"]
