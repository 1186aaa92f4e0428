"""
Grouping of related events into parent events.
"""

from .sprees import SpreeAggregator, SpreeGroup, SpreeUpdate, make_spree_id

__all__ = ["SpreeAggregator", "SpreeGroup", "SpreeUpdate", "make_spree_id"]
