"""
Serialized event pipeline.
"""

from .processor import LogProcessor

__all__ = ["LogProcessor"]
