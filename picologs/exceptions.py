"""
Exception types raised at the boundaries of the event pipeline.
"""

from typing import Optional


class PicologsError(Exception):
    """Base class for all picologs errors."""


class PeerPayloadError(PicologsError):
    """An event received from a peer failed validation."""

    def __init__(self, message: str, sender_id: Optional[str] = None):
        super().__init__(message)
        self.sender_id = sender_id


class ConfigurationError(PicologsError, ValueError):
    """Settings are missing or out of range."""
