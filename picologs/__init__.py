"""
Star Citizen Game.log event pipeline for Picologs

Classifies raw client log lines into typed events, merges duplicate reports
from multiple players, groups kill sprees and tracks per-peer delivery.
"""

__version__ = "0.1.0"
__author__ = "Picologs Team"
