"""
Tests for the picologs event pipeline.

This package contains tests for:
- Line tokenizing and pattern classification
- Deduplication of reports from several observers
- Kill spree aggregation
- Per-peer delta sync
- Configuration and the command-line interface
"""
