"""
Pytest configuration and shared fixtures for the test suite.

This file provides common configuration and fixtures used across
all test modules.
"""

import pytest
from datetime import datetime, timezone
from pathlib import Path

import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from picologs.config.settings import Settings
from picologs.streaming.processor import LogProcessor


@pytest.fixture
def base_time():
    """Reference timestamp used by most tests."""
    return datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Settings with built-in defaults, independent of the environment."""
    return Settings.defaults()


@pytest.fixture
def processor(settings):
    """Processor for a local player named Alice."""
    return LogProcessor(settings=settings, reporter="Alice")


@pytest.fixture
def sample_log_lines():
    """Sample Game.log lines for testing."""
    return [
        "<2024.01.01-12:00:00.000> AccountLoginCharacterStatus_Character - name Alice - geid 200146295176 - EntityId[200146295176] - state STATE_CURRENT",
        "<2024.01.01-12:00:05.000> [Notice] <RequestLocationInventory> Player[Alice] requested inventory for Location[Stanton_ArcCorp_Area18]",
        "<2024.01.01-12:00:10.000> [Notice] <Vehicle Control Flow> CVehicleMovementBase::SetDriver: Local client node [200146295176] requesting control token for 'AEGS_Gladius_1234567' [1234567] [Team_VehicleFeatures][Vehicle]",
        "<2024.01.01-12:01:00.000> [Notice] <Actor Death> CActor::Kill: 'Bob' [1001] in zone 'AEGS_Gladius_7654321' killed by 'Alice' [200146295176] using 'KLWE_LaserRepeater_S3_1' [Class KLWE_LaserRepeater_S3] with damage type 'VehicleDestruction' from direction x: 0.1, y: -0.5, z: 0.8 [Team_ActorTech][Actor]",
        "<2024.01.01-12:01:01.000> [Notice] <Vehicle Destruction> CVehicle::OnAdvanceDestroyLevel: Vehicle 'AEGS_Gladius_7654321' [7654321] in zone 'Stanton' [pos x: 1, y: 2, z: 3 vel x: 0, y: 0, z: 0] driven by 'Bob' [1001] advanced from destroy level 0 to 2 caused by 'Alice' [200146295176] with 'Combat' [Team_VehicleFeatures][Vehicle]",
        "<2024.01.01-12:02:00.000> [Notice] <SystemQuit> CSystem::Quit invoked by Player[Alice]",
        "<2024.01.01-12:02:01.000> [Trace] Some unrelated engine chatter",
    ]


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as an end-to-end pipeline test")
    config.addinivalue_line("markers", "cli: mark test as command-line interface related")


# Pytest collection configuration
def pytest_collection_modifyitems(config, items):
    """Modify collected test items with markers."""
    for item in items:
        # Auto-mark tests based on file names
        if "test_processor" in item.fspath.basename:
            item.add_marker(pytest.mark.integration)

        if "test_cli" in item.fspath.basename:
            item.add_marker(pytest.mark.cli)
