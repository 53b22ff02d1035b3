#!/usr/bin/env python3
"""
Shared test fixtures for the circadian tracker.
Provides synthetic sleep logs with a known period.
"""

from __future__ import annotations

import pytest

from circadian_tracker.core.dataclasses import SleepInterval
from tests.fixtures import generate_sleep_log


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


@pytest.fixture
def entrained_log() -> list[SleepInterval]:
    """90 nights on a 24.0h rhythm."""
    return generate_sleep_log(tau=24.0, days=90)


@pytest.fixture
def free_running_log() -> list[SleepInterval]:
    """90 nights on a 24.5h rhythm."""
    return generate_sleep_log(tau=24.5, days=90)

