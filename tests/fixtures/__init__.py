"""Test fixtures for the circadian tracker."""

from tests.fixtures.synthetic import (
    DEFAULT_START,
    SleepLogConfig,
    generate_sleep_log,
    make_interval,
    sleep_log_dataframe,
)

__all__ = [
    "DEFAULT_START",
    "SleepLogConfig",
    "generate_sleep_log",
    "make_interval",
    "sleep_log_dataframe",
]
