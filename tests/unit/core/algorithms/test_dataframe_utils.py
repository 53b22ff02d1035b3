"""
Tests for the pandas sleep-log adapter.
"""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd
import pytest

from circadian_tracker.core.algorithms.utils import intervals_from_dataframe
from circadian_tracker.core.exceptions import ErrorCodes, ValidationError
from tests.fixtures import generate_sleep_log, sleep_log_dataframe


class TestIntervalsFromDataFrame:
    """Tests for intervals_from_dataframe."""

    def test_round_trip_of_generated_log(self) -> None:
        """Tabulated records come back unchanged and in order."""
        records = generate_sleep_log(days=10)

        assert intervals_from_dataframe(sleep_log_dataframe(records)) == records

    def test_string_timestamps_and_optional_columns(self) -> None:
        """ISO strings are parsed; optional columns override defaults."""
        df = pd.DataFrame(
            {
                "start": ["2024-03-01 23:00", "2024-03-02 14:00"],
                "end": ["2024-03-02 07:00", "2024-03-02 15:30"],
                "quality": [0.9, 0.6],
                "is_main_sleep": [True, False],
                "date_of_sleep": ["2024-03-02", "2024-03-02"],
                "duration_hours": [7.5, 1.5],
            }
        )
        intervals = intervals_from_dataframe(df)

        assert intervals[0].start == datetime(2024, 3, 1, 23, 0)
        assert intervals[0].duration == 7.5
        assert not intervals[1].is_main_sleep
        assert intervals[1].sleep_date == date(2024, 3, 2)

    def test_missing_column_rejected(self) -> None:
        """A log without quality scores is rejected."""
        df = pd.DataFrame({"start": ["2024-03-01 23:00"], "end": ["2024-03-02 07:00"]})

        with pytest.raises(ValidationError) as exc_info:
            intervals_from_dataframe(df)

        assert exc_info.value.error_code == ErrorCodes.MISSING_REQUIRED
        assert exc_info.value.context == {"missing": ["quality"]}

    def test_invalid_row_rejected(self) -> None:
        """Row validation errors propagate."""
        df = pd.DataFrame({"start": ["2024-03-02 07:00"], "end": ["2024-03-01 23:00"], "quality": [0.5]})

        with pytest.raises(ValidationError):
            intervals_from_dataframe(df)

    def test_empty_frame(self) -> None:
        """An empty log gives no intervals."""
        df = pd.DataFrame({"start": [], "end": [], "quality": []})

        assert intervals_from_dataframe(df) == []
