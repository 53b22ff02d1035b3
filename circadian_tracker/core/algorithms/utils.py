"""
pandas adapters for the circadian algorithms.

Sleep logs usually arrive as tables. ``intervals_from_dataframe`` turns one
into the SleepInterval sequence the algorithms consume; the reverse
direction is ``CircadianAnalysis.to_dataframe()``.
"""

from __future__ import annotations

import logging

import pandas as pd

from circadian_tracker.core.dataclasses import SleepInterval
from circadian_tracker.core.exceptions import ErrorCodes, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = ("start", "end", "quality")


def intervals_from_dataframe(df: pd.DataFrame) -> list[SleepInterval]:
    """
    Build sleep intervals from a DataFrame.

    Required columns are ``start``, ``end`` and ``quality``. Optional columns:
    ``is_main_sleep`` (defaults to True), ``date_of_sleep`` (defaults to the
    end date) and ``duration_hours`` (defaults to end - start). Rows keep
    their order, so analysis back-references index into ``df`` positionally.

    Args:
        df: Sleep log, one row per record

    Returns:
        One SleepInterval per row

    Raises:
        ValidationError: If a required column is missing or a row is invalid

    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        msg = f"Sleep log is missing required columns: {', '.join(missing)}"
        raise ValidationError(msg, ErrorCodes.MISSING_REQUIRED, {"missing": missing})

    starts = pd.to_datetime(df["start"])
    ends = pd.to_datetime(df["end"])
    main_sleep = df["is_main_sleep"] if "is_main_sleep" in df.columns else pd.Series(True, index=df.index)
    sleep_dates = pd.to_datetime(df["date_of_sleep"]).dt.date if "date_of_sleep" in df.columns else None
    durations = df["duration_hours"] if "duration_hours" in df.columns else None

    intervals = []
    for pos in range(len(df)):
        intervals.append(
            SleepInterval(
                start=starts.iloc[pos].to_pydatetime(),
                end=ends.iloc[pos].to_pydatetime(),
                quality=float(df["quality"].iloc[pos]),
                is_main_sleep=bool(main_sleep.iloc[pos]),
                date_of_sleep=sleep_dates.iloc[pos] if sleep_dates is not None else None,
                duration_hours=float(durations.iloc[pos]) if durations is not None else None,
            )
        )

    logger.debug("Loaded %d sleep intervals from DataFrame", len(intervals))
    return intervals
