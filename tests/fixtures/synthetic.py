"""
Synthetic sleep log generators for circadian tests.

Sleeps are placed every ``tau`` hours with Gaussian jitter on onset and
duration, so a generated log has a known true period. Generation is seeded
and fully deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from circadian_tracker.core.dataclasses import SleepInterval

DEFAULT_START = datetime(2024, 1, 1, 23, 0)


@dataclass(frozen=True)
class SleepLogConfig:
    """
    Parameters of a generated sleep log.

    Attributes:
        tau: True period between consecutive sleep onsets (hours)
        days: Number of sleeps generated before gaps are removed
        start: Onset of the first sleep
        noise_hours: Standard deviation of onset jitter
        duration_hours: Mean sleep duration
        duration_jitter_hours: Standard deviation of duration
        quality: Quality score of every record
        gap: Optional (first missing sleep index, number of missing sleeps)
        seed: Random seed

    """

    tau: float = 24.0
    days: int = 90
    start: datetime = DEFAULT_START
    noise_hours: float = 0.3
    duration_hours: float = 8.0
    duration_jitter_hours: float = 0.5
    quality: float = 0.8
    gap: tuple[int, int] | None = None
    seed: int = 42


def generate_sleep_log(config: SleepLogConfig | None = None, **overrides: object) -> list[SleepInterval]:
    """Generate one main sleep per cycle of length ``tau``."""
    if config is None:
        config = SleepLogConfig(**overrides)  # type: ignore[arg-type]
    rng = np.random.default_rng(config.seed)

    records = []
    for i in range(config.days):
        onset_offset = rng.normal(0.0, config.noise_hours)
        duration = max(1.0, rng.normal(config.duration_hours, config.duration_jitter_hours))
        if config.gap is not None and config.gap[0] <= i < config.gap[0] + config.gap[1]:
            continue
        start = config.start + timedelta(hours=i * config.tau + onset_offset)
        records.append(SleepInterval(start=start, end=start + timedelta(hours=duration), quality=config.quality))
    return records


def sleep_log_dataframe(records: list[SleepInterval]) -> pd.DataFrame:
    """Tabulate records the way a sleep log export would."""
    return pd.DataFrame(
        {
            "start": [r.start for r in records],
            "end": [r.end for r in records],
            "quality": [r.quality for r in records],
            "is_main_sleep": [r.is_main_sleep for r in records],
        }
    )


def make_interval(
    start: datetime,
    hours: float = 8.0,
    quality: float = 0.9,
    is_main_sleep: bool = True,
) -> SleepInterval:
    """Single record starting at ``start`` and lasting ``hours``."""
    return SleepInterval(
        start=start,
        end=start + timedelta(hours=hours),
        quality=quality,
        is_main_sleep=is_main_sleep,
    )
