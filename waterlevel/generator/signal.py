"""Synthetic hourly water level signal.

The level is the superposition of three cosine cycles: a yearly seasonal swing, a
ten day rainfall cycle and a daily usage dip. Samples are spaced exactly one hour
apart starting at REFERENCE_EPOCH.
"""
import math
from datetime import datetime, timedelta
from typing import Iterator, List

import pandas as pd

from waterlevel.exceptions.custom import InvalidArgumentException
from waterlevel.models.sample import Sample

__all__ = (
    "REFERENCE_EPOCH",
    "HOURS_PER_DAY",
    "cycle",
    "water_level",
    "sample_count",
    "iter_samples",
    "generate",
    "samples_to_frame",
)

REFERENCE_EPOCH = datetime(2020, 1, 1, 0)
"""Point in time of x = 0"""
HOURS_PER_DAY = 24


def cycle(x: float, amplitude: float = 1, period: float = 1, trend: float = 0, shift: float = 0) -> float:
    """Evaluate a cosine cycle on x.

    :param x: position, in days
    :param amplitude: amplitude of the cycle
    :param period: days to complete a full cycle, must not be 0
    :param trend: linear change per day
    :param shift: constant added to move the function vertically
    """
    return amplitude * math.cos(x * ((2 * math.pi) / period)) + trend * x + shift


def water_level(x: float) -> float:
    return (
        cycle(x, -30, 365, 0, 50)  # yearly seasonal
        + cycle(x, -0.5, 10, 0, 0.5)  # rainfall
        + cycle(x, -0.15, 1, 0, -0.5)  # daily usage
    )


def sample_count(duration_days: float) -> int:
    """Number of hourly samples in the half-open interval [0, duration_days)."""
    if math.isnan(duration_days) or math.isinf(duration_days):
        raise InvalidArgumentException(f"duration_days must be finite, got {duration_days}")
    if duration_days < 0:
        raise InvalidArgumentException(f"duration_days must be >= 0, got {duration_days}")
    return math.ceil(duration_days * HOURS_PER_DAY)


def iter_samples(duration_days: float, epoch: datetime = REFERENCE_EPOCH) -> Iterator[Sample]:
    """Lazily yield the hourly samples of duration_days.

    The argument is validated when the first sample is requested."""
    count = sample_count(duration_days)
    for index in range(count):
        # x from the index, never by accumulating 1/24 steps
        x = index / float(HOURS_PER_DAY)
        yield Sample(
            timestamp=epoch + timedelta(hours=index),
            value=water_level(x),
        )


def generate(duration_days: float, epoch: datetime = REFERENCE_EPOCH) -> List[Sample]:
    """Return duration_days of hourly samples, ordered by timestamp.

    Raises InvalidArgumentException before producing anything when duration_days is negative."""
    sample_count(duration_days)
    return list(iter_samples(duration_days, epoch))


def samples_to_frame(samples: List[Sample]) -> pd.DataFrame:
    """Tabulate samples with the column names of the wire message."""
    return pd.DataFrame(
        {
            "date": [sample.timestamp for sample in samples],
            "waterLevel": [sample.value for sample in samples],
        }
    )
