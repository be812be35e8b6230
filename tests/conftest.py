"""Fixtures used by pytest."""

import datetime
import pathlib
from typing import Callable, List, Sequence, Tuple

import polars as pl
import pytest

from nightscore.core import models

UTC = datetime.timezone.utc

SegmentFactory = Callable[
    [datetime.datetime, Sequence[Tuple[str, int]]], List[models.RawSegment]
]


def contiguous_segments(
    start: datetime.datetime, stages: Sequence[Tuple[str, int]]
) -> List[models.RawSegment]:
    """Create back to back raw segments from (label, minutes) pairs."""
    raw_segments = []
    current = start
    for label, minutes in stages:
        end = current + datetime.timedelta(minutes=minutes)
        raw_segments.append(
            models.RawSegment(start_time=current, end_time=end, stage_label=label)
        )
        current = end
    return raw_segments


@pytest.fixture
def make_raw_segments() -> SegmentFactory:
    """Factory for contiguous raw segments."""
    return contiguous_segments


@pytest.fixture
def clean_night() -> List[models.RawSegment]:
    """An 8 hour night from 23:00 to 07:00 UTC with a single 8 minute awakening.

    Totals: awake 8, deep 90, rem 100, light 282 minutes.
    """
    return contiguous_segments(
        datetime.datetime(2025, 10, 22, 23, 0, tzinfo=UTC),
        [
            ("asleep_core", 100),
            ("asleep_deep", 90),
            ("asleep_core", 60),
            ("awake", 8),
            ("asleep_rem", 100),
            ("asleep_core", 122),
        ],
    )


@pytest.fixture
def fragmented_night() -> List[models.RawSegment]:
    """A 4 hour night from 00:00 UTC with six awakenings, the longest 35 minutes.

    Totals: awake 50, light 130, deep 30, rem 30 minutes.
    """
    return contiguous_segments(
        datetime.datetime(2025, 10, 23, 0, 0, tzinfo=UTC),
        [
            ("asleep_core", 40),
            ("awake", 3),
            ("asleep_deep", 30),
            ("awake", 3),
            ("asleep_core", 20),
            ("awake", 35),
            ("asleep_rem", 30),
            ("awake", 3),
            ("asleep_core", 30),
            ("awake", 3),
            ("asleep_core", 20),
            ("awake", 3),
            ("asleep_core", 20),
        ],
    )


@pytest.fixture
def afternoon_nap() -> List[models.RawSegment]:
    """A 25 minute nap at 14:00 UTC on the day after the clean night."""
    return contiguous_segments(
        datetime.datetime(2025, 10, 23, 14, 0, tzinfo=UTC),
        [("asleep_core", 13), ("asleep_deep", 12)],
    )


@pytest.fixture
def sample_episode() -> Callable[..., models.SleepEpisode]:
    """Factory for a primary episode with overridable statistics."""

    def _make(**overrides: object) -> models.SleepEpisode:
        start = datetime.datetime(2025, 10, 22, 23, 0, tzinfo=UTC)
        end = start + datetime.timedelta(minutes=480)
        values = {
            "episode_type": models.EpisodeType.primary,
            "start": start,
            "end": end,
            "in_bed_minutes": 480,
            "awake_minutes": 20,
            "light_minutes": 250,
            "deep_minutes": 90,
            "rem_minutes": 120,
            "actual_sleep_minutes": 460,
            "sleep_efficiency": 460 / 480,
            "awakenings_count": 1,
            "longest_awake_bout_minutes": 5,
            "midpoint": start + datetime.timedelta(minutes=240),
            "night_key_date": "2025-10-22",
        }
        values.update(overrides)
        return models.SleepEpisode(**values)

    return _make


@pytest.fixture
def segment_file(
    tmp_path: pathlib.Path, clean_night: List[models.RawSegment]
) -> pathlib.Path:
    """A csv file holding the clean night as ISO 8601 strings."""
    data_frame = pl.DataFrame(
        {
            "start_time": [
                segment.start_time.isoformat() for segment in clean_night
            ],
            "end_time": [segment.end_time.isoformat() for segment in clean_night],
            "stage_label": [segment.stage_label for segment in clean_night],
        }
    )
    file_name = tmp_path / "segments.csv"
    data_frame.write_csv(file_name)
    return file_name
