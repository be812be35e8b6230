"""Test the episode clustering."""

import datetime
from typing import List

import pytest

from nightscore.core import config, models
from nightscore.processing import clustering

UTC = datetime.timezone.utc


def _segment(
    start: datetime.datetime, minutes: int, stage: models.SleepStage
) -> models.ProcessedSegment:
    return models.ProcessedSegment(
        start=start,
        end=start + datetime.timedelta(minutes=minutes),
        duration_minutes=minutes,
        stage=stage,
    )


@pytest.fixture
def evening() -> models.ProcessedSegment:
    """A one hour light sleep segment from 22:00 to 23:00 UTC."""
    return _segment(
        datetime.datetime(2025, 10, 22, 22, 0, tzinfo=UTC),
        60,
        models.SleepStage.light,
    )


@pytest.mark.parametrize("gap, expected_clusters", [(89, 1), (90, 2), (240, 2)])
def test_cluster_gap_boundary(
    evening: models.ProcessedSegment, gap: int, expected_clusters: int
) -> None:
    """Test that a gap of exactly 90 minutes splits the episode."""
    following = _segment(
        evening.end + datetime.timedelta(minutes=gap), 60, models.SleepStage.deep
    )

    result = clustering.cluster([evening, following])

    assert len(result) == expected_clusters
    assert [segment for group in result for segment in group] == [
        evening,
        following,
    ]


def test_cluster_custom_split(evening: models.ProcessedSegment) -> None:
    """Test that the split threshold follows the parameters."""
    following = _segment(
        evening.end + datetime.timedelta(minutes=45), 30, models.SleepStage.rem
    )
    parameters = config.ScoringParameters(long_awake_split_minutes=30)

    result = clustering.cluster([evening, following], parameters)

    assert len(result) == 2


def test_cluster_keeps_overlapping_segments(
    evening: models.ProcessedSegment,
) -> None:
    """Test that overlapping segments produce a negative gap and stay together."""
    overlapping = _segment(
        evening.end - datetime.timedelta(minutes=10), 30, models.SleepStage.awake
    )

    result = clustering.cluster([evening, overlapping])

    assert clustering.gap_minutes(evening, overlapping) == -10
    assert result == [[evening, overlapping]]


def test_cluster_single_segment(evening: models.ProcessedSegment) -> None:
    """Test that a single segment yields a single cluster."""
    assert clustering.cluster([evening]) == [[evening]]


def test_cluster_empty() -> None:
    """Test that no segments yield no clusters."""
    result: List[clustering.Cluster] = clustering.cluster([])

    assert result == []


def test_cluster_half_minute_gap(evening: models.ProcessedSegment) -> None:
    """Test that a gap of 89 and a half minutes rounds up to a split."""
    following = _segment(
        evening.end + datetime.timedelta(minutes=89, seconds=30),
        60,
        models.SleepStage.deep,
    )

    assert clustering.gap_minutes(evening, following) == 90
    assert len(clustering.cluster([evening, following])) == 2


def test_cluster_is_repeatable(evening: models.ProcessedSegment) -> None:
    """Test that clustering the same segments twice gives the same groups."""
    following = _segment(
        evening.end + datetime.timedelta(minutes=120), 60, models.SleepStage.rem
    )
    ordered = [evening, following]

    first = clustering.cluster(ordered)
    second = clustering.cluster(ordered)

    assert first == second
    assert ordered == [evening, following]
