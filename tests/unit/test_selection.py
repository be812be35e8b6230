"""Test the primary episode selection."""

import datetime
from typing import Callable

import pytest

from nightscore.core import models
from nightscore.processing import selection

UTC = datetime.timezone.utc
EpisodeFactory = Callable[..., models.SleepEpisode]


@pytest.fixture
def episode_at(sample_episode: EpisodeFactory) -> Callable[..., models.SleepEpisode]:
    """Factory for episodes from a start time and a duration in minutes."""

    def _make(
        start: datetime.datetime,
        minutes: int,
        episode_type: models.EpisodeType = models.EpisodeType.primary,
    ) -> models.SleepEpisode:
        end = start + datetime.timedelta(minutes=minutes)
        return sample_episode(
            episode_type=episode_type,
            start=start,
            end=end,
            in_bed_minutes=minutes,
            midpoint=start + (end - start) / 2,
        )

    return _make


@pytest.mark.parametrize(
    "hour, expected",
    [(19, False), (20, True), (23, True), (0, True), (11, True), (12, False)],
)
def test_is_overnight_hour(hour: int, expected: bool) -> None:
    """Test the edges of the overnight window."""
    assert selection.is_overnight_hour(hour) is expected


def test_select_longest_eligible(episode_at: EpisodeFactory) -> None:
    """Test that the longest eligible episode wins and a short doze becomes a nap."""
    short_night = episode_at(datetime.datetime(2025, 10, 22, 21, 0, tzinfo=UTC), 200)
    gap = datetime.timedelta(hours=4)
    long_night = episode_at(short_night.end + gap, 420)
    morning_doze = episode_at(long_night.end + gap, 40)

    primary = selection.select_primary([short_night, long_night, morning_doze])

    assert primary is long_night
    assert long_night.episode_type == models.EpisodeType.primary
    assert morning_doze.episode_type == models.EpisodeType.nap


def test_select_leaves_non_nap_types(episode_at: EpisodeFactory) -> None:
    """Test that episodes outside the nap bounds keep their type."""
    night = episode_at(datetime.datetime(2025, 10, 22, 23, 0, tzinfo=UTC), 480)
    blip = episode_at(
        datetime.datetime(2025, 10, 23, 12, 0, tzinfo=UTC),
        5,
        models.EpisodeType.primary,
    )

    primary = selection.select_primary([night, blip])

    assert primary is night
    assert blip.episode_type == models.EpisodeType.primary


def test_select_tie_keeps_earliest(episode_at: EpisodeFactory) -> None:
    """Test that the earliest episode wins when durations are equal."""
    first = episode_at(datetime.datetime(2025, 10, 22, 21, 0, tzinfo=UTC), 240)
    second = episode_at(datetime.datetime(2025, 10, 23, 3, 0, tzinfo=UTC), 240)

    assert selection.select_primary([first, second]) is first


def test_select_uses_local_midpoint(episode_at: EpisodeFactory) -> None:
    """Test that the overnight window is evaluated in the user's timezone."""
    episode = episode_at(datetime.datetime(2025, 10, 22, 10, 0, tzinfo=UTC), 360)

    assert selection.is_eligible_primary(episode, "UTC") is False
    assert selection.is_eligible_primary(episode, "Australia/Perth") is True


def test_select_late_morning_end(episode_at: EpisodeFactory) -> None:
    """Test that a long night ending after noon stays eligible."""
    episode = episode_at(datetime.datetime(2025, 10, 23, 2, 0, tzinfo=UTC), 660)

    assert selection.select_primary([episode]) is episode


def test_select_fallback(episode_at: EpisodeFactory) -> None:
    """Test that an afternoon sleep is used when no episode is eligible."""
    afternoon = episode_at(
        datetime.datetime(2025, 10, 23, 13, 0, tzinfo=UTC),
        200,
        models.EpisodeType.nap,
    )
    nap = episode_at(
        datetime.datetime(2025, 10, 23, 17, 0, tzinfo=UTC),
        30,
        models.EpisodeType.nap,
    )

    primary = selection.select_primary([afternoon, nap])

    assert primary is afternoon
    assert afternoon.episode_type == models.EpisodeType.primary
    assert nap.episode_type == models.EpisodeType.nap


def test_select_fallback_window_end(episode_at: EpisodeFactory) -> None:
    """Test that episodes starting at 15:00 are not fallback candidates."""
    episode = episode_at(datetime.datetime(2025, 10, 23, 15, 0, tzinfo=UTC), 200)

    assert selection.select_primary([episode]) is None


def test_select_only_naps(episode_at: EpisodeFactory) -> None:
    """Test that a night of short naps has no primary episode."""
    nap = episode_at(
        datetime.datetime(2025, 10, 23, 14, 0, tzinfo=UTC),
        100,
        models.EpisodeType.nap,
    )

    assert selection.select_primary([nap]) is None
    assert nap.episode_type == models.EpisodeType.nap


def test_select_outlier_not_eligible(episode_at: EpisodeFactory) -> None:
    """Test that episodes over 16 hours are never selected as overnight sleep."""
    outlier = episode_at(datetime.datetime(2025, 10, 22, 20, 0, tzinfo=UTC), 1000)

    assert selection.select_primary([outlier]) is None


def test_select_empty() -> None:
    """Test that an empty night has no primary episode."""
    assert selection.select_primary([]) is None
