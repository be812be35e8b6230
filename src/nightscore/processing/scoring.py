"""Score primary sleep episodes and naps, and validate episodes before scoring.

The nightly score is the sum of six independently bounded components:

    duration        0 to 25    actual sleep hours
    efficiency      0 to 20    actual sleep over time in bed
    deep            0 to 10    deep sleep share of actual sleep
    rem             0 to 10    REM sleep share of actual sleep
    fragmentation -10 to 10    awakenings and longest awake bout
    regularity      0 to 5     midpoint deviation from recent nights

The sum is rounded and clamped to [0, 100].
"""

import datetime
from typing import Optional, Sequence

import numpy as np

from nightscore.core import config, models, timezones

logger = config.get_logger()

NO_HISTORY_REGULARITY = 3


def duration_component(sleep_hours: float) -> int:
    """Score actual sleep duration, optimal between 7 and 9 hours."""
    if 7 <= sleep_hours <= 9:
        return 25
    if 6.5 <= sleep_hours < 7 or 9 < sleep_hours <= 9.5:
        return 18
    if 6 <= sleep_hours < 6.5 or 9.5 < sleep_hours <= 10:
        return 10
    if 5 <= sleep_hours < 6 or 10 < sleep_hours <= 11:
        return 2
    return 0


def efficiency_component(sleep_efficiency: float) -> int:
    """Score sleep efficiency, full credit at 95% or more."""
    if sleep_efficiency >= 0.95:
        return 20
    if sleep_efficiency >= 0.90:
        return 16
    if sleep_efficiency >= 0.85:
        return 10
    if sleep_efficiency >= 0.80:
        return 4
    return 0


def deep_component(deep_fraction: float) -> int:
    """Score the deep sleep share, optimal between 15% and 25%."""
    if 0.15 <= deep_fraction <= 0.25:
        return 10
    if 0.10 <= deep_fraction < 0.15 or 0.25 < deep_fraction <= 0.30:
        return 6
    if deep_fraction < 0.10:
        return 2
    return 0


def rem_component(rem_fraction: float) -> int:
    """Score the REM sleep share, optimal between 18% and 28%."""
    if 0.18 <= rem_fraction <= 0.28:
        return 10
    if 0.15 <= rem_fraction < 0.18 or 0.28 < rem_fraction <= 0.32:
        return 6
    if rem_fraction < 0.15:
        return 2
    return 0


def fragmentation_component(
    awakenings_count: int, longest_awake_bout_minutes: int
) -> int:
    """Score sleep continuity.

    Starts at 10. Five or more awakenings cost 6 points, three or four cost 3.
    A longest awake bout of 30 minutes or more costs another 6 points, 15
    minutes or more costs 3. The result never drops below -10.

    Args:
        awakenings_count: Number of awakenings in the episode.
        longest_awake_bout_minutes: Duration of the longest awakening.

    Returns:
        The fragmentation component in [-10, 10].
    """
    component = 10
    if awakenings_count >= 5:
        component -= 6
    elif awakenings_count >= 3:
        component -= 3

    if longest_awake_bout_minutes >= 30:
        component -= 6
    elif longest_awake_bout_minutes >= 15:
        component -= 3

    return max(-10, component)


def midpoint_deviation_minutes(
    midpoint: datetime.datetime,
    previous_midpoints: Sequence[datetime.datetime],
    user_timezone: timezones.TimezoneLike = "UTC",
) -> float:
    """Distance between a midpoint and the average of previous midpoints.

    Midpoints are compared as minutes since local midnight, so the calendar
    dates of the previous nights do not matter. The historical values are
    averaged arithmetically, and the distance to the current value wraps around
    midnight.

    Args:
        midpoint: Midpoint of the current episode.
        previous_midpoints: Midpoints of previous primary episodes, must not be
            empty.
        user_timezone: The timezone defining local midnight.

    Returns:
        The deviation in minutes, in [0, 720].
    """
    history = np.array(
        [
            timezones.minutes_since_local_midnight(previous, user_timezone)
            for previous in previous_midpoints
        ]
    )
    current = timezones.minutes_since_local_midnight(midpoint, user_timezone)
    return timezones.circular_minutes_difference(current, float(history.mean()))


def regularity_component(
    midpoint: datetime.datetime,
    previous_midpoints: Optional[Sequence[datetime.datetime]] = None,
    user_timezone: timezones.TimezoneLike = "UTC",
) -> int:
    """Score the regularity of the sleep midpoint.

    Without history a neutral 3 points are awarded.

    Args:
        midpoint: Midpoint of the current episode.
        previous_midpoints: Midpoints of previous primary episodes.
        user_timezone: The timezone defining local midnight.

    Returns:
        The regularity component in [0, 5].
    """
    if not previous_midpoints:
        return NO_HISTORY_REGULARITY

    deviation = midpoint_deviation_minutes(midpoint, previous_midpoints, user_timezone)
    logger.debug("Midpoint deviation from history: %.1f minutes", deviation)
    if deviation <= 30:
        return 5
    if deviation <= 60:
        return 3
    if deviation <= 120:
        return 1
    return 0


def quality_label(score: int) -> models.Quality:
    """Map a nightly score onto its quality label."""
    if score >= 80:
        return models.Quality.excellent
    if score >= 60:
        return models.Quality.good
    if score >= 40:
        return models.Quality.fair
    return models.Quality.poor


def _fraction(minutes: int, actual_sleep_minutes: int) -> float:
    return minutes / actual_sleep_minutes if actual_sleep_minutes > 0 else 0.0


def score_sleep(
    episode: models.SleepEpisode,
    previous_midpoints: Optional[Sequence[datetime.datetime]] = None,
    user_timezone: timezones.TimezoneLike = "UTC",
) -> models.SleepScoreResult:
    """Compute the nightly sleep score of a primary episode.

    The episode is not validated here, run validate() first.

    Args:
        episode: The primary episode of the night.
        previous_midpoints: Midpoints of previous primary episodes, used for the
            regularity component. Never modified.
        user_timezone: The user's timezone.

    Returns:
        A SleepScoreResult instance.
    """
    actual_sleep_minutes = episode.actual_sleep_minutes
    sleep_hours = actual_sleep_minutes / 60
    deep_fraction = _fraction(episode.deep_minutes, actual_sleep_minutes)
    rem_fraction = _fraction(episode.rem_minutes, actual_sleep_minutes)
    light_fraction = _fraction(episode.light_minutes, actual_sleep_minutes)

    breakdown = models.ScoreBreakdown(
        duration_component=duration_component(sleep_hours),
        efficiency_component=efficiency_component(episode.sleep_efficiency),
        deep_component=deep_component(deep_fraction),
        rem_component=rem_component(rem_fraction),
        fragmentation_component=fragmentation_component(
            episode.awakenings_count, episode.longest_awake_bout_minutes
        ),
        regularity_component=regularity_component(
            episode.midpoint, previous_midpoints, user_timezone
        ),
    )
    score = timezones.round_half_up(min(100.0, max(0.0, breakdown.total())))

    logger.debug("Episode %s scored %s: %s", episode.episode_id, score, breakdown)
    return models.SleepScoreResult(
        score=score,
        quality=quality_label(score),
        actual_sleep_minutes=actual_sleep_minutes,
        sleep_hours=sleep_hours,
        breakdown=breakdown,
        percentages=models.StagePercentages(
            deep=deep_fraction,
            rem=rem_fraction,
            light=light_fraction,
            efficiency=episode.sleep_efficiency,
        ),
        fragmentation=models.Fragmentation(
            awakenings_count=episode.awakenings_count,
            longest_awake_bout_minutes=episode.longest_awake_bout_minutes,
        ),
    )


def score_nap(episode: models.SleepEpisode) -> models.NapScoreResult:
    """Score a nap episode.

    Naps of 20 to 30 minutes score best. A nap is restorative with at least 10
    minutes of deep or REM sleep, which earns a readiness credit of 2.

    Args:
        episode: The nap episode.

    Returns:
        A NapScoreResult instance.
    """
    in_bed_minutes = episode.in_bed_minutes
    if 20 <= in_bed_minutes <= 30:
        score = 10
    elif 31 <= in_bed_minutes <= 60:
        score = 6
    elif 10 <= in_bed_minutes < 20:
        score = 4
    elif in_bed_minutes > 60:
        score = 2
    else:
        score = 0

    restorative = episode.deep_minutes >= 10 or episode.rem_minutes >= 10
    return models.NapScoreResult(
        score=score,
        restorative=restorative,
        readiness_credit=2 if restorative else 0,
    )


def validate(
    episode: models.SleepEpisode,
    parameters: Optional[config.ScoringParameters] = None,
) -> models.ValidationResult:
    """Decide whether an episode can be scored.

    Args:
        episode: The episode to check.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        A ValidationResult, with a reason when the episode is invalid.
    """
    parameters = parameters or config.ScoringParameters()
    if models.EpisodeFlag.data_inconsistent in episode.flags:
        return models.ValidationResult(
            valid=False, reason="Stage minutes sum mismatch"
        )
    if models.EpisodeFlag.outlier_duration in episode.flags:
        return models.ValidationResult(
            valid=False,
            reason=f"Duration exceeds {parameters.primary_max_minutes // 60} hours",
        )
    if (
        episode.episode_type == models.EpisodeType.primary
        and episode.in_bed_minutes < parameters.primary_min_minutes
    ):
        return models.ValidationResult(
            valid=False,
            reason=(
                "Primary episode too short "
                f"(< {parameters.primary_min_minutes} minutes)"
            ),
        )
    return models.ValidationResult(valid=True)
