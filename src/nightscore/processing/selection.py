"""Select the primary overnight episode of a night."""

from typing import List, Optional, Sequence

from nightscore.core import config, models, timezones

logger = config.get_logger()


def is_overnight_hour(
    hour: int, parameters: Optional[config.ScoringParameters] = None
) -> bool:
    """Whether a local hour falls in the overnight window (20:00 to 11:59)."""
    parameters = parameters or config.ScoringParameters()
    return (
        hour >= parameters.overnight_window_start_hour
        or hour <= parameters.overnight_window_end_hour
    )


def is_eligible_primary(
    episode: models.SleepEpisode,
    user_timezone: timezones.TimezoneLike = "UTC",
    parameters: Optional[config.ScoringParameters] = None,
) -> bool:
    """Check whether an episode could represent the main sleep of a night.

    The overnight check uses the local midpoint rather than start or end, so
    long nights ending late in the morning remain eligible.

    Args:
        episode: The candidate episode.
        user_timezone: The user's timezone.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        True if the duration is plausible and the midpoint is overnight.
    """
    parameters = parameters or config.ScoringParameters()
    if not (
        parameters.primary_min_minutes
        <= episode.in_bed_minutes
        <= parameters.primary_max_minutes
    ):
        return False
    return is_overnight_hour(
        timezones.local_hour(episode.midpoint, user_timezone), parameters
    )


def _is_fallback_candidate(
    episode: models.SleepEpisode,
    user_timezone: timezones.TimezoneLike,
    parameters: config.ScoringParameters,
) -> bool:
    start_hour = timezones.local_hour(episode.start, user_timezone)
    return (
        parameters.fallback_window_start_hour
        <= start_hour
        < parameters.fallback_window_end_hour
        and episode.in_bed_minutes >= parameters.primary_min_minutes
    )


def _longest(episodes: List[models.SleepEpisode]) -> models.SleepEpisode:
    longest = episodes[0]
    for episode in episodes[1:]:
        if episode.in_bed_minutes > longest.in_bed_minutes:
            longest = episode
    return longest


def select_primary(
    episodes: Sequence[models.SleepEpisode],
    user_timezone: timezones.TimezoneLike = "UTC",
    parameters: Optional[config.ScoringParameters] = None,
) -> Optional[models.SleepEpisode]:
    """Pick the episode representing the main sleep of one night.

    The longest eligible episode is chosen. When nothing is eligible, the
    longest afternoon episode (start between 12:00 and 15:00 local, at least
    the primary minimum long) is used instead. The chosen episode is marked
    primary; every other episode within the nap duration bounds is marked nap
    and the rest keep the type they were built with.

    Args:
        episodes: All episodes attributed to a single night key.
        user_timezone: The user's timezone.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        The primary episode, or None if the night has no usable main sleep.
    """
    parameters = parameters or config.ScoringParameters()
    eligible = [
        episode
        for episode in episodes
        if is_eligible_primary(episode, user_timezone, parameters)
    ]

    if eligible:
        primary = _longest(eligible)
    else:
        fallback = [
            episode
            for episode in episodes
            if _is_fallback_candidate(episode, user_timezone, parameters)
        ]
        if not fallback:
            logger.debug(
                "No primary episode among %s candidate episodes.", len(episodes)
            )
            return None
        primary = _longest(fallback)
        logger.debug("Primary episode %s chosen by fallback.", primary.episode_id)

    primary.episode_type = models.EpisodeType.primary
    for episode in episodes:
        if episode is primary:
            continue
        if (
            parameters.nap_min_minutes
            <= episode.in_bed_minutes
            <= parameters.nap_max_minutes
        ):
            episode.episode_type = models.EpisodeType.nap

    logger.debug(
        "Selected primary episode %s with %s minutes in bed.",
        primary.episode_id,
        primary.in_bed_minutes,
    )
    return primary
