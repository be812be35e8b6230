"""Aggregate clusters of segments into sleep episodes."""

import datetime
from typing import Dict, List, Optional, Sequence

from nightscore.core import config, models, timezones
from nightscore.processing import clustering

logger = config.get_logger()


def night_key(
    start: datetime.datetime,
    user_timezone: timezones.TimezoneLike,
    parameters: Optional[config.ScoringParameters] = None,
) -> str:
    """Return the local calendar date of the night an episode belongs to.

    Episodes starting at or after the boundary hour (3 PM by default) belong to
    the night of their own local date. Earlier episodes belong to the local date
    twelve hours before their start, so that an episode starting at 1 AM on the
    23rd is "the night of the 22nd". The twelve hour shift is applied to the
    instant, not the wall clock, and is kept as is across DST transitions.

    Args:
        start: Start of the episode.
        user_timezone: The user's timezone.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        The night key as YYYY-MM-DD.
    """
    parameters = parameters or config.ScoringParameters()
    if timezones.local_hour(start, user_timezone) >= parameters.night_key_boundary_hour:
        return timezones.local_date_string(start, user_timezone)
    shifted = start - datetime.timedelta(hours=parameters.night_key_offset_hours)
    return timezones.local_date_string(shifted, user_timezone)


def build(
    cluster: Sequence[models.ProcessedSegment],
    user_timezone: timezones.TimezoneLike = "UTC",
    parameters: Optional[config.ScoringParameters] = None,
) -> models.SleepEpisode:
    """Build a sleep episode from a cluster of contiguous segments.

    Stage minutes are summed per stage. Every awake segment of at least
    min_awakening_minutes counts as an awakening. In-bed minutes are measured
    from the first start to the last end, so the stage sum and the in-bed
    minutes disagree whenever segments overlap or leave gaps; a disagreement
    above the tolerance is flagged as data_inconsistent.

    Args:
        cluster: Non-empty ordered list of segments.
        user_timezone: The user's timezone, used for the night key.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        A new SleepEpisode with a provisional episode type.

    Raises:
        ValueError: If the cluster is empty.
    """
    parameters = parameters or config.ScoringParameters()
    if not cluster:
        message = "Cannot build an episode from an empty cluster."
        logger.error(message)
        raise ValueError(message)

    start = cluster[0].start
    end = cluster[-1].end
    in_bed_minutes = timezones.minutes_between(start, end)

    stage_minutes = {stage: 0 for stage in models.SleepStage}
    awakenings_count = 0
    longest_awake_bout_minutes = 0
    for segment in cluster:
        stage_minutes[segment.stage] += segment.duration_minutes
        if (
            segment.stage == models.SleepStage.awake
            and segment.duration_minutes >= parameters.min_awakening_minutes
        ):
            awakenings_count += 1
            longest_awake_bout_minutes = max(
                longest_awake_bout_minutes, segment.duration_minutes
            )

    awake_minutes = stage_minutes[models.SleepStage.awake]
    actual_sleep_minutes = in_bed_minutes - awake_minutes
    sleep_efficiency = (
        actual_sleep_minutes / in_bed_minutes if in_bed_minutes > 0 else 0.0
    )

    if parameters.nap_min_minutes <= in_bed_minutes <= parameters.nap_max_minutes:
        episode_type = models.EpisodeType.nap
    else:
        episode_type = models.EpisodeType.primary

    flags = []
    stage_sum = sum(stage_minutes.values())
    if abs(stage_sum - in_bed_minutes) > parameters.stage_sum_tolerance_minutes:
        flags.append(models.EpisodeFlag.data_inconsistent)
    if in_bed_minutes > parameters.primary_max_minutes:
        flags.append(models.EpisodeFlag.outlier_duration)

    episode = models.SleepEpisode(
        episode_type=episode_type,
        start=start,
        end=end,
        in_bed_minutes=in_bed_minutes,
        awake_minutes=awake_minutes,
        light_minutes=stage_minutes[models.SleepStage.light],
        deep_minutes=stage_minutes[models.SleepStage.deep],
        rem_minutes=stage_minutes[models.SleepStage.rem],
        actual_sleep_minutes=actual_sleep_minutes,
        sleep_efficiency=sleep_efficiency,
        awakenings_count=awakenings_count,
        longest_awake_bout_minutes=longest_awake_bout_minutes,
        midpoint=start + (end - start) / 2,
        night_key_date=night_key(start, user_timezone, parameters),
        segments=list(cluster),
        flags=flags,
    )
    logger.debug(
        "Built %s episode %s for night %s: %s minutes in bed, flags: %s",
        episode.episode_type.value,
        episode.episode_id,
        episode.night_key_date,
        in_bed_minutes,
        [flag.value for flag in flags],
    )
    return episode


def build_episodes(
    segments: Sequence[models.ProcessedSegment],
    user_timezone: timezones.TimezoneLike = "UTC",
    parameters: Optional[config.ScoringParameters] = None,
) -> List[models.SleepEpisode]:
    """Cluster processed segments and build one episode per cluster.

    Args:
        segments: Processed segments sorted ascending by start.
        user_timezone: The user's timezone.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        The episodes in chronological order.
    """
    return [
        build(segment_cluster, user_timezone, parameters)
        for segment_cluster in clustering.cluster(segments, parameters)
    ]


def group_by_night(
    episodes: Sequence[models.SleepEpisode],
) -> Dict[str, List[models.SleepEpisode]]:
    """Group episodes by night key.

    Args:
        episodes: The episodes to group.

    Returns:
        A dictionary from night key to the episodes of that night, with keys in
        ascending date order and episodes in their input order.
    """
    nights: Dict[str, List[models.SleepEpisode]] = {}
    for episode in episodes:
        nights.setdefault(episode.night_key_date, []).append(episode)
    return dict(sorted(nights.items()))
