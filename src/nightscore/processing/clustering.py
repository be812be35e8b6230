"""Group processed segments into candidate sleep episodes."""

from typing import List, Optional, Sequence

from nightscore.core import config, models, timezones

logger = config.get_logger()

Cluster = List[models.ProcessedSegment]


def gap_minutes(
    previous: models.ProcessedSegment, following: models.ProcessedSegment
) -> int:
    """Minutes between the end of one segment and the start of the next."""
    return timezones.minutes_between(previous.end, following.start)


def cluster(
    segments: Sequence[models.ProcessedSegment],
    parameters: Optional[config.ScoringParameters] = None,
) -> List[Cluster]:
    """Split a time ordered list of segments on long waking gaps.

    The segments are walked in order. A gap of at least long_awake_split_minutes
    between a segment and the last segment of the current cluster closes that
    cluster and opens a new one; shorter interruptions stay inside the episode
    and are accounted for by the fragmentation score instead.

    Args:
        segments: Processed segments sorted ascending by start.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        A list of non-empty clusters, each an ordered list of segments.
    """
    parameters = parameters or config.ScoringParameters()
    clusters: List[Cluster] = []
    current: Cluster = []

    for segment in segments:
        if current and (
            gap_minutes(current[-1], segment) >= parameters.long_awake_split_minutes
        ):
            clusters.append(current)
            current = []
        current.append(segment)

    if current:
        clusters.append(current)

    logger.debug("Found %s clusters in %s segments.", len(clusters), len(segments))
    return clusters
