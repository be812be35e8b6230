"""Normalize raw sleep-stage intervals into classified segments."""

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pydantic

from nightscore.core import config, models, timezones

logger = config.get_logger()

CONTAINER_MARKERS: Tuple[str, ...] = ("in_bed",)

# Exact labels, compared after stripping whitespace. Numeric values are the
# HealthKit HKCategoryValueSleepAnalysis codes.
CONTAINER_VARIANTS: Tuple[str, ...] = ("in_bed", "inBed", "inbed", "IN_BED", "0")

STAGE_VARIANTS: Dict[str, models.SleepStage] = {
    "awake": models.SleepStage.awake,
    "AWAKE": models.SleepStage.awake,
    "2": models.SleepStage.awake,
    "asleep_core": models.SleepStage.light,
    "asleepCore": models.SleepStage.light,
    "asleepcore": models.SleepStage.light,
    "ASLEEP_CORE": models.SleepStage.light,
    "core": models.SleepStage.light,
    "light": models.SleepStage.light,
    "asleep_light": models.SleepStage.light,
    "asleepLight": models.SleepStage.light,
    "asleep": models.SleepStage.light,
    "ASLEEP": models.SleepStage.light,
    "sleeping": models.SleepStage.light,
    "SLEEPING": models.SleepStage.light,
    "1": models.SleepStage.light,
    "3": models.SleepStage.light,
    "asleep_deep": models.SleepStage.deep,
    "asleepDeep": models.SleepStage.deep,
    "asleepdeep": models.SleepStage.deep,
    "ASLEEP_DEEP": models.SleepStage.deep,
    "deep": models.SleepStage.deep,
    "4": models.SleepStage.deep,
    "asleep_rem": models.SleepStage.rem,
    "asleepREM": models.SleepStage.rem,
    "asleepRem": models.SleepStage.rem,
    "asleeprem": models.SleepStage.rem,
    "ASLEEP_REM": models.SleepStage.rem,
    "rem": models.SleepStage.rem,
    "REM": models.SleepStage.rem,
    "5": models.SleepStage.rem,
}

STAGE_RULES: Tuple[Tuple[str, models.SleepStage], ...] = (
    ("awake", models.SleepStage.awake),
    ("rem", models.SleepStage.rem),
    ("deep", models.SleepStage.deep),
)

FALLBACK_STAGE = models.SleepStage.light

LIGHT_ALIASES: Tuple[str, ...] = ("core", "light", "asleep", "sleeping", "unspecified")


class StageLabelStats(pydantic.BaseModel):
    """Summary of how a batch of vendor stage labels was interpreted.

    Attributes:
        total: Number of raw segments inspected.
        recognized: Number of labels matched by an exact variant, a rule, a
            light alias or a container marker.
        unknown: Number of labels that fell through to the fallback stage
            without being a known light alias.
        unknown_labels: The distinct unknown labels, in order of appearance.
        stage_distribution: Count of segments per resulting stage, with
            container markers counted under "in_bed".
    """

    total: int
    recognized: int
    unknown: int
    unknown_labels: List[str]
    stage_distribution: Dict[str, int]


def is_container_marker(label: Optional[str]) -> bool:
    """Whether a label marks a whole in-bed session rather than a stage."""
    stripped = (label or "").strip()
    if stripped in CONTAINER_VARIANTS:
        return True
    lowered = stripped.lower()
    return any(marker in lowered for marker in CONTAINER_MARKERS)


def classify_label(label: Optional[str]) -> models.SleepStage:
    """Map a free-text vendor stage label onto a canonical sleep stage.

    Exact variants in STAGE_VARIANTS, including HealthKit numeric codes, are
    looked up first. Otherwise the first rule in STAGE_RULES whose substring
    occurs in the lowercased label wins. Labels that match neither (core,
    unspecified asleep, unknown vendor names) are classified as light sleep.

    Args:
        label: The vendor stage label, e.g. "asleep_rem", "5" or
            "HKCategoryValueAwake".

    Returns:
        The canonical sleep stage.
    """
    stripped = (label or "").strip()
    if stripped in STAGE_VARIANTS:
        return STAGE_VARIANTS[stripped]
    lowered = stripped.lower()
    for substring, stage in STAGE_RULES:
        if substring in lowered:
            return stage
    return FALLBACK_STAGE


def _is_recognized(label: str) -> bool:
    if is_container_marker(label) or label.strip() in STAGE_VARIANTS:
        return True
    lowered = label.lower()
    if any(substring in lowered for substring, _ in STAGE_RULES):
        return True
    return any(alias in lowered for alias in LIGHT_ALIASES)


def normalize(
    raw_segments: Iterable[models.RawSegment],
) -> List[models.ProcessedSegment]:
    """Clean and classify raw stage intervals.

    Container markers ("in_bed" labels and their variants such as "inBed" or the
    HealthKit code "0") are dropped, they span the whole session and overlap
    every other stage. Timestamp ordering is not validated, an interval with
    end <= start simply yields a zero or negative duration. Durations are
    rounded half up to whole minutes.

    Args:
        raw_segments: The raw intervals, in any order.

    Returns:
        The processed segments sorted ascending by start time.
    """
    processed = []
    dropped = 0
    for raw_segment in raw_segments:
        if is_container_marker(raw_segment.stage_label):
            dropped += 1
            continue
        processed.append(
            models.ProcessedSegment(
                start=raw_segment.start_time,
                end=raw_segment.end_time,
                duration_minutes=timezones.minutes_between(
                    raw_segment.start_time, raw_segment.end_time
                ),
                stage=classify_label(raw_segment.stage_label),
            )
        )

    processed.sort(key=lambda segment: segment.start)
    logger.debug(
        "Normalized %s segments, dropped %s container markers.",
        len(processed),
        dropped,
    )
    return processed


def stage_label_stats(raw_segments: Sequence[models.RawSegment]) -> StageLabelStats:
    """Report how the stage labels of a batch were interpreted.

    Useful to spot new vendor label formats that silently fall back to light
    sleep.

    Args:
        raw_segments: The raw intervals to inspect.

    Returns:
        A StageLabelStats instance.
    """
    distribution: Counter = Counter()
    unknown_labels: List[str] = []
    unknown = 0
    for raw_segment in raw_segments:
        label = raw_segment.stage_label
        if is_container_marker(label):
            distribution[CONTAINER_MARKERS[0]] += 1
        else:
            distribution[classify_label(label).value] += 1

        if not _is_recognized(label):
            unknown += 1
            if label not in unknown_labels:
                logger.debug("Unknown stage label %r treated as light sleep.", label)
                unknown_labels.append(label)

    return StageLabelStats(
        total=len(raw_segments),
        recognized=len(raw_segments) - unknown,
        unknown=unknown,
        unknown_labels=unknown_labels,
        stage_distribution=dict(distribution),
    )
