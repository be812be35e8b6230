"""Internal data model."""

import datetime
import enum
import uuid
from typing import List, Optional

import pydantic
from pydantic import BaseModel, field_validator

from nightscore.core import timezones


class SleepStage(str, enum.Enum):
    """Canonical sleep stages."""

    awake = "awake"
    light = "light"
    deep = "deep"
    rem = "rem"


class EpisodeType(str, enum.Enum):
    """Role of an episode within its night."""

    primary = "primary"
    nap = "nap"


class EpisodeFlag(str, enum.Enum):
    """Non-fatal data quality flags attached to an episode."""

    data_inconsistent = "data_inconsistent"
    outlier_duration = "outlier_duration"


class Quality(str, enum.Enum):
    """Quality label derived from the nightly score."""

    excellent = "excellent"
    good = "good"
    fair = "fair"
    poor = "poor"


class RawSegment(BaseModel):
    """A single sleep-stage interval as reported by a wearable or health platform.

    Naive timestamps are interpreted as UTC.
    """

    start_time: datetime.datetime
    end_time: datetime.datetime
    stage_label: str
    source_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    def validate_timezone(cls, v: datetime.datetime) -> datetime.datetime:
        """Make the timestamp timezone-aware.

        Args:
            cls: The class.
            v: The timestamp to validate.

        Returns:
            v: The timestamp, with UTC attached if it was naive.
        """
        return timezones.ensure_aware(v)


class ProcessedSegment(BaseModel):
    """A cleaned, classified sleep-stage interval."""

    model_config = pydantic.ConfigDict(frozen=True)

    start: datetime.datetime
    end: datetime.datetime
    duration_minutes: int
    stage: SleepStage


class SleepEpisode(BaseModel):
    """A maximal run of temporally contiguous processed segments.

    Built once from a cluster of segments. It must not be mutated during
    processing, except for the episode_type which the primary selector may
    overwrite. Two episodes are equal when their episode ids are equal.
    """

    episode_id: str = pydantic.Field(default_factory=lambda: uuid.uuid4().hex)
    episode_type: EpisodeType
    start: datetime.datetime
    end: datetime.datetime
    in_bed_minutes: int
    awake_minutes: int = 0
    light_minutes: int = 0
    deep_minutes: int = 0
    rem_minutes: int = 0
    actual_sleep_minutes: int
    sleep_efficiency: float
    awakenings_count: int = 0
    longest_awake_bout_minutes: int = 0
    midpoint: datetime.datetime
    night_key_date: str
    segments: List[ProcessedSegment] = pydantic.Field(default_factory=list)
    flags: List[EpisodeFlag] = pydantic.Field(default_factory=list)

    @property
    def stage_sum_minutes(self) -> int:
        """Sum of the per-stage minute totals."""
        return (
            self.awake_minutes
            + self.light_minutes
            + self.deep_minutes
            + self.rem_minutes
        )

    def __eq__(self, other: object) -> bool:
        """Episodes are identified by their episode id."""
        if not isinstance(other, SleepEpisode):
            return NotImplemented
        return self.episode_id == other.episode_id

    def __hash__(self) -> int:
        """Hash on the episode id, consistent with equality."""
        return hash(self.episode_id)


class ScoreBreakdown(BaseModel):
    """The six independently bounded components of the sleep score."""

    duration_component: float = pydantic.Field(ge=0, le=25)
    efficiency_component: float = pydantic.Field(ge=0, le=20)
    deep_component: float = pydantic.Field(ge=0, le=10)
    rem_component: float = pydantic.Field(ge=0, le=10)
    fragmentation_component: float = pydantic.Field(ge=-10, le=10)
    regularity_component: float = pydantic.Field(ge=0, le=5)

    def total(self) -> float:
        """Unclamped sum of all components."""
        return sum(value for _, value in self)


class StagePercentages(BaseModel):
    """Stage composition as fractions of actual sleep, plus sleep efficiency."""

    deep: float
    rem: float
    light: float
    efficiency: float


class Fragmentation(BaseModel):
    """Awakening statistics of an episode."""

    awakenings_count: int
    longest_awake_bout_minutes: int


class SleepScoreResult(BaseModel):
    """The nightly sleep score of a primary episode."""

    model_config = pydantic.ConfigDict(frozen=True)

    score: int = pydantic.Field(ge=0, le=100)
    quality: Quality
    actual_sleep_minutes: int
    sleep_hours: float
    breakdown: ScoreBreakdown
    percentages: StagePercentages
    fragmentation: Fragmentation


class NapScoreResult(BaseModel):
    """The score of a nap episode."""

    model_config = pydantic.ConfigDict(frozen=True)

    score: int = pydantic.Field(ge=0, le=10)
    restorative: bool
    readiness_credit: int

    @field_validator("readiness_credit")
    def validate_readiness_credit(cls, v: int) -> int:
        """Validate that the readiness credit is either 0 or 2.

        Args:
            cls: The class.
            v: The readiness credit.

        Returns:
            v: The readiness credit if it is valid.

        Raises:
            ValueError: If the credit is not 0 or 2.
        """
        if v not in (0, 2):
            raise ValueError("readiness_credit must be 0 or 2")
        return v


class ValidationResult(BaseModel):
    """Outcome of validating an episode before scoring."""

    valid: bool
    reason: Optional[str] = None
