"""Configuration module for nightscore."""

import logging
from importlib import metadata

import pydantic


def get_version() -> str:
    """Return nightscore version."""
    try:
        return metadata.version("nightscore")
    except metadata.PackageNotFoundError:
        return "Version unknown"


def get_logger() -> logging.Logger:
    """Gets the nightscore logger."""
    logger = logging.getLogger("nightscore")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)s - %(funcName)s - %(message)s",  # noqa: E501
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


class ScoringParameters(pydantic.BaseModel):
    """Tunable constants of the segmentation, selection and scoring pipeline.

    The defaults are empirically tuned. Instances are immutable and are passed
    explicitly through the pipeline.

    Attributes:
        long_awake_split_minutes: A gap between segments of at least this many
            minutes separates two sleep episodes.
        min_awakening_minutes: Minimum length of an awake segment for it to count
            as an awakening.
        nap_min_minutes: Shortest in-bed duration classified as a nap.
        nap_max_minutes: Longest in-bed duration classified as a nap.
        primary_min_minutes: Shortest in-bed duration eligible as main sleep.
        primary_max_minutes: Longest plausible in-bed duration, longer episodes are
            flagged as outliers.
        stage_sum_tolerance_minutes: Allowed difference between the summed stage
            minutes and the in-bed minutes before an episode is flagged.
        night_key_boundary_hour: Episodes starting at or after this local hour
            belong to the night of their own calendar date.
        night_key_offset_hours: Episodes starting before the boundary hour are
            attributed to the local date this many hours before their start.
        overnight_window_start_hour: Midpoint hours at or after this value are
            considered overnight.
        overnight_window_end_hour: Midpoint hours at or before this value are
            considered overnight.
        fallback_window_start_hour: First local start hour of the afternoon
            fallback window.
        fallback_window_end_hour: Exclusive end hour of the fallback window.
        regularity_history_nights: Maximum number of previous midpoints used
            for the regularity component.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    long_awake_split_minutes: int = pydantic.Field(90, gt=0)
    min_awakening_minutes: int = pydantic.Field(2, gt=0)
    nap_min_minutes: int = pydantic.Field(10, gt=0)
    nap_max_minutes: int = pydantic.Field(180, gt=0)
    primary_min_minutes: int = pydantic.Field(180, gt=0)
    primary_max_minutes: int = pydantic.Field(960, gt=0)
    stage_sum_tolerance_minutes: int = pydantic.Field(15, ge=0)
    night_key_boundary_hour: int = pydantic.Field(15, ge=0, le=23)
    night_key_offset_hours: int = pydantic.Field(12, ge=0, le=24)
    overnight_window_start_hour: int = pydantic.Field(20, ge=0, le=23)
    overnight_window_end_hour: int = pydantic.Field(11, ge=0, le=23)
    fallback_window_start_hour: int = pydantic.Field(12, ge=0, le=23)
    fallback_window_end_hour: int = pydantic.Field(15, ge=0, le=24)
    regularity_history_nights: int = pydantic.Field(7, gt=0)

    @pydantic.model_validator(mode="after")
    def validate_ranges(self) -> "ScoringParameters":
        """Validate that the paired bounds are given in ascending order.

        Returns:
            The validated parameters.

        Raises:
            ValueError: If a lower bound is not strictly below its upper bound.
        """
        if self.nap_min_minutes >= self.nap_max_minutes:
            raise ValueError("nap_min_minutes must be less than nap_max_minutes.")
        if self.primary_min_minutes >= self.primary_max_minutes:
            raise ValueError(
                "primary_min_minutes must be less than primary_max_minutes."
            )
        if self.fallback_window_start_hour >= self.fallback_window_end_hour:
            raise ValueError(
                "fallback_window_start_hour must be less than fallback_window_end_hour."
            )
        return self
