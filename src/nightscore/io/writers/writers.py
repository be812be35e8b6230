"""Module containing the output classes for writing data to files."""

import datetime
import json
import pathlib
from typing import Any, Dict, List, Optional

import polars as pl
import pydantic

from nightscore.core import config, exceptions, models

VALID_FILE_TYPES = (".csv", ".parquet")
CONFIG_SUFFIX = ".config.json"

logger = config.get_logger()


class NapResult(pydantic.BaseModel):
    """A nap episode together with its score."""

    episode: models.SleepEpisode
    score: models.NapScoreResult


class NightResult(pydantic.BaseModel):
    """Everything derived for a single night key.

    Attributes:
        night_key_date: The local calendar date of the night.
        episodes: All episodes attributed to the night, in chronological order.
        primary_episode: The selected main sleep, None if the night has none.
        validation: Validation outcome of the primary episode.
        sleep_score: Score of the primary episode, None if there is no valid
            primary episode.
        naps: Scored nap episodes of the night.
    """

    night_key_date: str
    episodes: List[models.SleepEpisode]
    primary_episode: Optional[models.SleepEpisode] = None
    validation: Optional[models.ValidationResult] = None
    sleep_score: Optional[models.SleepScoreResult] = None
    naps: List[NapResult] = pydantic.Field(default_factory=list)

    def summary_row(self) -> Dict[str, Any]:
        """Flatten the night into a single table row."""
        row: Dict[str, Any] = {
            "night_key_date": self.night_key_date,
            "episode_count": len(self.episodes),
            "nap_count": len(self.naps),
            "nap_readiness_credit": sum(
                nap.score.readiness_credit for nap in self.naps
            ),
            "primary_start": None,
            "primary_end": None,
            "in_bed_minutes": None,
            "flags": None,
            "valid": None,
            "invalid_reason": None,
            "score": None,
            "quality": None,
            "actual_sleep_minutes": None,
            "sleep_efficiency": None,
        }
        row.update({name: None for name in models.ScoreBreakdown.model_fields})

        if self.primary_episode is not None:
            row.update(
                {
                    "primary_start": self.primary_episode.start.astimezone(
                        datetime.timezone.utc
                    ),
                    "primary_end": self.primary_episode.end.astimezone(
                        datetime.timezone.utc
                    ),
                    "in_bed_minutes": self.primary_episode.in_bed_minutes,
                    "flags": ";".join(
                        flag.value for flag in self.primary_episode.flags
                    ),
                    "actual_sleep_minutes": self.primary_episode.actual_sleep_minutes,
                    "sleep_efficiency": self.primary_episode.sleep_efficiency,
                }
            )
        if self.validation is not None:
            row["valid"] = self.validation.valid
            row["invalid_reason"] = self.validation.reason
        if self.sleep_score is not None:
            row["score"] = self.sleep_score.score
            row["quality"] = self.sleep_score.quality.value
            row.update(self.sleep_score.breakdown.model_dump())
        return row


class NightlyResults(pydantic.BaseModel):
    """Dataclass containing results of orchestrator.run()."""

    nights: List[NightResult]
    processing_params: Optional[Dict[str, Any]] = None

    def to_data_frame(self) -> pl.DataFrame:
        """Summarize the results as one row per night.

        Returns:
            A polars DataFrame ordered by night key.
        """
        schema = {
            "night_key_date": pl.String,
            "episode_count": pl.Int64,
            "nap_count": pl.Int64,
            "nap_readiness_credit": pl.Int64,
            "primary_start": pl.Datetime(time_zone="UTC"),
            "primary_end": pl.Datetime(time_zone="UTC"),
            "in_bed_minutes": pl.Int64,
            "flags": pl.String,
            "valid": pl.Boolean,
            "invalid_reason": pl.String,
            "score": pl.Int64,
            "quality": pl.String,
            "actual_sleep_minutes": pl.Int64,
            "sleep_efficiency": pl.Float64,
        }
        schema.update({name: pl.Float64 for name in models.ScoreBreakdown.model_fields})
        return pl.DataFrame(
            [night.summary_row() for night in self.nights], schema=schema
        )

    def save_results(self, output: pathlib.Path) -> None:
        """Convert to polars and save the dataframe as a csv or parquet file.

        Args:
            output: The path and file name of the data to be saved. as either a csv or
                parquet files.

        """
        logger.debug("Saving results.")
        self.validate_output(output=output)
        output.parent.mkdir(parents=True, exist_ok=True)

        results_dataframe = self.to_data_frame()

        if output.suffix == ".csv":
            results_dataframe.write_csv(output, separator=",")
        elif output.suffix == ".parquet":
            results_dataframe.write_parquet(output)

        logger.info("Results saved in: %s", output)

        if self.processing_params:
            self.save_config_as_json(output)

    def save_config_as_json(self, output_path: pathlib.Path) -> None:
        """Save processing parameters as a JSON configuration file.

        Args:
            output_path: Path where the data file was saved. The JSON file is
                written next to it as <stem>.config.json.
        """
        if not self.processing_params:
            logger.warning("No processing parameters to save as JSON")
            return

        config_data = {
            "processing_time": datetime.datetime.now().isoformat(timespec="seconds"),
            "nightscore_version": config.get_version(),
            "processing_parameters": self.processing_params,
        }

        config_path = config_path_for(output_path)

        with open(config_path, "w") as f:
            json.dump(config_data, f, indent=4)

        logger.debug("Configuration saved in: %s", config_path)

    @classmethod
    def validate_output(cls, output: pathlib.Path) -> None:
        """Validates that the output path is a valid format.

        Args:
            output: the name of the file to be saved, and the directory it will
                be saved in. Must be a .csv or .parquet file.

        Raises:
            InvalidFileTypeError:If the output file path ends with any extension other
                    than csv or parquet.
        """
        if output.suffix not in VALID_FILE_TYPES:
            raise exceptions.InvalidFileTypeError(
                f"The extension: {output.suffix} is not supported."
                "Please save the file as .csv or .parquet",
            )


def config_path_for(output_path: pathlib.Path) -> pathlib.Path:
    """Path of the configuration sidecar saved next to a results file.

    Args:
        output_path: The results file, e.g. nights.csv.

    Returns:
        The sidecar path, e.g. nights.config.json.
    """
    return output_path.with_name(output_path.stem + CONFIG_SUFFIX)
