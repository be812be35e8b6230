"""Function to read raw sleep-stage segments from a file."""

import pathlib
from typing import List, Union

import polars as pl

from nightscore.core import config, exceptions, models

logger = config.get_logger()

VALID_INPUT_TYPES = (".csv", ".parquet", ".json")
REQUIRED_COLUMNS = ("start_time", "end_time", "stage_label")
TIME_COLUMNS = ("start_time", "end_time")


def read_segments(file_name: Union[pathlib.Path, str]) -> List[models.RawSegment]:
    """Read raw sleep-stage segments from a tabular file.

    The file must hold one row per interval with the columns start_time,
    end_time and stage_label, and optionally source_id. Timestamps may be
    ISO 8601 strings or datetimes; values without an offset are taken as UTC.
    JSON files must contain an array of records.

    Args:
        file_name: The file to read, one of .csv, .parquet or .json.

    Returns:
        The raw segments in file order.

    Raises:
        InvalidFileTypeError: If the file extension is not supported.
        ValueError: If a required column is missing.
    """
    file_name = pathlib.Path(file_name)
    file_type = file_name.suffix
    if file_type not in VALID_INPUT_TYPES:
        raise exceptions.InvalidFileTypeError(
            f"File type {file_type} is not supported. "
            f"Please provide one of {VALID_INPUT_TYPES}."
        )

    logger.debug("Reading segments from %s", file_name)
    if file_type == ".csv":
        data_frame = pl.read_csv(file_name)
    elif file_type == ".parquet":
        data_frame = pl.read_parquet(file_name)
    else:
        data_frame = pl.read_json(file_name)

    return segments_from_data_frame(data_frame)


def segments_from_data_frame(data_frame: pl.DataFrame) -> List[models.RawSegment]:
    """Convert a polars DataFrame of intervals into raw segments.

    Args:
        data_frame: DataFrame with start_time, end_time, stage_label and an
            optional source_id column.

    Returns:
        The raw segments in row order.

    Raises:
        ValueError: If a required column is missing.
    """
    missing = [
        column for column in REQUIRED_COLUMNS if column not in data_frame.columns
    ]
    if missing:
        message = f"Missing required columns: {missing}."
        logger.error(message)
        raise ValueError(message)

    if "source_id" not in data_frame.columns:
        data_frame = data_frame.with_columns(
            pl.lit(None, dtype=pl.String).alias("source_id")
        )

    data_frame = data_frame.with_columns(
        [_time_column(data_frame, column) for column in TIME_COLUMNS]
        + [
            pl.col("stage_label").cast(pl.String).fill_null(""),
            pl.col("source_id").cast(pl.String),
        ]
    )

    segments = [
        models.RawSegment(**row)
        for row in data_frame.select(
            "start_time", "end_time", "stage_label", "source_id"
        ).to_dicts()
    ]
    logger.debug("Read %s raw segments.", len(segments))
    return segments


def _time_column(data_frame: pl.DataFrame, column: str) -> pl.Expr:
    """Build an expression turning a datetime column into UTC datetimes.

    String columns are left as they are and parsed as ISO 8601 by the model.

    Args:
        data_frame: The DataFrame holding the column, used to inspect its dtype.
        column: The column name.

    Returns:
        A polars expression producing a UTC Datetime or a String column.
    """
    dtype = data_frame.schema[column]
    if isinstance(dtype, pl.Datetime):
        if dtype.time_zone is None:
            return pl.col(column).dt.replace_time_zone("UTC")
        return pl.col(column).dt.convert_time_zone("UTC")
    return pl.col(column).cast(pl.String)
