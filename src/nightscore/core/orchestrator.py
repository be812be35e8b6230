"""Python based runner."""

import datetime
import itertools
import logging
import pathlib
from typing import Dict, List, Literal, Optional, Sequence, Union

from rich import progress

from nightscore.core import config, exceptions, models, timezones
from nightscore.io.readers import readers
from nightscore.io.writers import writers
from nightscore.processing import episodes, scoring, segments, selection

logger = config.get_logger()

VALID_FILE_TYPES = (".csv", ".parquet")


def run(
    input: Union[pathlib.Path, str, Sequence[models.RawSegment]],
    output: Optional[Union[pathlib.Path, str]] = None,
    user_timezone: str = "UTC",
    previous_midpoints: Optional[Sequence[datetime.datetime]] = None,
    parameters: Optional[config.ScoringParameters] = None,
    verbosity: int = logging.WARNING,
    output_filetype: Literal[".csv", ".parquet"] = ".csv",
) -> Union[writers.NightlyResults, Dict[str, writers.NightlyResults]]:
    """Runs the nightly scoring pipeline on segments, single files, or directories.

    When the input is a sequence of raw segments or a path to a file, the nights
    found in it are scored and returned. When the input path points to a
    directory, every .csv, .parquet and .json file inside, except
    <stem>.config.json sidecars, is processed as the history of one user, and
    the output path (if any) must be a directory as well. Output file names
    will be derived from input file names in that case.

    Args:
        input: Raw segments, or the path to a segment file or directory of files.
        output: Path where the per-night summary will be saved. If processing a
            single input the path should end in the save file name in either .csv
            or .parquet formats.
        user_timezone: IANA timezone of the user, used for night attribution,
            the overnight window and regularity.
        previous_midpoints: Midpoints of primary episodes scored before this run,
            oldest first. Used for the regularity component.
        parameters: The scoring parameters, defaults are used if None.
        verbosity: The logging level for the logger.
        output_filetype: Specifies the data format for the save files. Only used when
            processing directories.

    Returns:
        The scored nights as a NightlyResults object, or a dictionary of
        NightlyResults objects keyed by file name for directories.

    Raises:
        InvalidTimezoneError: If the timezone is unknown.
    """
    logger.setLevel(verbosity)
    timezones.resolve_timezone(user_timezone)
    parameters = parameters or config.ScoringParameters()
    output = pathlib.Path(output) if output is not None else None

    if isinstance(input, (str, pathlib.Path)):
        input = pathlib.Path(input)
        if input.is_dir():
            return _run_directory(
                input=input,
                output=output,
                user_timezone=user_timezone,
                previous_midpoints=previous_midpoints,
                parameters=parameters,
                verbosity=verbosity,
                output_filetype=output_filetype,
            )
        return _run_file(
            input=input,
            output=output,
            user_timezone=user_timezone,
            previous_midpoints=previous_midpoints,
            parameters=parameters,
            verbosity=verbosity,
        )

    results = score_nights(
        raw_segments=input,
        user_timezone=user_timezone,
        previous_midpoints=previous_midpoints,
        parameters=parameters,
    )
    if output is not None:
        results.save_results(output=output)
    return results


def _run_directory(
    input: pathlib.Path,
    output: Optional[pathlib.Path] = None,
    user_timezone: str = "UTC",
    previous_midpoints: Optional[Sequence[datetime.datetime]] = None,
    parameters: Optional[config.ScoringParameters] = None,
    verbosity: int = logging.WARNING,
    output_filetype: Literal[".csv", ".parquet"] = ".csv",
) -> Dict[str, writers.NightlyResults]:
    """Runs the scoring pipeline on every segment file of a directory.

    Files that fail to process are logged and skipped.

    Args:
        input: Path to the input directory of files to be read.
        output: Path to directory data will be saved to.
        user_timezone: IANA timezone of the user.
        previous_midpoints: Midpoints of primary episodes scored before this run.
        parameters: The scoring parameters, defaults are used if None.
        verbosity: The logging level for the logger.
        output_filetype: Specifies the data format for the save files.

    Returns:
        A dictionary of NightlyResults objects keyed by input file name.

    Raises:
        ValueError: If the output given is not a directory.
        ValueError: If the output_filetype is not a valid type.
        EmptyDirectoryError: If the input directory contained no files of a valid
            type.
    """
    if output is not None:
        if output.is_file():
            raise ValueError(
                "Output is a file, but must be a directory when input is a directory."
            )
        if output_filetype not in VALID_FILE_TYPES:
            raise ValueError(
                "Invalid output_filetype: "
                f"{output_filetype}. Valid options are: {VALID_FILE_TYPES}."
            )

    file_names = sorted(
        file
        for file in itertools.chain.from_iterable(
            input.glob(f"*{suffix}") for suffix in readers.VALID_INPUT_TYPES
        )
        if not file.name.endswith(writers.CONFIG_SUFFIX)
    )

    if not file_names:
        raise exceptions.EmptyDirectoryError(
            f"Directory {input} contains no .csv, .parquet or .json files."
        )
    results_dict = {}
    with progress.Progress(
        progress.SpinnerColumn(),
        progress.TextColumn("[progress.description]{task.description}"),
        progress.BarColumn(),
        progress.TaskProgressColumn(),
        console=None,
    ) as progress_bar:
        task = progress_bar.add_task(
            f"[cyan]Processing files in {input.name}...", total=len(file_names)
        )

        for file in file_names:
            output_file_path = (
                output / pathlib.Path(file.stem).with_suffix(output_filetype)
                if output
                else None
            )
            logger.debug(
                "Processing directory: %s, current file: %s, save path: %s",
                input,
                file,
                output_file_path,
            )
            try:
                results_dict[str(file)] = _run_file(
                    input=file,
                    output=output_file_path,
                    user_timezone=user_timezone,
                    previous_midpoints=previous_midpoints,
                    parameters=parameters,
                    verbosity=verbosity,
                )
            except Exception as e:
                logger.error("Did not run file: %s, Error: %s", file, e)
            progress_bar.update(task, advance=1)
    logger.info("Processing for directory %s completed successfully.", input)
    return results_dict


def _run_file(
    input: pathlib.Path,
    output: Optional[pathlib.Path] = None,
    user_timezone: str = "UTC",
    previous_midpoints: Optional[Sequence[datetime.datetime]] = None,
    parameters: Optional[config.ScoringParameters] = None,
    verbosity: int = logging.WARNING,
) -> writers.NightlyResults:
    """Runs the scoring pipeline on a single segment file.

    Args:
        input: Path to the segment file, .csv, .parquet or .json.
        output: Path to save data to. The path should end in the save file name in
            either .csv or .parquet formats.
        user_timezone: IANA timezone of the user.
        previous_midpoints: Midpoints of primary episodes scored before this run.
        parameters: The scoring parameters, defaults are used if None.
        verbosity: The logging level for the logger.

    Returns:
        All scored nights in a save ready format as a NightlyResults object.
    """
    logger.setLevel(verbosity)
    if output is not None:
        writers.NightlyResults.validate_output(output=output)

    raw_segments = readers.read_segments(input)
    results = score_nights(
        raw_segments=raw_segments,
        user_timezone=user_timezone,
        previous_midpoints=previous_midpoints,
        parameters=parameters,
    )
    results.processing_params = (results.processing_params or {}) | {
        "input_file": str(input)
    }

    if output is not None:
        try:
            results.save_results(output=output)
        except (
            exceptions.InvalidFileTypeError,
            PermissionError,
            FileExistsError,
        ) as exc_info:
            # Allowed to pass to recover in Jupyter Notebook scenarios.
            logger.error(
                "Could not save output due to: %s. Call save_results "
                "on the output object with a correct filename to save these "
                "results.",
                exc_info,
            )
    logger.info("Processing for %s completed successfully.", input.stem)
    return results


def score_nights(
    raw_segments: Sequence[models.RawSegment],
    user_timezone: str = "UTC",
    previous_midpoints: Optional[Sequence[datetime.datetime]] = None,
    parameters: Optional[config.ScoringParameters] = None,
) -> writers.NightlyResults:
    """Run the full pipeline on the raw segments of one user.

    Segments are normalized, clustered into episodes and grouped by night key.
    For every night the primary episode is selected, validated and scored, and
    the remaining nap episodes are nap scored. The regularity history of a night
    consists of the caller supplied midpoints followed by the midpoints of the
    nights scored earlier in the same call, limited to the most recent
    regularity_history_nights entries.

    Args:
        raw_segments: The raw sleep-stage intervals.
        user_timezone: IANA timezone of the user.
        previous_midpoints: Midpoints of primary episodes scored before this call,
            oldest first. The sequence is not modified.
        parameters: The scoring parameters, defaults are used if None.

    Returns:
        A NightlyResults object with one NightResult per night key.
    """
    parameters = parameters or config.ScoringParameters()
    timezones.resolve_timezone(user_timezone)

    processed = segments.normalize(raw_segments)
    built = episodes.build_episodes(processed, user_timezone, parameters)
    history: List[datetime.datetime] = list(previous_midpoints or [])

    nights = []
    for night_key_date, night_episodes in episodes.group_by_night(built).items():
        night = _score_night(
            night_key_date,
            night_episodes,
            user_timezone,
            history[-parameters.regularity_history_nights :],
            parameters,
        )
        if night.sleep_score is not None and night.primary_episode is not None:
            history.append(night.primary_episode.midpoint)
        nights.append(night)

    logger.debug("Scored %s nights from %s segments.", len(nights), len(processed))
    return writers.NightlyResults(
        nights=nights,
        processing_params={
            "user_timezone": user_timezone,
            "previous_midpoints": len(previous_midpoints or []),
            "parameters": parameters.model_dump(),
        },
    )


def _score_night(
    night_key_date: str,
    night_episodes: List[models.SleepEpisode],
    user_timezone: str,
    history: List[datetime.datetime],
    parameters: config.ScoringParameters,
) -> writers.NightResult:
    """Select, validate and score the episodes of a single night.

    Args:
        night_key_date: The night key.
        night_episodes: Episodes attributed to the night.
        user_timezone: IANA timezone of the user.
        history: Midpoints used for the regularity component.
        parameters: The scoring parameters.

    Returns:
        The NightResult of the night.
    """
    for episode in night_episodes:
        if episode.flags:
            logger.warning(
                "Episode %s on night %s flagged: %s",
                episode.episode_id,
                night_key_date,
                ", ".join(flag.value for flag in episode.flags),
            )

    primary = selection.select_primary(night_episodes, user_timezone, parameters)
    night = writers.NightResult(
        night_key_date=night_key_date,
        episodes=night_episodes,
        primary_episode=primary,
    )

    if primary is None:
        logger.info("No primary episode for night %s.", night_key_date)
    else:
        night.validation = scoring.validate(primary, parameters)
        if night.validation.valid:
            night.sleep_score = scoring.score_sleep(primary, history, user_timezone)
        else:
            logger.info(
                "Primary episode of night %s not scored: %s",
                night_key_date,
                night.validation.reason,
            )

    night.naps = [
        writers.NapResult(episode=episode, score=scoring.score_nap(episode))
        for episode in night_episodes
        if episode is not primary and episode.episode_type == models.EpisodeType.nap
    ]
    return night
