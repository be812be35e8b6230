"""CLI for nightscore."""

import datetime
import logging
import pathlib
from enum import Enum
from typing import Dict, List, Optional, Union

import typer
from rich import console, table

from nightscore.core import config, exceptions
from nightscore.io.writers import writers

logger = config.get_logger()
app = typer.Typer(
    help="Score nightly sleep from sleep-stage segments.",
)


class OutputFileType(str, Enum):
    """Valid output file types for saving data."""

    csv = ".csv"
    parquet = ".parquet"


def version_check(version: bool) -> None:
    """Print the current version of nightscore and exit."""
    if version:
        typer.echo(f"nightscore version: {config.get_version()}")
        raise typer.Exit()


def _parse_midpoints(midpoints: List[str]) -> List[datetime.datetime]:
    """Parse ISO 8601 midpoint strings.

    Args:
        midpoints: Timestamps such as '2025-10-21T03:10:00+00:00'. Values
            without an offset are taken as UTC.

    Returns:
        The parsed, timezone-aware midpoints in the given order.

    Raises:
        typer.BadParameter: If a value is not a valid ISO 8601 timestamp.
    """
    parsed = []
    for midpoint in midpoints:
        try:
            value = datetime.datetime.fromisoformat(midpoint.strip())
        except ValueError:
            raise typer.BadParameter(f"Invalid midpoint timestamp: {midpoint}")
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        parsed.append(value)
    return parsed


def _print_results(
    results: Union[writers.NightlyResults, Dict[str, writers.NightlyResults]],
) -> None:
    """Print a per-night score table for each processed input."""
    if isinstance(results, writers.NightlyResults):
        results = {"": results}

    rich_console = console.Console()
    for name, nightly_results in results.items():
        score_table = table.Table(title=pathlib.Path(name).name or None)
        for column in ("Night", "Score", "Quality", "Sleep (h)", "Naps", "Notes"):
            score_table.add_column(column)
        for night in nightly_results.nights:
            sleep_score = night.sleep_score
            notes = ""
            if night.primary_episode is None:
                notes = "no primary episode"
            elif night.validation is not None and not night.validation.valid:
                notes = night.validation.reason or "invalid"
            score_table.add_row(
                night.night_key_date,
                str(sleep_score.score) if sleep_score else "-",
                sleep_score.quality.value if sleep_score else "-",
                f"{sleep_score.sleep_hours:.2f}" if sleep_score else "-",
                str(len(night.naps)),
                notes,
            )
        rich_console.print(score_table)


@app.command()
def main(
    input: pathlib.Path = typer.Argument(
        ..., help="Path to a segment file or a directory of files.", exists=True
    ),
    output: pathlib.Path = typer.Option(
        None,
        "-o",
        "--output",
        help="Path where data will be saved. Supports .csv and .parquet formats.",
    ),
    output_filetype: OutputFileType = typer.Option(
        ".csv",
        "-O",
        "--output-filetype",
        help="Format for save files when processing directories. ",
    ),
    user_timezone: str = typer.Option(
        "UTC",
        "-z",
        "--timezone",
        help="IANA timezone of the user, e.g. 'Australia/Perth'.",
    ),
    previous_midpoints: Optional[List[str]] = typer.Option(
        None,
        "-m",
        "--previous-midpoint",
        help="Midpoint of a previously scored night as an ISO 8601 timestamp. "
        "Use multiple times, oldest first: '-m 2025-10-20T03:00:00Z -m ...'.",
    ),
    verbosity: bool = typer.Option(
        False,
        "-v",
        "--verbosity",
        help="Determines the level of verbosity. Use -v for DEBUG. "
        "Defaults to INFO if not included.",
    ),
    version: bool = typer.Option(
        False,
        "-V",
        "--version",
        help="Print the current version of nightscore and exit.",
        is_eager=True,
        callback=version_check,
    ),
) -> None:
    """Run nightscore orchestrator with command line arguments."""
    from nightscore.core import orchestrator

    log_level = logging.INFO
    if verbosity:
        log_level = logging.DEBUG
    logger.setLevel(log_level)

    parsed_midpoints = (
        _parse_midpoints(previous_midpoints) if previous_midpoints else None
    )

    logger.debug("Running nightscore. arguments given: %s", locals())
    try:
        results = orchestrator.run(
            input=input,
            output=output,
            user_timezone=user_timezone,
            previous_midpoints=parsed_midpoints,
            verbosity=log_level,
            output_filetype=output_filetype.value,
        )
    except (
        exceptions.EmptyDirectoryError,
        exceptions.InvalidTimezoneError,
        exceptions.InvalidFileTypeError,
    ) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if output is None and results is not None:
        _print_results(results)


if __name__ == "__main__":
    app()
