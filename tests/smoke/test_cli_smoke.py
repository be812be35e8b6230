"""Smoke tests for nightscore cli."""

import pathlib

from typer import testing

from nightscore.core import cli


def test_main_prints_scores(segment_file: pathlib.Path) -> None:
    """Test the score table printed when no output is given."""
    result = testing.CliRunner().invoke(cli.app, [str(segment_file)])

    assert result.exit_code == 0
    assert "2025-10-22" in result.output
    assert "78" in result.output
    assert "good" in result.output


def test_main_saves_results(
    segment_file: pathlib.Path, tmp_path: pathlib.Path
) -> None:
    """Test saving the summary from the command line."""
    output = tmp_path / "summary.csv"

    result = testing.CliRunner().invoke(
        cli.app, [str(segment_file), "-o", str(output), "-z", "Europe/London"]
    )

    assert result.exit_code == 0
    assert output.exists()
    assert (tmp_path / "summary.config.json").exists()
