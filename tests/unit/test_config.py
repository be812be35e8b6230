"""Test logging and scoring parameters in config.py."""

import logging

import pydantic
import pytest
import pytest_mock

from nightscore.core import config


def test_get_logger(caplog: pytest.LogCaptureFixture) -> None:
    """Test the nightscore logger with level set to default 20 (info)."""
    if logging.getLogger("nightscore").handlers:
        logging.getLogger("nightscore").handlers.clear()
    logger = config.get_logger()

    logger.debug("Debug message here.")
    logger.info("Info message here.")
    logger.warning("Warning message here.")

    assert logger.getEffectiveLevel() == 20
    assert "Debug message here" not in caplog.text
    assert "Info message here." in caplog.text
    assert "Warning message here." in caplog.text


def test_get_logger_second_call() -> None:
    """Test get logger when a handler already exists."""
    logger = config.get_logger()
    second_logger = config.get_logger()

    assert len(logger.handlers) == len(second_logger.handlers) == 1
    assert logger.handlers[0] is second_logger.handlers[0]
    assert logger is second_logger


def test_get_version_unknown(mocker: pytest_mock.MockerFixture) -> None:
    """Test the version fallback when the package is not installed."""
    mocker.patch.object(
        config.metadata,
        "version",
        side_effect=config.metadata.PackageNotFoundError,
    )

    assert config.get_version() == "Version unknown"


def test_scoring_parameters_defaults() -> None:
    """Test the default tuning constants."""
    parameters = config.ScoringParameters()

    assert parameters.long_awake_split_minutes == 90
    assert parameters.min_awakening_minutes == 2
    assert parameters.nap_min_minutes == 10
    assert parameters.nap_max_minutes == 180
    assert parameters.primary_min_minutes == 180
    assert parameters.primary_max_minutes == 960
    assert parameters.stage_sum_tolerance_minutes == 15
    assert parameters.overnight_window_start_hour == 20
    assert parameters.overnight_window_end_hour == 11


def test_scoring_parameters_frozen() -> None:
    """Test that the parameters cannot be modified after construction."""
    parameters = config.ScoringParameters()

    with pytest.raises(pydantic.ValidationError):
        parameters.long_awake_split_minutes = 60  # type: ignore[misc]


@pytest.mark.parametrize(
    "overrides",
    [
        {"nap_min_minutes": 200},
        {"primary_min_minutes": 1000},
        {"fallback_window_start_hour": 16},
        {"long_awake_split_minutes": 0},
        {"overnight_window_start_hour": 24},
    ],
)
def test_scoring_parameters_invalid(overrides: dict) -> None:
    """Test that inconsistent parameters are rejected."""
    with pytest.raises(pydantic.ValidationError):
        config.ScoringParameters(**overrides)
