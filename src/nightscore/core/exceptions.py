"""Custom exceptions for nightscore."""

from nightscore.core import config

logger = config.get_logger()


class LoggedException(Exception):
    """Base class that automatically logs messages."""

    def __init__(self, message: str) -> None:
        """Initialize a new instance of the LoggedException class.

        Args:
            message: The message to display.
        """
        logger.exception(message)
        super().__init__(message)


class InvalidTimezoneError(LoggedException):
    """The timezone is not a known IANA timezone identifier."""

    pass


class InvalidFileTypeError(LoggedException):
    """nightscore did not expect this file extension."""

    pass


class EmptyDirectoryError(LoggedException):
    """No .csv, .parquet or .json files were found in the directory."""

    pass
