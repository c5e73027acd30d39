"""
Exception hierarchy for the metrics engine.

RecordParseError is raised for a single bad input row and is always caught
inside the batch loop. InputFormatError and ConfigurationError propagate to
the caller.
"""


class TeamlightError(Exception):
    """Base class for all engine errors."""


class RecordParseError(TeamlightError):
    """A raw record cannot be turned into a Ticket."""

    def __init__(self, message: str, row: int | None = None):
        super().__init__(message)
        self.row = row


class InputFormatError(TeamlightError):
    """An input table is unreadable or lacks required columns."""


class ConfigurationError(TeamlightError):
    """Raised when configuration is missing or invalid."""
