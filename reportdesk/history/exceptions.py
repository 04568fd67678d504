class HistoryError(Exception):
    """Base exception for job history errors."""


class DuplicateJobError(HistoryError):
    """Raised when appending a record whose id already exists."""


class InvalidStatusTransition(HistoryError):
    """Raised when an update would move a job out of a terminal status."""
