class ReportError(Exception):
    """Base exception for report API interactions."""


class ApiError(ReportError):
    """Raised when the report API answers with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"EasyEcom API Error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class TransientNetworkError(ReportError):
    """Raised when the report API cannot be reached at all."""


class ReportValidationError(ReportError):
    """Raised when a report request is rejected before any network call."""
