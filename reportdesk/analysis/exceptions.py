class AnalysisError(Exception):
    """Base exception for report analysis failures."""


class DecodeError(AnalysisError):
    """Raised when tabular text is structurally unreadable."""


class InvalidArchive(AnalysisError):
    """Raised when a downloaded blob is not a readable zip archive."""


class NoTabularFileFound(AnalysisError):
    """Raised when an archive holds no CSV entry."""


class FetchError(AnalysisError):
    """Raised when a report file cannot be downloaded directly or via the relay."""

    def __init__(self, url: str, direct_cause: str, relay_cause: str) -> None:
        super().__init__(
            f"Failed to fetch report {url}: direct fetch failed ({direct_cause}); "
            f"relay fetch failed ({relay_cause})"
        )
        self.url = url
        self.direct_cause = direct_cause
        self.relay_cause = relay_cause
