from abc import ABC, abstractmethod

from reportdesk.history.models import JobType
from reportdesk.reports.models import ReportStatus, SalesReportParams


class BaseReportClient(ABC):
    """Contract for report API clients (real and simulated)."""

    @abstractmethod
    async def submit_job(
        self, job_type: JobType, params: SalesReportParams | None = None
    ) -> str:
        """Queue a report and return the external report id.

        Raises:
            ApiError: on a non-success response.
            TransientNetworkError: when the API cannot be reached.
        """

    @abstractmethod
    async def check_status(self, report_id: str) -> ReportStatus:
        """Return the current status of a queued report.

        Raises:
            ApiError: on a non-success response.
            TransientNetworkError: when the API cannot be reached.
        """

    async def aclose(self) -> None:
        """Release any held network resources."""
