import asyncio
import time

from reportdesk.history.models import JobType
from reportdesk.logging.logger import Log
from reportdesk.reports.base import BaseReportClient
from reportdesk.reports.models import COMPLETED, ReportStatus, SalesReportParams

SIMULATED_PREFIX = "SIM-"
PLACEHOLDER_DOWNLOAD_URL = "#"

_TYPE_CODES = {
    JobType.STOCK: "STK",
    JobType.SALES: "SLS",
}


def is_simulated_report_id(report_id: str) -> bool:
    return report_id.startswith(SIMULATED_PREFIX)


class SimulatedReportClient(BaseReportClient):
    """Deterministic stand-in for the report API. Never touches the network."""

    def __init__(
        self,
        submit_delay_seconds: float = 1.0,
        status_delay_seconds: float = 3.0,
    ) -> None:
        self._submit_delay = submit_delay_seconds
        self._status_delay = status_delay_seconds

    async def submit_job(
        self, job_type: JobType, params: SalesReportParams | None = None
    ) -> str:
        await asyncio.sleep(self._submit_delay)
        report_id = f"{SIMULATED_PREFIX}{_TYPE_CODES[job_type]}-{int(time.time() * 1000)}"
        Log.info(f"Simulated {job_type.name} report queued as {report_id}")
        return report_id

    async def check_status(self, report_id: str) -> ReportStatus:
        await asyncio.sleep(self._status_delay)
        return ReportStatus(status=COMPLETED, download_url=PLACEHOLDER_DOWNLOAD_URL)
