from collections.abc import Callable
from datetime import date, datetime

from reportdesk.config.app_config import AppConfig
from reportdesk.history.models import JobIdGenerator, JobRecord, JobStatus, JobType
from reportdesk.history.store import HistoryStore
from reportdesk.logging.logger import Log
from reportdesk.reports.base import BaseReportClient
from reportdesk.reports.exceptions import ReportValidationError
from reportdesk.reports.models import SalesReportParams
from reportdesk.worker.poller import PollerManager

CREATED_AT_FORMAT = "%d/%m/%Y, %H:%M:%S"


def default_sales_range(today: date) -> tuple[date, date]:
    """First day of the current month through today."""
    return today.replace(day=1), today


def validate_sales_range(
    start: date | str | None, end: date | str | None
) -> tuple[date, date]:
    """Parse and check a sales report date range.

    Raises:
        ReportValidationError: if a date is missing, malformed, or the range is reversed.
    """
    if not start or not end:
        raise ReportValidationError("Please select both start and end dates.")
    start_date = _as_date(start, "start")
    end_date = _as_date(end, "end")
    if end_date < start_date:
        raise ReportValidationError("End date cannot be before start date.")
    return start_date, end_date


def _as_date(value: date | str, label: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ReportValidationError(
            f"Invalid {label} date '{value}', expected YYYY-MM-DD."
        ) from exc


class ReportService:
    """Queues reports, records them in the history and starts polling.

    A record is only created once the report API has accepted the request,
    so failed submissions leave no trace in the history.
    """

    def __init__(
        self,
        config: AppConfig,
        client: BaseReportClient,
        history: HistoryStore,
        poller: PollerManager,
        id_generator: JobIdGenerator | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._client = client
        self._history = history
        self._poller = poller
        self._ids = id_generator or JobIdGenerator()
        self._now = now

    async def queue_stock_report(self) -> JobRecord:
        report_id = await self._client.submit_job(JobType.STOCK)
        return self._record(JobType.STOCK, report_id)

    async def queue_sales_report(
        self, start: date | str | None, end: date | str | None
    ) -> JobRecord:
        start_date, end_date = validate_sales_range(start, end)
        params = SalesReportParams(
            start_date=start_date,
            end_date=end_date,
            warehouse_ids=self._config.warehouse_id,
        )
        report_id = await self._client.submit_job(JobType.SALES, params)
        return self._record(JobType.SALES, report_id, date_range=params.date_range)

    def _record(self, job_type: JobType, report_id: str, date_range: str | None = None) -> JobRecord:
        record = JobRecord(
            id=self._ids.next_id(),
            report_id=report_id,
            job_type=job_type,
            created_at=self._now().strftime(CREATED_AT_FORMAT),
            status=JobStatus.PROCESSING,
            date_range=date_range,
        )
        self._history.append(record)
        self._poller.start(record.id, record.report_id)
        Log.info(f"Job {record.id} queued as report {report_id}")
        return record
