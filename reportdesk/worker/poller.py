import asyncio
from dataclasses import dataclass, field
from enum import Enum

from reportdesk.database.exceptions import StateBackendError
from reportdesk.history.exceptions import HistoryError
from reportdesk.history.models import JobStatus
from reportdesk.history.store import HistoryStore
from reportdesk.logging.logger import Log
from reportdesk.reports.base import BaseReportClient
from reportdesk.worker.exceptions import TimeoutExceeded


class PollState(str, Enum):
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class PollTask:
    """Bookkeeping for one job being polled."""

    job_id: int
    report_id: str
    started_at: float
    task: asyncio.Task[PollState] | None = field(default=None, repr=False)


class PollerManager:
    """Polls report status for in-flight jobs, one asyncio task per job.

    Each job goes Idle -> Polling -> Completed | Failed | TimedOut. A timed
    out job is left in Processing in the history so it can be picked up
    again by resume_pending on the next start.
    """

    def __init__(
        self,
        client: BaseReportClient,
        history: HistoryStore,
        interval_seconds: float = 3.0,
        timeout_seconds: float = 120.0,
    ) -> None:
        self._client = client
        self._history = history
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._active: dict[int, PollTask] = {}
        self._outcomes: dict[int, PollState] = {}

    def start(self, job_id: int, report_id: str) -> bool:
        """Begin polling job_id. Returns False if it is already being polled.

        Must be called from inside a running event loop.
        """
        if job_id in self._active:
            Log.debug(f"Job {job_id} is already being polled")
            return False

        loop = asyncio.get_running_loop()
        entry = PollTask(job_id=job_id, report_id=report_id, started_at=loop.time())
        self._active[job_id] = entry
        self._outcomes.pop(job_id, None)
        entry.task = loop.create_task(self._run(entry), name=f"poll-job-{job_id}")
        Log.info(f"Polling report {report_id} for job {job_id}")
        return True

    def resume_pending(self) -> int:
        """Enrol every history record still in Processing. Returns how many started."""
        started = 0
        for record in self._history.pending():
            if self.start(record.id, record.report_id):
                started += 1
        if started:
            Log.info(f"Resumed polling for {started} processing job(s)")
        return started

    def active_jobs(self) -> list[int]:
        return list(self._active)

    def is_polling(self, job_id: int) -> bool:
        return job_id in self._active

    def outcome(self, job_id: int) -> PollState | None:
        """Last known state for job_id; None if it was never polled."""
        if job_id in self._active:
            return PollState.POLLING
        return self._outcomes.get(job_id)

    async def wait(self, job_id: int) -> PollState | None:
        """Wait for job_id's polling to finish and return its final state."""
        entry = self._active.get(job_id)
        if entry is not None and entry.task is not None:
            return await entry.task
        return self._outcomes.get(job_id)

    async def wait_all(self) -> None:
        tasks = [entry.task for entry in self._active.values() if entry.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Cancel every running poll. Used on process shutdown only."""
        tasks = [entry.task for entry in self._active.values() if entry.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._active.clear()

    async def _run(self, entry: PollTask) -> PollState:
        try:
            state = await asyncio.wait_for(self._poll_until_terminal(entry), self._timeout)
        except asyncio.TimeoutError:
            Log.warning(str(TimeoutExceeded(entry.job_id, self._timeout)))
            state = PollState.TIMED_OUT
        finally:
            self._active.pop(entry.job_id, None)
        self._outcomes[entry.job_id] = state
        return state

    async def _poll_until_terminal(self, entry: PollTask) -> PollState:
        while True:
            await asyncio.sleep(self._interval)
            state = await self._check_once(entry)
            if state is not PollState.POLLING:
                return state

    async def _check_once(self, entry: PollTask) -> PollState:
        try:
            status = await self._client.check_status(entry.report_id)
        except Exception as exc:
            Log.warning(f"Status check for job {entry.job_id} failed, will retry: {exc}")
            return PollState.POLLING

        if status.is_completed:
            if not self._record(
                entry.job_id, status=JobStatus.READY, download_url=status.download_url
            ):
                return PollState.POLLING
            Log.info(f"Job {entry.job_id} ready: {status.download_url}")
            return PollState.COMPLETED
        if status.is_failed:
            if not self._record(entry.job_id, status=JobStatus.FAILED):
                return PollState.POLLING
            Log.error(f"Job {entry.job_id} failed on the report service")
            return PollState.FAILED

        Log.debug(f"Job {entry.job_id} still {status.status or 'pending'}")
        return PollState.POLLING

    def _record(self, job_id: int, **changes: object) -> bool:
        """Store a terminal outcome. Returns False if it could not be saved yet."""
        try:
            self._history.update(job_id, **changes)
        except StateBackendError as exc:
            Log.warning(f"Could not save outcome for job {job_id}, will retry: {exc}")
            return False
        except HistoryError as exc:
            Log.error(f"Could not record outcome for job {job_id}: {exc}")
        return True
