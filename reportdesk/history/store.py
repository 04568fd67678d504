import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from reportdesk.database.base import StateBackend
from reportdesk.history.exceptions import DuplicateJobError, InvalidStatusTransition
from reportdesk.history.models import JobRecord, JobStatus, JobType
from reportdesk.logging.logger import Log

PARTITION_KEYS: dict[JobType, str] = {
    JobType.STOCK: "stockHistory",
    JobType.SALES: "salesHistory",
}

_UPDATABLE_FIELDS = frozenset({"status", "download_url", "analysis", "date_range"})

HistoryListener = Callable[[str, JobRecord], None]


class HistoryStore:
    """Owns job records, partitioned by job type, most recent first.

    Every mutation is written through to the state backend and only becomes
    visible in memory once the save succeeded, so a failed save leaves the
    store unchanged.
    Mutations are serialised by a lock so each update is an atomic
    read-modify-write.
    """

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend
        self._lock = threading.RLock()
        self._listeners: list[HistoryListener] = []
        self._partitions: dict[JobType, list[JobRecord]] = {
            job_type: self._load_partition(job_type) for job_type in JobType
        }

    def append(self, record: JobRecord) -> JobRecord:
        """Place a new record at the head of its partition."""
        with self._lock:
            if self._find(record.id) is not None:
                raise DuplicateJobError(f"Job {record.id} already exists")
            self._commit(record.job_type, [record, *self._partitions[record.job_type]])
        Log.info(f"Recorded job {record.id} ({record.job_type.name}, report {record.report_id})")
        self._notify("appended", record)
        return record

    def update(self, job_id: int, **changes: Any) -> JobRecord | None:
        """Apply changes to the record with job_id in whichever partition holds it.

        Returns the updated record, or None if no record has that id.

        Raises:
            InvalidStatusTransition: if the record is terminal and the change
                would give it a different status.
            StateBackendError: if the change cannot be saved.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        if "status" in changes:
            changes["status"] = JobStatus(changes["status"])

        updated: JobRecord | None = None
        with self._lock:
            for job_type, records in list(self._partitions.items()):
                for index, record in enumerate(records):
                    if record.id != job_id:
                        continue
                    self._check_transition(record, changes.get("status"))
                    updated = replace(record, **changes)
                    self._commit(job_type, [*records[:index], updated, *records[index + 1 :]])
                    break

        if updated is None:
            Log.debug(f"Ignoring update for unknown job {job_id}")
            return None
        self._notify("updated", updated)
        return updated

    def get(self, job_id: int) -> JobRecord | None:
        with self._lock:
            return self._find(job_id)

    def list_jobs(self, job_type: JobType) -> list[JobRecord]:
        with self._lock:
            return list(self._partitions[job_type])

    def pending(self) -> list[JobRecord]:
        """All records still in Processing, across both partitions."""
        with self._lock:
            return [
                record
                for records in self._partitions.values()
                for record in records
                if record.status is JobStatus.PROCESSING
            ]

    def clear(self, job_type: JobType) -> int:
        """Explicitly drop a whole partition. Returns how many records were removed."""
        with self._lock:
            removed = self._partitions[job_type]
            self._commit(job_type, [])
        Log.info(f"Cleared {len(removed)} {job_type.name} history records")
        for record in removed:
            self._notify("cleared", record)
        return len(removed)

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _find(self, job_id: int) -> JobRecord | None:
        for records in self._partitions.values():
            for record in records:
                if record.id == job_id:
                    return record
        return None

    @staticmethod
    def _check_transition(record: JobRecord, new_status: JobStatus | None) -> None:
        if new_status is None or new_status is record.status:
            return
        if record.status.is_terminal or new_status is JobStatus.PROCESSING:
            raise InvalidStatusTransition(
                f"Job {record.id} cannot move from {record.status.value} to {new_status.value}"
            )

    def _load_partition(self, job_type: JobType) -> list[JobRecord]:
        raw = self._backend.load(PARTITION_KEYS[job_type])
        if not raw:
            return []
        records: list[JobRecord] = []
        for item in raw:
            try:
                records.append(JobRecord.from_dict(item))
            except (KeyError, ValueError, TypeError) as exc:
                Log.warning(f"Skipping malformed {job_type.name} history entry: {exc}")
        return records

    def _commit(self, job_type: JobType, records: list[JobRecord]) -> None:
        """Save records as the new partition; memory only changes once the save succeeds."""
        self._backend.save(PARTITION_KEYS[job_type], [record.to_dict() for record in records])
        self._partitions[job_type] = records

    def _notify(self, event: str, record: JobRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, record)
            except Exception as exc:
                Log.error(f"History listener failed on {event} for job {record.id}: {exc}")
