import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class JobType(str, Enum):
    """Report types; values are the wire names used by the report API."""

    STOCK = "STATUS_WISE_STOCK_REPORT"
    SALES = "MINI_SALES_REPORT"


class JobStatus(str, Enum):
    PROCESSING = "Processing"
    READY = "Ready"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


@dataclass
class JobRecord:
    """One submitted report job as tracked in the history."""

    id: int
    report_id: str
    job_type: JobType
    created_at: str
    status: JobStatus = JobStatus.PROCESSING
    download_url: str | None = None
    date_range: str | None = None
    analysis: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "reportId": self.report_id,
            "type": self.job_type.value,
            "date": self.created_at,
            "status": self.status.value,
        }
        if self.download_url is not None:
            data["downloadUrl"] = self.download_url
        if self.date_range is not None:
            data["dateRange"] = self.date_range
        if self.analysis is not None:
            data["analysis"] = self.analysis
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobRecord":
        return cls(
            id=int(data["id"]),
            report_id=str(data["reportId"]),
            job_type=JobType(data["type"]),
            created_at=str(data.get("date", "")),
            status=JobStatus(data.get("status", JobStatus.PROCESSING.value)),
            download_url=data.get("downloadUrl"),
            date_range=data.get("dateRange"),
            analysis=data.get("analysis"),
        )


class JobIdGenerator:
    """Issues millisecond-timestamp ids that never repeat within a process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def next_id(self) -> int:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate
