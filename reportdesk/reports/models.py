from dataclasses import dataclass, field
from datetime import date

COMPLETED = "COMPLETED"
FAILED = "FAILED"


@dataclass(frozen=True)
class SalesReportParams:
    """Parameters for a MINI_SALES_REPORT request."""

    start_date: date
    end_date: date
    warehouse_ids: str = ""
    invoice_type: str = "ALL"
    date_type: str = "ORDER_DATE"

    def to_wire(self) -> dict[str, str]:
        return {
            "invoiceType": self.invoice_type,
            "dateType": self.date_type,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "warehouseIds": self.warehouse_ids,
        }

    @property
    def date_range(self) -> str:
        return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"


@dataclass(frozen=True)
class ReportStatus:
    """Status of a queued report as reported by the API."""

    status: str
    download_url: str | None = None
    raw: dict[str, object] = field(default_factory=dict, compare=False)

    @property
    def is_completed(self) -> bool:
        return self.status.upper() == COMPLETED and bool(self.download_url)

    @property
    def is_failed(self) -> bool:
        return self.status.upper() == FAILED
