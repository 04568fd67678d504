from decimal import Decimal
from pathlib import Path

from reportdesk.analysis.archive_extractor import ArchiveExtractor
from reportdesk.analysis.csv_decoder import CsvDecoder
from reportdesk.analysis.exceptions import AnalysisError
from reportdesk.analysis.fetcher import FileFetcher
from reportdesk.analysis.metrics import MetricsAggregator
from reportdesk.analysis.models import MetricsSummary, ProductSales
from reportdesk.config.app_config import AppConfig
from reportdesk.history.store import HistoryStore
from reportdesk.logging.logger import Log
from reportdesk.reports.simulated_client import PLACEHOLDER_DOWNLOAD_URL


def mock_summary() -> MetricsSummary:
    """Fixed summary shown for simulated or placeholder downloads."""
    return MetricsSummary(
        total_revenue=Decimal("125000.50"),
        unique_order_count=45,
        average_order_value=Decimal("2777.79"),
        status_breakdown=(),
        daily_sales=(),
        product_breakdown=(
            ProductSales("Tandoori Chaap", 120, Decimal("45000")),
            ProductSales("Malai Chaap", 90, Decimal("35000")),
            ProductSales("Achari Chaap", 50, Decimal("20000")),
        ),
    )


def is_placeholder_url(url: str) -> bool:
    return url == PLACEHOLDER_DOWNLOAD_URL or "mock" in url


class ReportAnalyzer:
    """Download -> unzip -> decode -> aggregate, for completed report jobs."""

    def __init__(
        self,
        config: AppConfig,
        history: HistoryStore,
        fetcher: FileFetcher,
        extractor: ArchiveExtractor | None = None,
        decoder: CsvDecoder | None = None,
        aggregator: MetricsAggregator | None = None,
    ) -> None:
        self._config = config
        self._history = history
        self._fetcher = fetcher
        self._extractor = extractor or ArchiveExtractor()
        self._decoder = decoder or CsvDecoder()
        self._aggregator = aggregator or MetricsAggregator()

    async def analyze_url(self, url: str) -> MetricsSummary:
        """Sales metrics for the report archive at url.

        Raises:
            AnalysisError: with a single user-facing message on any failure.
        """
        if self._config.simulation_mode or is_placeholder_url(url):
            Log.info("Returning mock analysis for simulated report")
            return mock_summary()
        try:
            blob = await self._fetcher.fetch(url)
            text = self._extractor.extract_csv(blob)
            return self._aggregator.summarize_sales(self._decoder.decode(text))
        except AnalysisError as exc:
            Log.exception(f"Analysis of {url} failed: {exc}")
            raise AnalysisError(f"Analysis Failed: {exc}") from exc

    async def analyze_record(self, job_id: int) -> MetricsSummary:
        """Analyse a ready job's download and cache the result on its record."""
        record = self._history.get(job_id)
        if record is None:
            raise AnalysisError(f"Analysis Failed: job {job_id} not found")
        if not record.download_url:
            raise AnalysisError(f"Analysis Failed: job {job_id} has no download URL yet")

        summary = await self.analyze_url(record.download_url)
        self._history.update(job_id, analysis=summary.to_dict())
        Log.info(f"Cached analysis for job {job_id}: {summary.unique_order_count} orders")
        return summary

    def analyze_csv_file(self, path: Path) -> MetricsSummary:
        """Status dashboard metrics for a CSV file on disk."""
        try:
            text = path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            raise AnalysisError(f"Error reading file: {exc}") from exc
        try:
            return self._aggregator.summarize(self._decoder.decode(text))
        except AnalysisError as exc:
            raise AnalysisError(f"Failed to parse CSV data: {exc}") from exc
