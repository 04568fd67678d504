from reportdesk.analysis.archive_extractor import ArchiveExtractor
from reportdesk.analysis.csv_decoder import CsvDecoder
from reportdesk.analysis.fetcher import FileFetcher
from reportdesk.analysis.metrics import MetricsAggregator
from reportdesk.analysis.pipeline import ReportAnalyzer

__all__ = [
    "ArchiveExtractor",
    "CsvDecoder",
    "FileFetcher",
    "MetricsAggregator",
    "ReportAnalyzer",
]
