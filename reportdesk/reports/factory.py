from reportdesk.config.app_config import AppConfig
from reportdesk.reports.base import BaseReportClient
from reportdesk.reports.client import ReportClient
from reportdesk.reports.simulated_client import SimulatedReportClient


class ReportClientFactory:
    """Creates the report client matching the current configuration."""

    @classmethod
    def create(cls, config: AppConfig, timeout_seconds: float = 30) -> BaseReportClient:
        if config.simulation_mode:
            return SimulatedReportClient()
        return ReportClient(config, timeout_seconds=timeout_seconds)
