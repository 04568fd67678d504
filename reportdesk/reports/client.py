import json
from typing import Any

import httpx

from reportdesk.config.app_config import AppConfig
from reportdesk.history.models import JobType
from reportdesk.logging.logger import Log
from reportdesk.reports.base import BaseReportClient
from reportdesk.reports.exceptions import ApiError, TransientNetworkError
from reportdesk.reports.models import ReportStatus, SalesReportParams
from reportdesk.reports.simulated_client import SimulatedReportClient, is_simulated_report_id


def extract_error_message(response: httpx.Response) -> str:
    """Best-effort human message from an error response.

    Prefers the JSON 'message' or 'error' field, then the raw body text,
    then the HTTP status line.
    """
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    if text:
        return text
    return response.reason_phrase or f"HTTP {response.status_code}"


class ReportClient(BaseReportClient):
    """Async client for the EasyEcom report queue/download endpoints."""

    def __init__(
        self,
        config: AppConfig,
        *,
        timeout_seconds: float = 30,
        http_client: httpx.AsyncClient | None = None,
        simulated: SimulatedReportClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._simulated = simulated or SimulatedReportClient()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.auth_token}",
            "x-api-key": self._config.api_key,
        }

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{path}"

    async def submit_job(
        self, job_type: JobType, params: SalesReportParams | None = None
    ) -> str:
        payload: dict[str, Any] = {"reportType": job_type.value}
        if params is not None:
            payload["params"] = params.to_wire()

        body = await self._request("POST", "/reports/queue", json=payload)
        report_id = (body.get("data") or {}).get("reportId")
        if not report_id:
            raise ApiError(200, "Response did not contain a report id")
        Log.info(f"Queued {job_type.name} report {report_id}")
        return str(report_id)

    async def check_status(self, report_id: str) -> ReportStatus:
        if is_simulated_report_id(report_id):
            return await self._simulated.check_status(report_id)

        body = await self._request(
            "GET", "/reports/download", params={"reportId": report_id}
        )
        data = body.get("data") or {}
        return ReportStatus(
            status=str(data.get("reportStatus", "")),
            download_url=data.get("downloadUrl") or None,
            raw=data,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method, self._url(path), headers=self._headers(), **kwargs
            )
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"Report API unreachable: {exc}") from exc

        if not response.is_success:
            raise ApiError(response.status_code, extract_error_message(response))
        try:
            body = response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Response was not valid JSON") from exc
        if not isinstance(body, dict):
            raise ApiError(response.status_code, "Unexpected response shape")
        return body
