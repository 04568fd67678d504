import httpx

from reportdesk.analysis.exceptions import FetchError
from reportdesk.logging.logger import Log

RELAY_PATH = "/api/proxy-file"


def relay_url_for(relay_base_url: str, target_url: str) -> httpx.URL:
    """URL of the relay endpoint that fetches target_url on our behalf."""
    return httpx.URL(f"{relay_base_url.rstrip('/')}{RELAY_PATH}", params={"url": target_url})


class FileFetcher:
    """Downloads report files directly, falling back to the same-origin relay."""

    def __init__(
        self,
        relay_base_url: str,
        *,
        timeout_seconds: float = 30,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._relay_base_url = relay_base_url
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout_seconds, follow_redirects=True
        )

    async def fetch(self, url: str) -> bytes:
        """Return the bytes at url.

        Raises:
            FetchError: if both the direct and the relayed download fail.
        """
        try:
            return await self._get(httpx.URL(url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            direct_cause = str(exc) or type(exc).__name__
            Log.warning(f"Direct fetch of {url} failed, retrying via relay: {direct_cause}")

        try:
            return await self._get(relay_url_for(self._relay_base_url, url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            relay_cause = str(exc) or type(exc).__name__
            Log.error(f"Relay fetch of {url} failed: {relay_cause}")
            raise FetchError(url, direct_cause, relay_cause) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get(self, url: httpx.URL) -> bytes:
        response = await self._http.get(url)
        if not response.is_success:
            detail = response.text.strip() or response.reason_phrase
            raise httpx.HTTPStatusError(
                f"HTTP {response.status_code}: {detail}",
                request=response.request,
                response=response,
            )
        return response.content
