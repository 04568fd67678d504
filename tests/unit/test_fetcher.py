import httpx
import pytest

from reportdesk.analysis.exceptions import FetchError
from reportdesk.analysis.fetcher import FileFetcher, relay_url_for

REPORT_URL = "https://files.example.test/reports/r.zip?sig=abc"


def _fetcher(handler) -> FileFetcher:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return FileFetcher("http://relay.test/", http_client=http)


class TestRelayUrl:
    def test_encodes_target_as_query_parameter(self) -> None:
        url = relay_url_for("http://relay.test/", REPORT_URL)

        assert url.host == "relay.test"
        assert url.path == "/api/proxy-file"
        assert url.params["url"] == REPORT_URL


class TestFileFetcher:
    @pytest.mark.asyncio
    async def test_direct_download(self) -> None:
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, content=b"PK-data")

        assert await _fetcher(handler).fetch(REPORT_URL) == b"PK-data"
        assert len(seen) == 1
        assert seen[0].host == "files.example.test"

    @pytest.mark.asyncio
    async def test_falls_back_to_relay_on_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "relay.test":
                assert request.url.params["url"] == REPORT_URL
                return httpx.Response(200, content=b"relayed")
            return httpx.Response(403, text="Forbidden origin")

        assert await _fetcher(handler).fetch(REPORT_URL) == b"relayed"

    @pytest.mark.asyncio
    async def test_falls_back_to_relay_on_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "relay.test":
                return httpx.Response(200, content=b"relayed")
            raise httpx.ConnectError("blocked", request=request)

        assert await _fetcher(handler).fetch(REPORT_URL) == b"relayed"

    @pytest.mark.asyncio
    async def test_both_failures_are_reported(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "relay.test":
                return httpx.Response(500, json={"error": "Failed to fetch the requested file."})
            return httpx.Response(403, text="denied")

        with pytest.raises(FetchError) as exc_info:
            await _fetcher(handler).fetch(REPORT_URL)

        assert "403" in exc_info.value.direct_cause
        assert "500" in exc_info.value.relay_cause
        assert exc_info.value.url == REPORT_URL
