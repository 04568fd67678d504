"""Same-origin relay that downloads report files on the caller's behalf."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from reportdesk.logging.logger import Log

router = APIRouter()


@router.get("/")
async def health() -> dict[str, str]:
    return {"status": "ok", "message": "Report desk relay is running"}


@router.get("/api/proxy-file")
async def proxy_file(request: Request, url: str | None = None) -> Response:
    """Fetch url server-side and return its bytes with the upstream content type."""
    if not url:
        return JSONResponse(status_code=400, content={"error": "URL parameter is required"})

    client: httpx.AsyncClient = request.app.state.http_client
    try:
        upstream = await client.get(url)
        upstream.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        Log.error(f"Relay fetch of {url} failed: {exc}")
        return JSONResponse(
            status_code=500, content={"error": "Failed to fetch the requested file."}
        )

    Log.debug(f"Relayed {len(upstream.content)} bytes from {url}")
    return Response(
        content=upstream.content,
        media_type=upstream.headers.get("content-type"),
    )


def create_app(
    transport: httpx.AsyncBaseTransport | None = None,
    timeout_seconds: float = 30,
) -> FastAPI:
    """Build the relay application. transport is swappable for tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with httpx.AsyncClient(
            transport=transport, timeout=timeout_seconds, follow_redirects=True
        ) as client:
            app.state.http_client = client
            yield

    app = FastAPI(title="Report Desk Relay", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
