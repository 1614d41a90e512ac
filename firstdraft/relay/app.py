"""
Relay for the messages API.

Accepts the orchestrator's payload verbatim on ``POST /api/claude``,
attaches the server-held credential and forwards it upstream. Streaming
requests get the event stream back, content-decoded; others get the JSON body.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from firstdraft.config import RELAY_PATH, Settings
from firstdraft.exceptions import ConfigurationError, TransportError

logger = logging.getLogger(__name__)


def _error(message: str, code: str, status: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, "code": code})


def create_app(
    settings: Settings | None = None, upstream: httpx.AsyncClient | None = None
) -> FastAPI:
    settings = settings or Settings.from_env()
    owns_client = upstream is None
    client = upstream or httpx.AsyncClient(timeout=settings.timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.aclose()

    app = FastAPI(title="firstdraft relay", lifespan=lifespan)

    @app.post(RELAY_PATH)
    async def relay(request: Request):
        """Forward one messages request upstream."""
        if not settings.api_key:
            logger.error("ANTHROPIC_API_KEY not configured")
            return _error("ANTHROPIC_API_KEY not configured", ConfigurationError.error_code)

        try:
            body = await request.json()
        except ValueError:
            return _error("Request body must be JSON", "BAD_REQUEST", 400)
        if not isinstance(body, dict):
            return _error("Request body must be a JSON object", "BAD_REQUEST", 400)
        headers = {
            "content-type": "application/json",
            "x-api-key": settings.api_key,
            "anthropic-version": settings.anthropic_version,
        }
        try:
            if body.get("stream"):
                upstream_req = client.build_request(
                    "POST", settings.upstream_url, json=body, headers=headers
                )
                resp = await client.send(upstream_req, stream=True)
                return StreamingResponse(
                    resp.aiter_bytes(),
                    status_code=resp.status_code,
                    media_type="text/event-stream",
                    headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
                    background=BackgroundTask(resp.aclose),
                )
            resp = await client.post(settings.upstream_url, json=body, headers=headers)
            return JSONResponse(status_code=resp.status_code, content=resp.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("API error: %s", exc)
            return _error("Failed to call Anthropic API", TransportError.error_code)

    return app
