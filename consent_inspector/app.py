"""
HTTP adapter: FastAPI app exposing the inspection engine.

Runs one inspection per request and returns the
:class:`~consent_inspector.models.analysis.AnalysisResult` JSON.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import AsyncGenerator, Awaitable, Callable

import dotenv
import fastapi
import uvicorn
from fastapi import responses
from fastapi.middleware import cors

from consent_inspector.models import analysis
from consent_inspector.pipeline import inspection
from consent_inspector.utils import errors, logger

dotenv.load_dotenv()

log = logger.create_logger("Server")

HOST = os.environ.get("UVICORN_HOST", "0.0.0.0")
PORT = int(os.environ.get("UVICORN_PORT", "3001"))

Inspector = Callable[[str], Awaitable[analysis.AnalysisResult]]


@contextlib.asynccontextmanager
async def lifespan(_app: fastapi.FastAPI) -> AsyncGenerator[None]:
    """Log server start on startup."""
    log.section("Consent Inspector Server Started")
    yield


app = fastapi.FastAPI(title="Consent Inspector", lifespan=lifespan)

# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    cors.CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# API Routes
# ============================================================================


def get_inspector() -> Inspector:
    """Return the inspection coroutine (overridden in tests)."""
    return inspection.inspect_async


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/inspect")
async def inspect_endpoint(
    url: str = fastapi.Query(..., description="The URL to inspect"),
    inspector: Inspector = fastapi.Depends(get_inspector),
) -> responses.JSONResponse:
    """
    Inspect cookie consent handling on a URL.
    """
    log.info("Incoming inspection request", {"url": url})
    try:
        result = await inspector(url)
    except errors.ValidationError as exc:
        log.warn("Rejected invalid URL", {"url": url, "error": str(exc)})
        return responses.JSONResponse(status_code=400, content={"error": str(exc)})
    except errors.LaunchFailure as exc:
        log.error("Browser launch failed", {"error": errors.get_error_message(exc)})
        failed = analysis.AnalysisResult.failed(url, errors.get_error_message(exc))
        return responses.JSONResponse(status_code=502, content=failed.to_json())
    return responses.JSONResponse(content=result.to_json())


# ============================================================================
# Start Server
# ============================================================================


def main() -> None:
    """Entry point for running the server."""
    log.success(f"Server listening on {HOST}:{PORT}")
    uvicorn.run("consent_inspector.app:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
