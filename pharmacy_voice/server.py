"""FastAPI server for the pharmacy voice agent backend.

Run with:
    uv run uvicorn pharmacy_voice.server:app --reload --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from pharmacy_voice.api.routes import router
from pharmacy_voice.api.schemas import HealthResponse
from pharmacy_voice.api.webhooks import router as retell_router
from pharmacy_voice.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT, SERVICE_VERSION
from pharmacy_voice.state import PharmacyState
from pharmacy_voice.tools.dispatcher import ToolDispatcher

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise shared state ───────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create the process-wide state and warm the catalog.

    The Retell client is left to lazy initialisation so the webhook and tool
    endpoints work even without ``RETELL_API_KEY``.
    """
    state = PharmacyState()
    application.state.pharmacy = state
    application.state.dispatcher = ToolDispatcher(state)
    logger.info("Catalog ready: %d products", len(state.catalog.products))
    yield
    # In-memory state is dropped with the process


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Pharmacy Voice Agent API",
    description=(
        "Webhook and tool-call backend for the pharmacy voice agent: "
        "product lookup, orders, complaints and human hand-off."
    ),
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID to every request and echo it in ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")
app.include_router(retell_router)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(timestamp=datetime.now().astimezone().isoformat())


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Pharmacy Voice Agent API",
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "health": "/health",
        "retell_webhook": "/webhooks/retell",
        "retell_tools": "/webhooks/retell/tools",
    }


if __name__ == "__main__":
    logger.info("Starting pharmacy voice API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "pharmacy_voice.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
