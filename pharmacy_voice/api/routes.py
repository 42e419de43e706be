"""FastAPI routes for web-call creation and the read-only debug views."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from pharmacy_voice.api.schemas import (
    AgentListResponse,
    AgentSummary,
    CategoryList,
    ComplaintPage,
    ErrorResponse,
    OrderPage,
    RateLimitStatus,
    WebCallRequest,
    WebCallResponse,
)
from pharmacy_voice.services.metrics import metrics
from pharmacy_voice.services.rate_limiter import RateLimitError, resolve_identity
from pharmacy_voice.services.retell_client import RetellAPIError, RetellClient, get_retell_client
from pharmacy_voice.state import PharmacyState
from pharmacy_voice.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = 20


# ── Dependencies ─────────────────────────────────────────────────────


def get_state(request: Request) -> PharmacyState:
    """Retrieve the shared state created by the FastAPI lifespan."""
    state = getattr(request.app.state, "pharmacy", None)
    if state is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return state


def get_dispatcher(request: Request) -> ToolDispatcher:
    """Retrieve the tool dispatcher bound to the shared state."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return dispatcher


def _get_retell(request: Request) -> RetellClient:
    """Prefer a client injected on app state, else the lazy singleton."""
    client = getattr(request.app.state, "retell", None)
    return client if client is not None else get_retell_client()


def _client_identity(request: Request) -> str:
    return resolve_identity(
        request.headers.get("X-Forwarded-For"),
        request.client.host if request.client else None,
    )


# ── Web calls ────────────────────────────────────────────────────────


@router.post(
    "/web-call",
    response_model=WebCallResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_web_call(body: WebCallRequest, request: Request):
    """Create a Retell web call and return the access token for the front end."""
    if not body.agent_id:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="agent_id is required",
                hint="Get your agent_id from the Retell dashboard after creating an agent",
            ).body(),
        )

    state = get_state(request)
    identity = _client_identity(request)
    try:
        state.rate_limiter.admit(identity)
    except RateLimitError as exc:
        metrics.record_rate_limited(exc.scope)
        return JSONResponse(
            status_code=429,
            content=ErrorResponse(
                error="Rate limit exceeded", message=str(exc), scope=exc.scope,
            ).body(),
        )

    try:
        client = _get_retell(request)
        # Blocking HTTP call; keep the event loop free
        data = await asyncio.to_thread(client.create_web_call, body.agent_id)
        response = WebCallResponse(
            call_id=data["call_id"],
            access_token=data["access_token"],
            agent_id=data.get("agent_id") or body.agent_id,
        )
    except (RetellAPIError, OSError, KeyError) as exc:
        state.rate_limiter.release()
        logger.exception("Error creating web call for agent %s", body.agent_id)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Failed to create web call", message=str(exc)).body(),
        )

    state.rate_limiter.confirm()
    return response


@router.get(
    "/web-call/agents",
    response_model=AgentListResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_agents(request: Request):
    """List the Retell agents available to this account (handy for testing)."""
    try:
        client = _get_retell(request)
        agents = await asyncio.to_thread(client.list_agents)
    except (RetellAPIError, OSError) as exc:
        logger.exception("Error listing agents")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Failed to list agents", message=str(exc)).body(),
        )

    return AgentListResponse(
        agents=[
            AgentSummary(
                agent_id=agent["agent_id"],
                agent_name=agent.get("agent_name"),
                voice_id=agent.get("voice_id"),
            )
            for agent in agents
        ]
    )


@router.get("/web-call/status", response_model=RateLimitStatus)
async def web_call_status(request: Request):
    """Current web-call usage for the caller and the daily budget."""
    state = get_state(request)
    return RateLimitStatus(**state.rate_limiter.status(_client_identity(request)))


# ── Debug views ──────────────────────────────────────────────────────


@router.get("/orders", response_model=OrderPage)
async def list_orders(request: Request, limit: int = Query(DEFAULT_PAGE_SIZE, ge=1)):
    ledger = get_state(request).ledger
    recent = ledger.recent_orders(limit)
    return OrderPage(total=len(ledger.orders), showing=len(recent), orders=recent)


@router.get("/complaints", response_model=ComplaintPage)
async def list_complaints(request: Request, limit: int = Query(DEFAULT_PAGE_SIZE, ge=1)):
    ledger = get_state(request).ledger
    recent = ledger.recent_complaints(limit)
    return ComplaintPage(total=len(ledger.complaints), showing=len(recent), complaints=recent)


@router.get("/catalog/categories", response_model=CategoryList)
async def list_categories(request: Request):
    return CategoryList(categories=get_state(request).catalog.list_categories())
