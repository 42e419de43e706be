"""Retell webhook endpoints: call lifecycle events and tool calls.

Both endpoints are called by the platform, not by a user, so neither ever
answers with an error status.  Lifecycle events are always acknowledged with
``204`` and tool calls always get a ``{"result": ...}`` line to speak.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Query, Request, Response

from pharmacy_voice.api.routes import DEFAULT_PAGE_SIZE, get_dispatcher, get_state
from pharmacy_voice.api.schemas import CallLogPage, ToolCallResponse
from pharmacy_voice.services.call_events import parse_call_event, record_call_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/retell", tags=["Retell"])


async def _read_body(request: Request) -> Any:
    """Decode the JSON body, falling back to the raw text if it is not JSON."""
    raw = await request.body()
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return raw.decode("utf-8", errors="replace")


@router.post("", status_code=204)
async def call_event(request: Request) -> Response:
    """Receive a call lifecycle event and acknowledge it unconditionally."""
    state = get_state(request)
    body = await _read_body(request)

    outcome = parse_call_event(body)
    record_call_event(outcome, state.call_log)
    logger.debug("Webhook %s for call %s recorded", outcome.classification, outcome.call_id)
    return Response(status_code=204)


@router.get("/logs", response_model=CallLogPage)
async def call_logs(request: Request, limit: int = Query(DEFAULT_PAGE_SIZE, ge=1)):
    """Most recent call-log entries, for debugging."""
    call_log = get_state(request).call_log
    recent = call_log.recent(limit)
    return CallLogPage(total=len(call_log), showing=len(recent), logs=recent)


@router.post("/tools", response_model=ToolCallResponse)
async def tool_call(request: Request) -> ToolCallResponse:
    """Run a tool on behalf of the agent and return the line to speak."""
    dispatcher = get_dispatcher(request)
    body = await _read_body(request)
    result = await asyncio.to_thread(dispatcher.dispatch_payload, body)
    return ToolCallResponse(result=result)
