"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from pharmacy_voice.config import SERVICE_VERSION
from pharmacy_voice.services.ledger import CallLogEntry, Complaint, Order


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    version: str = SERVICE_VERSION
    phase: str = "POC"


class ToolCallResponse(BaseModel):
    """What the voice agent speaks back to the caller."""

    result: str


class WebCallRequest(BaseModel):
    """Body of ``POST /api/web-call``.

    ``agent_id`` is optional here so that a missing value produces the
    friendlier 400 response instead of FastAPI's generic 422.
    """

    agent_id: str | None = Field(None, description="Retell agent to connect the caller to")


class WebCallResponse(BaseModel):
    success: bool = True
    call_id: str
    access_token: str
    agent_id: str


class AgentSummary(BaseModel):
    agent_id: str
    agent_name: str | None = None
    voice_id: str | None = None


class AgentListResponse(BaseModel):
    success: bool = True
    agents: list[AgentSummary]


class RateLimitStatus(BaseModel):
    daily_used: int
    daily_limit: int
    daily_remaining: int
    hourly_limit_per_ip: int
    identity: str | None = None
    hourly_used: int | None = None


class CallLogPage(BaseModel):
    total: int
    showing: int
    logs: list[CallLogEntry]


class OrderPage(BaseModel):
    total: int
    showing: int
    orders: list[Order]


class ComplaintPage(BaseModel):
    total: int
    showing: int
    complaints: list[Complaint]


class CategoryList(BaseModel):
    categories: list[str]


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
    hint: str | None = None
    scope: str | None = None

    def body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
