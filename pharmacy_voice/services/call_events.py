"""Call-lifecycle webhook parsing and recording.

Retell posts ``call_started``, ``call_ended`` and ``call_analyzed`` events.
Each delivery goes through::

    received → parsed | unparsed → logged → acknowledged

Parsing never raises.  :func:`parse_call_event` returns a
:class:`WebhookOutcome` describing either the validated event or the raw
body with the validation error, and :func:`record_call_event` appends exactly
one call-log entry for either case.  The HTTP route always acknowledges: a
rejection would only make Retell redeliver the same payload.

See: https://docs.retellai.com/features/webhook
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from pharmacy_voice.services.ledger import CallLog, CallLogEntry

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


class CallAnalysis(BaseModel):
    call_summary: str | None = None
    user_sentiment: str | None = None
    call_successful: bool | None = None
    custom_analysis_data: dict[str, Any] | None = None


class CallDetails(BaseModel):
    call_id: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)
    call_status: str
    start_timestamp: float | None = None
    end_timestamp: float | None = None
    transcript: str | None = None
    recording_url: str | None = None
    from_number: str | None = None
    to_number: str | None = None
    direction: Literal["inbound", "outbound"] | None = None
    call_analysis: CallAnalysis | None = None


class CallEvent(BaseModel):
    """A validated Retell call-lifecycle event."""

    event: Literal["call_started", "call_ended", "call_analyzed"]
    call: CallDetails


class WebhookOutcome(BaseModel):
    """Result of parsing one webhook delivery.

    Exactly one of ``event`` (parsed) or ``error`` (unparsed) is set.
    """

    raw: Any = None
    event: CallEvent | None = None
    error: str | None = None

    @property
    def parsed(self) -> bool:
        return self.event is not None

    @property
    def classification(self) -> str:
        return self.event.event if self.event else UNKNOWN

    @property
    def call_id(self) -> str:
        if self.event:
            return self.event.call.call_id
        return _best_effort_call_id(self.raw)


def _best_effort_call_id(raw: Any) -> str:
    if isinstance(raw, dict):
        call = raw.get("call")
        if isinstance(call, dict):
            call_id = call.get("call_id")
            if call_id:
                return str(call_id)
    return UNKNOWN


def parse_call_event(raw: Any) -> WebhookOutcome:
    """Validate *raw* against :class:`CallEvent` without raising."""
    try:
        return WebhookOutcome(raw=raw, event=CallEvent.model_validate(raw))
    except ValidationError as exc:
        return WebhookOutcome(raw=raw, error=str(exc))


def _log_event_details(event: CallEvent) -> None:
    call = event.call
    if event.event == "call_started":
        logger.info(
            "Call started: %s (from=%s to=%s direction=%s)",
            call.call_id,
            call.from_number or UNKNOWN,
            call.to_number or UNKNOWN,
            call.direction or UNKNOWN,
        )
    elif event.event == "call_ended":
        logger.info("Call ended: %s (status=%s)", call.call_id, call.call_status)
        if call.transcript:
            logger.info("  Transcript length: %d chars", len(call.transcript))
        if call.recording_url:
            logger.info("  Recording: %s", call.recording_url)
    else:
        logger.info("Call analyzed: %s", call.call_id)
        analysis = call.call_analysis
        if analysis:
            logger.info(
                "  Summary: %s | Sentiment: %s | Successful: %s",
                analysis.call_summary or "N/A",
                analysis.user_sentiment or "N/A",
                "N/A" if analysis.call_successful is None else analysis.call_successful,
            )


def record_call_event(outcome: WebhookOutcome, call_log: CallLog) -> CallLogEntry:
    """Log diagnostics for *outcome* and append it to *call_log*."""
    if outcome.event is not None:
        _log_event_details(outcome.event)
        data: Any = outcome.event.model_dump(exclude_none=True)
    else:
        logger.warning("Webhook validation failed, recording as unknown: %s", outcome.error)
        data = outcome.raw
    return call_log.append(outcome.classification, outcome.call_id, data)
