"""Route tool calls from the voice agent to the pharmacy tools.

Retell custom functions post ``{"name", "args", "call"}``; older agent
configurations post ``{"tool_name", "arguments"}``.  :class:`ToolInvocation`
normalises both into one shape before dispatch.

The dispatcher never raises: whatever happens inside a tool, the agent gets
a line it can say.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field, ValidationError, model_validator

from pharmacy_voice.services.metrics import metrics
from pharmacy_voice.state import PharmacyState
from pharmacy_voice.tools.pharmacy import build_pharmacy_tools

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_REPLY = (
    "I'm sorry, I'm not able to help with that request. "
    "Would you like me to connect you with one of our pharmacy staff?"
)
FALLBACK_REPLY = (
    "I'm sorry, I'm having trouble with that right now. "
    "Would you like me to transfer you to one of our staff who can help?"
)


class ToolInvocation(BaseModel):
    """A single tool call in canonical form."""

    name: str = Field(..., min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)
    call_id: str = "unknown"

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        name = data.get("name") or data.get("tool_name")
        args = data.get("args")
        if args is None:
            args = data.get("arguments")
        if isinstance(args, str):
            # Some agent configurations send the arguments JSON-encoded
            try:
                args = json.loads(args) if args.strip() else {}
            except json.JSONDecodeError:
                pass  # left as a string so field validation rejects it
        if args is None:
            args = {}

        call = data.get("call")
        call_id = data.get("call_id")
        if isinstance(call, dict) and call.get("call_id"):
            call_id = call["call_id"]

        return {"name": name, "args": args, "call_id": call_id or "unknown"}


class ToolDispatcher:
    """Name → tool routing over one :class:`PharmacyState`."""

    def __init__(self, state: PharmacyState) -> None:
        self.state = state
        self._tools: dict[str, BaseTool] = {t.name: t for t in build_pharmacy_tools(state)}

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    @staticmethod
    def _tool_input(tool: BaseTool, invocation: ToolInvocation) -> dict[str, Any]:
        """Keep only the arguments *tool* accepts, plus the injected call id."""
        schema = tool.args_schema
        accepted = set(getattr(schema, "model_fields", None) or getattr(schema, "__fields__", {}))
        tool_input = {k: v for k, v in invocation.args.items() if k in accepted}
        dropped = set(invocation.args) - accepted
        if dropped:
            logger.debug("Ignoring unexpected args for %s: %s", tool.name, sorted(dropped))
        if "call_id" in accepted:
            tool_input["call_id"] = invocation.call_id
        return tool_input

    def dispatch(self, invocation: ToolInvocation) -> str:
        """Run *invocation* and return the line for the agent to speak."""
        tool = self._tools.get(invocation.name)
        if tool is None:
            logger.warning(
                "Unknown tool %r requested on call %s", invocation.name, invocation.call_id,
            )
            metrics.record_tool_call(invocation.name, "unknown_tool", 0)
            return UNKNOWN_TOOL_REPLY

        logger.info("Tool %s called on call %s", invocation.name, invocation.call_id)
        t0 = time.perf_counter()
        try:
            result = tool.invoke(self._tool_input(tool, invocation))
        except ValidationError as exc:
            logger.warning("Invalid arguments for %s: %s", invocation.name, exc)
            outcome, result = "invalid_args", FALLBACK_REPLY
        except Exception:
            logger.exception("Tool %s failed", invocation.name)
            outcome, result = "error", FALLBACK_REPLY
        else:
            outcome = "ok"
        metrics.record_tool_call(invocation.name, outcome, (time.perf_counter() - t0) * 1000)
        return str(result)

    def dispatch_payload(self, payload: Any) -> str:
        """Normalise a raw request body and dispatch it."""
        try:
            invocation = ToolInvocation.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Malformed tool call payload: %s", exc)
            return FALLBACK_REPLY
        return self.dispatch(invocation)
