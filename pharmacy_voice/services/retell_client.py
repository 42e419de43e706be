"""HTTP client for the Retell AI REST API.

Only the two calls the backend needs are wrapped: creating a web call (which
returns the access token the browser front end uses to join) and listing
agents.  All requests are authenticated with the API key as a Bearer token.

Retell API docs: https://docs.retellai.com/api-references
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Any

import httpx

from pharmacy_voice.config import RETELL_BASE_URL, RETELL_TIMEOUT_SECONDS, get_retell_api_key
from pharmacy_voice.services.metrics import metrics

logger = logging.getLogger(__name__)

# ── Retry configuration (idempotent reads only) ─────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 0.5


class RetellAPIError(Exception):
    """Raised when a Retell API call fails."""

    def __init__(self, message: str, status_code: int | None = None, *, retryable: bool = False):
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class RetellClient:
    """Thin synchronous wrapper around the Retell REST API.

    ``create_web_call`` is never retried: a POST that timed out may still
    have created a call on Retell's side.  The timeout is surfaced to the
    caller as a retryable ``RetellAPIError`` instead.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url or RETELL_BASE_URL,
            headers={
                "Authorization": f"Bearer {api_key or get_retell_api_key()}",
                "Content-Type": "application/json",
            },
            timeout=timeout or RETELL_TIMEOUT_SECONDS,
        )

    # ── Internal helpers ─────────────────────────────────────────────

    def _send(self, method: str, path: str, json_body: dict[str, Any] | None) -> Any:
        t0 = time.perf_counter()
        operation = f"{method} {path}"
        try:
            response = self._client.request(method, path, json=json_body)
        except httpx.TimeoutException as exc:
            metrics.record_upstream_failure(operation, "timeout", (time.perf_counter() - t0) * 1000)
            raise RetellAPIError(
                f"Retell API timed out on {operation}", retryable=True,
            ) from exc
        except httpx.HTTPError as exc:
            metrics.record_upstream_failure(
                operation, type(exc).__name__, (time.perf_counter() - t0) * 1000,
            )
            raise RetellAPIError(
                f"Could not reach Retell API: {exc}", retryable=True,
            ) from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if response.status_code >= 400:
            metrics.record_upstream_failure(operation, f"{response.status_code // 100}xx", elapsed)
            raise RetellAPIError(
                f"Retell API error {response.status_code}: {response.text}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )
        metrics.record_upstream_success(operation, elapsed)
        return response.json()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        retry: bool = False,
    ) -> Any:
        """Execute a request, retrying retryable failures when *retry* is set."""
        attempts = MAX_RETRIES if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                return self._send(method, path, json_body)
            except RetellAPIError as exc:
                if not exc.retryable or attempt == attempts:
                    raise
                backoff = INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))
                logger.warning(
                    "Retell API attempt %d/%d failed (%s). Retrying in %.1fs…",
                    attempt, attempts, exc, backoff,
                )
                time.sleep(backoff)
        raise AssertionError("unreachable")

    # ── Public API methods ───────────────────────────────────────────

    def create_web_call(self, agent_id: str) -> dict[str, Any]:
        """Create a web call for *agent_id*.

        Returns the raw response, which includes ``call_id``,
        ``access_token`` and ``agent_id``.
        """
        data = self._request(
            "POST",
            "/v2/create-web-call",
            json_body={
                "agent_id": agent_id,
                "metadata": {
                    "source": "pharmacy-voice-backend",
                    "timestamp": datetime.now().astimezone().isoformat(),
                },
            },
        )
        logger.info("Web call created: %s", data.get("call_id"))
        return data

    def list_agents(self) -> list[dict[str, Any]]:
        """List all agents configured on the Retell account."""
        data = self._request("GET", "/list-agents", retry=True)
        return data if isinstance(data, list) else data.get("agents", [])

    def close(self) -> None:
        self._client.close()


# ── Module-level singleton (thread-safe) ────────────────────────────
_client: RetellClient | None = None
_client_lock = threading.Lock()


def get_retell_client() -> RetellClient:
    """Return a module-level RetellClient singleton.

    Raises ``OSError`` when ``RETELL_API_KEY`` is not configured.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = RetellClient()
    return _client
