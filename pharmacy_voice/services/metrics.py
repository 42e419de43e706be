"""CloudWatch custom metrics with background batching.

Three families of data points are recorded:

* ``ToolCall/*``       one per tool invocation from the voice agent, with
                       the tool name and outcome (``ok``, ``unknown_tool``,
                       ``error``).
* ``Upstream/*``       one per Retell API request, with latency.
* ``WebCall/RateLimited`` one per refused web-call creation.

Data points are buffered under a lock, keeping at most
``MAX_BUFFERED_POINTS`` (oldest dropped first).  When ``METRICS_ENABLED`` is
true a daemon thread pushes the buffer to CloudWatch every
``FLUSH_INTERVAL_SECONDS``; otherwise points are only logged at DEBUG and
the buffer stays capped until a flush discards it.

Usage
-----
>>> from pharmacy_voice.services.metrics import metrics
>>> metrics.record_tool_call("lookup_product", "ok", latency_ms=3.2)
>>> metrics.record_rate_limited("daily")
"""

from __future__ import annotations

import atexit
import logging
import threading
import time
from collections import deque
from datetime import UTC, datetime
from typing import Any

from pharmacy_voice.config import METRICS_ENABLED

logger = logging.getLogger(__name__)

NAMESPACE = "PharmacyVoice"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit
MAX_BUFFERED_POINTS = 10_000


def _datum(name: str, dims: dict[str, str], value: float, unit: str) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dims.items()],
        "Timestamp": datetime.now(UTC),
        "Value": value,
        "Unit": unit,
    }


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self, enabled: bool | None = None) -> None:
        self._enabled = METRICS_ENABLED if enabled is None else enabled
        self._buffer: deque[dict[str, Any]] = deque(maxlen=MAX_BUFFERED_POINTS)
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Recording ────────────────────────────────────────────────────

    def record_tool_call(self, tool: str, outcome: str, latency_ms: float) -> None:
        self._append(_datum("ToolCall/Count", {"Tool": tool, "Outcome": outcome}, 1, "Count"))
        self._append(_datum("ToolCall/Latency", {"Tool": tool}, latency_ms, "Milliseconds"))
        logger.debug("Metric: tool %s %s latency=%.1fms", tool, outcome, latency_ms)

    def record_upstream_success(self, operation: str, latency_ms: float) -> None:
        self._append(
            _datum("Upstream/RequestCount", {"Operation": operation, "Status": "success"}, 1, "Count")
        )
        self._append(_datum("Upstream/Latency", {"Operation": operation}, latency_ms, "Milliseconds"))
        logger.debug("Metric: retell %s success latency=%.1fms", operation, latency_ms)

    def record_upstream_failure(self, operation: str, error_type: str, latency_ms: float = 0) -> None:
        self._append(
            _datum("Upstream/RequestCount", {"Operation": operation, "Status": "failure"}, 1, "Count")
        )
        self._append(_datum("Upstream/ErrorCount", {"ErrorType": error_type}, 1, "Count"))
        logger.debug(
            "Metric: retell %s failure error=%s latency=%.1fms",
            operation, error_type, latency_ms,
        )

    def record_rate_limited(self, scope: str) -> None:
        self._append(_datum("WebCall/RateLimited", {"Scope": scope}, 1, "Count"))

    # ── Flushing ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = list(self._buffer)
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _append(self, metric_data: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(metric_data)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


metrics = MetricsClient()
