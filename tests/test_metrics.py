"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock

from pharmacy_voice.services.metrics import MAX_BUFFERED_POINTS, MetricsClient


def _dims(metric: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


class TestMetricsRecording:
    def test_tool_call_records_count_and_latency(self):
        client = MetricsClient(enabled=False)
        client.record_tool_call("lookup_product", "ok", latency_ms=2.5)
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"ToolCall/Count", "ToolCall/Latency"}
        count = next(m for m in client._buffer if m["MetricName"] == "ToolCall/Count")
        assert _dims(count) == {"Tool": "lookup_product", "Outcome": "ok"}

    def test_upstream_failure_records_error_type(self):
        client = MetricsClient(enabled=False)
        client.record_upstream_failure("POST /v2/create-web-call", "timeout")
        error = next(m for m in client._buffer if m["MetricName"] == "Upstream/ErrorCount")
        assert _dims(error)["ErrorType"] == "timeout"

    def test_rate_limited_scope(self):
        client = MetricsClient(enabled=False)
        client.record_rate_limited("daily")
        assert len(client._buffer) == 1
        assert _dims(client._buffer[0]) == {"Scope": "daily"}

    def test_buffer_is_capped_without_flushing(self):
        client = MetricsClient(enabled=False)
        for _ in range(MAX_BUFFERED_POINTS):
            client.record_tool_call("lookup_product", "ok", latency_ms=1.0)
        assert len(client._buffer) == MAX_BUFFERED_POINTS
        # oldest points go first; the newest is the last latency sample
        assert client._buffer[-1]["MetricName"] == "ToolCall/Latency"


class TestMetricsFlush:
    def test_flush_when_disabled_sends_nothing_and_clears(self):
        client = MetricsClient(enabled=False)
        client.record_upstream_success("GET /list-agents", latency_ms=50.0)
        assert client.flush() == 0
        assert len(client._buffer) == 0

    def test_flush_when_enabled_calls_put_metric_data(self):
        client = MetricsClient(enabled=False)
        client._enabled = True  # skip the background thread
        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_tool_call("create_order", "ok", latency_ms=4.0)
        assert client.flush() == 2
        call_args = mock_cw.put_metric_data.call_args
        assert call_args[1]["Namespace"] == "PharmacyVoice"
        assert len(call_args[1]["MetricData"]) == 2

    def test_flush_empty_buffer_returns_zero(self):
        assert MetricsClient(enabled=False).flush() == 0
