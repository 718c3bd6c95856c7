"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from dental_coach.services.metrics import MAX_BATCH_SIZE, MetricsClient


def _make_client(*, enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}), \
            patch.object(MetricsClient, "_start_flush_thread"):
        return MetricsClient()


def _dims(point) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in point["Dimensions"]}


class TestRecording:
    def test_success_buffers_call_and_latency(self):
        client = _make_client()
        client.record_success("anthropic", "chat_stream", latency_ms=812.0)
        assert [m["MetricName"] for m in client._buffer] == ["Calls", "Latency"]
        assert _dims(client._buffer[0]) == {"Service": "anthropic", "Status": "success"}
        assert client._buffer[1]["Value"] == 812.0

    def test_failure_without_latency_skips_latency_point(self):
        client = _make_client()
        client.record_failure("knowledge_store", "list_active", error_type="OperationalError")
        assert [m["MetricName"] for m in client._buffer] == ["Calls", "Errors"]
        assert _dims(client._buffer[1])["ErrorType"] == "OperationalError"

    def test_failure_with_latency(self):
        client = _make_client()
        client.record_failure("anthropic", "chat_stream", error_type="TimeoutError", latency_ms=60_000)
        assert [m["MetricName"] for m in client._buffer] == ["Calls", "Errors", "Latency"]

    def test_degradation_is_tagged_with_reason(self):
        client = _make_client()
        client.record_degradation("malformed_response")
        (point,) = client._buffer
        assert point["MetricName"] == "Degradations"
        assert _dims(point) == {"Reason": "malformed_response"}


class TestFlush:
    def test_disabled_client_drops_points_without_boto3(self):
        client = _make_client(enabled=False)
        client.record_degradation("context_unavailable")
        assert client.flush() == 0
        assert client._buffer == []
        assert client._cw_client is None

    def test_enabled_client_sends_to_namespace(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()
        client.record_success("anthropic", "chat_stream", latency_ms=5.0)

        assert client.flush() == 2
        kwargs = client._cw_client.put_metric_data.call_args[1]
        assert kwargs["Namespace"] == "DentalCoach"
        assert len(kwargs["MetricData"]) == 2

    def test_large_buffers_are_chunked(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()
        for _ in range(MAX_BATCH_SIZE):
            client.record_degradation("malformed_response")
        client.record_degradation("malformed_response")

        assert client.flush() == MAX_BATCH_SIZE + 1
        assert client._cw_client.put_metric_data.call_count == 2

    def test_cloudwatch_errors_are_logged_not_raised(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")
        client.record_degradation("malformed_response")
        assert client.flush() == 0

    def test_empty_buffer_returns_zero(self):
        assert _make_client(enabled=True).flush() == 0
