"""CloudWatch custom metrics for the coach, batched in the background.

Two kinds of data points are emitted:

* **External calls** (``record_success`` / ``record_failure``) for every
  round-trip to Anthropic or the knowledge store: count, latency, errors.
* **Degradations** (``record_degradation``) for the failures the coach absorbs
  silently: an unreachable knowledge store, or a reply that did not match
  the structured contract.  These never reach the user, so the metric is the
  only place they show up.

Points are buffered in memory and pushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS``.  Unless ``METRICS_ENABLED=true`` nothing is sent;
points are only logged at DEBUG.

Usage
-----
>>> from dental_coach.services.metrics import metrics
>>> metrics.record_success("anthropic", "chat_stream", latency_ms=812.0)
>>> metrics.record_degradation("malformed_response")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "DentalCoach"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Buffers metric data points and flushes them to CloudWatch."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
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

    def _point(self, name: str, value: float, unit: str, dims: list[dict[str, str]]) -> None:
        with self._lock:
            self._buffer.append(
                {
                    "MetricName": name,
                    "Dimensions": dims,
                    "Timestamp": datetime.now(UTC),
                    "Value": value,
                    "Unit": unit,
                }
            )

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a completed external call."""
        self._point("Calls", 1, "Count", _dims(Service=service, Status="success"))
        self._point(
            "Latency", latency_ms, "Milliseconds",
            _dims(Service=service, Operation=operation),
        )
        logger.debug("Metric: %s.%s ok in %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed external call.  Latency is only kept when known."""
        self._point("Calls", 1, "Count", _dims(Service=service, Status="failure"))
        self._point("Errors", 1, "Count", _dims(Service=service, ErrorType=error_type))
        if latency_ms > 0:
            self._point(
                "Latency", latency_ms, "Milliseconds",
                _dims(Service=service, Operation=operation),
            )
        logger.debug(
            "Metric: %s.%s failed (%s) after %.1fms",
            service, operation, error_type, latency_ms,
        )

    def record_degradation(self, reason: str) -> None:
        """Record a failure that was absorbed instead of surfaced."""
        self._point("Degradations", 1, "Count", _dims(Reason=reason))
        logger.debug("Metric: degradation %s", reason)

    # ── Flushing ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered points to CloudWatch.  Returns the number sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []

        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Metrics disabled, dropping %d points", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for start in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[start : start + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metric points to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


metrics = MetricsClient()
