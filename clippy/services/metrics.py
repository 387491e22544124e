"""CloudWatch custom metrics emitter with background batching.

Publishes per-call metrics (count, latency, errors) for every external
dependency the chat service talks to: the model provider, the weather
API and the holiday calendar feed.

* Data points are collected in a thread-safe in-memory buffer.
* When ``METRICS_ENABLED=true`` a daemon thread flushes the buffer to
  CloudWatch every ``FLUSH_INTERVAL_SECONDS``; otherwise data points are
  only logged at DEBUG level.
* Each ``put_metric_data`` call carries at most ``MAX_BATCH_SIZE`` points.

>>> from clippy.services.metrics import metrics
>>> with metrics.track("weatherapi", "GET /current.json"):
...     response = client.get(...)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "Clippy"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


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

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful external call."""
        self._append(
            _datum("ExternalAPI/RequestCount", {"Service": service, "Status": "success"}, 1, "Count"),
            _datum(
                "ExternalAPI/Latency",
                {"Service": service, "Operation": operation},
                latency_ms,
                "Milliseconds",
            ),
        )
        logger.debug("Metric: %s %s success latency=%.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed external call."""
        points = [
            _datum("ExternalAPI/RequestCount", {"Service": service, "Status": "failure"}, 1, "Count"),
            _datum("ExternalAPI/ErrorCount", {"Service": service, "ErrorType": error_type}, 1, "Count"),
        ]
        if latency_ms > 0:
            points.append(
                _datum(
                    "ExternalAPI/Latency",
                    {"Service": service, "Operation": operation},
                    latency_ms,
                    "Milliseconds",
                )
            )
        self._append(*points)
        logger.debug(
            "Metric: %s %s failure error=%s latency=%.1fms",
            service, operation, error_type, latency_ms,
        )

    @contextmanager
    def track(self, service: str, operation: str) -> Iterator[None]:
        """Time the wrapped block and record it as a success or a failure.

        Exceptions are recorded and re-raised unchanged.  Works around
        ``await`` expressions too, since it only measures wall time.
        """
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            self.record_failure(service, operation, type(exc).__name__, latency_ms=elapsed)
            raise
        self.record_success(service, operation, (time.perf_counter() - t0) * 1000)

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
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

    # ── Internal ──────────────────────────────────────────────────────

    def _append(self, *points: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.extend(points)

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


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
