from __future__ import annotations

"""
Prometheus metrics for a publisher run.

The job is short-lived, so metrics live in a per-run registry and are
pushed to a Pushgateway at the end of the run (when one is configured):

  - topology_publisher_switch_records
  - topology_publisher_payload_bytes
  - topology_publisher_run_duration_seconds
  - topology_publisher_last_success_timestamp_seconds
  - topology_publisher_run_failures_total{step}
"""

import time
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

JOB_NAME = "topology_publisher"

logger = structlog.get_logger("metrics")


class RunMetrics:
    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._started = time.perf_counter()

        self.switch_records = Gauge(
            "topology_publisher_switch_records",
            "Number of switch records published in the last run",
            registry=self.registry,
        )
        self.payload_bytes = Gauge(
            "topology_publisher_payload_bytes",
            "Size of the published topology payload in bytes (before base64)",
            registry=self.registry,
        )
        self.run_duration = Gauge(
            "topology_publisher_run_duration_seconds",
            "Wall-clock duration of the last run",
            registry=self.registry,
        )
        self.last_success = Gauge(
            "topology_publisher_last_success_timestamp_seconds",
            "Unix time of the last successful run",
            registry=self.registry,
        )
        self.failures = Counter(
            "topology_publisher_run_failures",
            "Number of failed runs, by failed step",
            labelnames=("step",),
            registry=self.registry,
        )

    def record_success(self, switch_records: int, payload_bytes: int) -> None:
        self.switch_records.set(switch_records)
        self.payload_bytes.set(payload_bytes)
        self.last_success.set_to_current_time()
        self._observe_duration()

    def record_failure(self, step: str) -> None:
        self.failures.labels(step=step).inc()
        self._observe_duration()

    def _observe_duration(self) -> None:
        self.run_duration.set(time.perf_counter() - self._started)

    def push(self, gateway: Optional[str], *, grouping_key: Optional[dict] = None) -> None:
        """
        Push the registry to a Pushgateway. A failed push is logged and
        otherwise ignored; it never changes the outcome of the run.
        """
        if not gateway:
            return
        try:
            push_to_gateway(
                gateway,
                job=JOB_NAME,
                registry=self.registry,
                grouping_key=grouping_key,
            )
            logger.info("metrics_pushed", gateway=gateway)
        except Exception as exc:  # pragma: no cover - network issues
            logger.warning("metrics_push_failed", gateway=gateway, error=str(exc))
