from __future__ import annotations

from topology_publisher import metrics as metrics_module
from topology_publisher.metrics import RunMetrics


def _value(run: RunMetrics, name: str, labels=None):
    return run.registry.get_sample_value(name, labels or {})


def test_success_sets_gauges():
    run = RunMetrics()

    run.record_success(switch_records=3, payload_bytes=120)

    assert _value(run, "topology_publisher_switch_records") == 3
    assert _value(run, "topology_publisher_payload_bytes") == 120
    assert _value(run, "topology_publisher_last_success_timestamp_seconds") > 0
    assert _value(run, "topology_publisher_run_duration_seconds") >= 0


def test_failure_counts_by_step():
    run = RunMetrics()

    run.record_failure("submit_update")

    assert _value(run, "topology_publisher_run_failures_total", {"step": "submit_update"}) == 1


def test_push_is_skipped_without_gateway(monkeypatch):
    pushed = []
    monkeypatch.setattr(metrics_module, "push_to_gateway", lambda *a, **kw: pushed.append(a))

    RunMetrics().push(None)

    assert pushed == []


def test_push_to_gateway(monkeypatch):
    pushed = []
    monkeypatch.setattr(
        metrics_module,
        "push_to_gateway",
        lambda gateway, **kwargs: pushed.append((gateway, kwargs["job"])),
    )

    RunMetrics().push("pushgateway.monitoring:9091")

    assert pushed == [("pushgateway.monitoring:9091", "topology_publisher")]
