"""
Semantic test: console metrics.

Invariant:
Counters live in a private registry. Pushing is skipped without a
Pushgateway and a failed push never raises.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from urllib.error import URLError

from dispatch_console.runtime import metrics as metrics_module
from dispatch_console.runtime.metrics import ConsoleMetrics, parse_grouping_key


def test_counters_use_private_registry() -> None:
    first = ConsoleMetrics(env={})
    second = ConsoleMetrics(env={})

    first.count_request("list_orders", "ok")
    first.count_request("list_orders", "ok")
    first.count_live_event("order:created", "refetch")
    first.count_refresh("counts")

    assert first.registry.get_sample_value(
        "dispatch_gateway_requests_total", {"operation": "list_orders", "outcome": "ok"}
    ) == 2.0
    assert first.registry.get_sample_value(
        "dispatch_live_events_total", {"event": "order:created", "outcome": "refetch"}
    ) == 1.0
    assert first.registry.get_sample_value("dispatch_refreshes_total", {"kind": "counts"}) == 1.0
    assert second.registry.get_sample_value(
        "dispatch_gateway_requests_total", {"operation": "list_orders", "outcome": "ok"}
    ) is None


def test_grouping_key_parsing() -> None:
    assert parse_grouping_key('{"console": "nairobi-1", "n": 1}') == {"console": "nairobi-1"}
    assert parse_grouping_key("not json") == {}
    assert parse_grouping_key('["console"]') == {}
    assert parse_grouping_key(None) == {}


def test_push_disabled_without_gateway() -> None:
    metrics = ConsoleMetrics(env={})
    assert not metrics.is_enabled()
    assert metrics.push_all(job="dispatch-console-test") is False


def test_failed_push_is_reported_not_raised(monkeypatch) -> None:
    calls = []

    def _failing_push(gateway, *, job, registry, grouping_key):
        calls.append((gateway, job, grouping_key))
        raise URLError("connection refused")

    monkeypatch.setattr(metrics_module, "push_to_gateway", _failing_push)
    metrics = ConsoleMetrics(
        env={
            "PROMETHEUS_PUSHGATEWAY_URL": "http://pushgateway:9091",
            "PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON": '{"console": "nairobi-1"}',
        }
    )

    assert metrics.push_all(job="dispatch-console-watch") is False
    assert calls == [("http://pushgateway:9091", "dispatch-console-watch", {"console": "nairobi-1"})]
