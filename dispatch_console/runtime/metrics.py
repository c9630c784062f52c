from __future__ import annotations

import json
import logging
import os
from typing import Mapping

from prometheus_client import CollectorRegistry, Counter, push_to_gateway

LOGGER = logging.getLogger(__name__)

PUSHGATEWAY_URL_ENV = "PROMETHEUS_PUSHGATEWAY_URL"
GROUPING_KEY_ENV = "PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON"


def parse_grouping_key(raw: str | None) -> dict[str, str]:
    """Parse a JSON object of string labels; anything else yields {}."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("Ignoring invalid Pushgateway grouping key", extra={"env": GROUPING_KEY_ENV})
        return {}
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}


class ConsoleMetrics:
    """Counters for gateway traffic, live events and refreshes.

    Each instance owns its registry, so several consoles (or tests) in one
    process never collide. ``push_all`` sends the registry to the
    Pushgateway named by ``PROMETHEUS_PUSHGATEWAY_URL``, grouped by the
    labels in ``PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON``, e.g.
    ``{"console": "nairobi-1"}``. A failed push is logged and never fails
    the command that produced the metrics.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        env = os.environ if env is None else env
        self.registry = registry if registry is not None else CollectorRegistry()
        self.pushgateway_url = env.get(PUSHGATEWAY_URL_ENV) or None
        self.grouping_key = parse_grouping_key(env.get(GROUPING_KEY_ENV))

        self._requests = Counter(
            "dispatch_gateway_requests",
            "Order gateway requests by operation and outcome.",
            labelnames=("operation", "outcome"),
            registry=self.registry,
        )
        self._live_events = Counter(
            "dispatch_live_events",
            "Push events received by the live update channel.",
            labelnames=("event", "outcome"),
            registry=self.registry,
        )
        self._refreshes = Counter(
            "dispatch_refreshes",
            "Working-set and status-count refreshes issued.",
            labelnames=("kind",),
            registry=self.registry,
        )

    def is_enabled(self) -> bool:
        return self.pushgateway_url is not None

    def count_request(self, operation: str, outcome: str) -> None:
        self._requests.labels(operation=operation, outcome=outcome).inc()

    def count_live_event(self, event: str, outcome: str) -> None:
        self._live_events.labels(event=event, outcome=outcome).inc()

    def count_refresh(self, kind: str) -> None:
        self._refreshes.labels(kind=kind).inc()

    def push_all(self, *, job: str) -> bool:
        """Push the registry once. Returns True if the push went out."""
        if self.pushgateway_url is None:
            return False

        try:
            push_to_gateway(
                self.pushgateway_url,
                job=job,
                registry=self.registry,
                grouping_key=self.grouping_key,
            )
        except OSError as exc:
            LOGGER.warning(
                "Metrics push failed",
                extra={"job": job, "gateway": self.pushgateway_url, "error": repr(exc)},
            )
            return False

        LOGGER.info("Metrics pushed", extra={"job": job, "grouping_key": self.grouping_key})
        return True
