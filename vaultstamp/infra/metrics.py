"""Stamp outcome counters.

The stamping pipeline bumps ``stamp.<status>`` once per handled notification;
``snapshot`` exposes the totals to the health endpoint.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict

from .logging import get_logger

logger = get_logger(__name__)


class MetricsClient:  # pragma: no cover - interface only
    def increment(self, metric: str, value: int = 1) -> None:
        raise NotImplementedError

    def snapshot(self) -> Dict[str, int]:
        raise NotImplementedError


@dataclass
class InMemoryMetricsClient(MetricsClient):
    """Process-local counters; the watcher thread and API share one instance."""

    counters: Counter = field(default_factory=Counter)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def increment(self, metric: str, value: int = 1) -> None:
        with self._lock:
            self.counters[metric] += value
        logger.debug("metrics_increment", extra={"metric": metric, "value": value})

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(sorted(self.counters.items()))


_metrics_singleton: InMemoryMetricsClient | None = None


def get_metrics_client() -> MetricsClient:
    """Return the shared metrics client."""

    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = InMemoryMetricsClient()
    return _metrics_singleton
