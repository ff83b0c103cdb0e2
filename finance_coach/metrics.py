"""Prometheus counters for the analytics engines.

Counters live on the default registry and are exposed by the ``/metrics``
route. Label values are bounded (engine names, error codes, rule slugs).
"""

from __future__ import annotations

from prometheus_client import Counter

engine_runs = Counter(
    "finance_coach_engine_runs_total",
    "Analytics engine invocations",
    labelnames=("engine",),
)
engine_errors = Counter(
    "finance_coach_engine_errors_total",
    "Analytics engine invocations rejected with a domain error",
    labelnames=("engine", "code"),
)
insights_generated = Counter(
    "finance_coach_insights_generated_total",
    "Insights produced by each rule before ranking",
    labelnames=("rule",),
)


def prime_metrics() -> None:
    """Initialize label series so they appear in /metrics output before first use."""
    for engine in ("subscriptions", "insights", "goals", "rollups"):
        engine_runs.labels(engine=engine)
