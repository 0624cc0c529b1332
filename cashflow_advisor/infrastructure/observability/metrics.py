"""Prometheus metrics for decision outcomes, simulation risk and profile churn"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# Decision metrics
decision_counter = Counter(
    "cashflow_decision_total",
    "Spend decisions made",
    ["kind", "outcome"],  # quick_spend: proceed | caution | hold; full_purchase: low | medium | high | postpone
)

# Simulation metrics
simulation_counter = Counter(
    "cashflow_simulation_total",
    "Purchase simulations by risk level",
    ["risk"],  # low | medium | high
)

# Profile metrics
profile_recompute_counter = Counter(
    "cashflow_profile_recompute_total",
    "Financial profile recomputations",
)

health_score_histogram = Histogram(
    "cashflow_health_score",
    "Computed financial health scores",
    buckets=[20, 40, 60, 80, 100],
)

# Best-effort enrichment (goal impact, health score, audit, counters)
enrichment_failure_counter = Counter(
    "enrichment_failures_total",
    "Optional enrichment steps that failed and were skipped",
    ["step"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_decision(kind: str, outcome: str) -> None:
    decision_counter.labels(kind=kind, outcome=outcome).inc()


def record_simulation(risk: str) -> None:
    simulation_counter.labels(risk=risk).inc()


def record_health_score(score: Decimal) -> None:
    health_score_histogram.observe(float(score))
