"""Prometheus metrics for robbery outcomes, wealth movement and side-effect health"""

from prometheus_client import Counter, Histogram

# Robbery metrics
robbery_counter = Counter(
    "kingpin_robbery_total",
    "Total robbery attempts committed",
    ["outcome"],  # success | failure
)

wealth_stolen_histogram = Histogram(
    "kingpin_wealth_stolen",
    "Net wealth moved by successful robberies",
    buckets=[100, 1_000, 10_000, 100_000, 1_000_000, 10_000_000],
)

insurance_saved_counter = Counter(
    "kingpin_insurance_saved_total",
    "Wealth kept by defenders thanks to insurance",
    ["source"],  # policy | housing
)

item_theft_counter = Counter(
    "kingpin_item_theft_total",
    "Equipped items stolen during robberies",
    ["destination"],  # inventory | escrow | failed
)

precheck_rejection_counter = Counter(
    "kingpin_precheck_rejections_total",
    "Robbery attempts rejected before any mutation",
    ["reason"],
)

transaction_failure_counter = Counter(
    "kingpin_transaction_failures_total",
    "Robbery transactions rolled back",
)

insurance_premium_counter = Counter(
    "kingpin_insurance_premiums_total",
    "Insurance purchases and daily premium charges",
    ["outcome"],  # purchase | paid | lapsed
)

# Side-effect metrics
side_effect_failure_counter = Counter(
    "side_effect_failures_total",
    "Best-effort side effects that failed after commit",
    ["effect"],
)

collaborator_latency_histogram = Histogram(
    "collaborator_latency_seconds",
    "Leaderboard/progress/notification/feed response time",
    ["collaborator"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_robbery(success: bool, net_stolen: int, insurance_saved: int, insurance_source: str | None) -> None:
    """Record committed robbery metrics"""
    robbery_counter.labels(outcome="success" if success else "failure").inc()

    if success and net_stolen > 0:
        wealth_stolen_histogram.observe(net_stolen)

    if insurance_saved > 0:
        insurance_saved_counter.labels(source=insurance_source or "policy").inc(insurance_saved)
