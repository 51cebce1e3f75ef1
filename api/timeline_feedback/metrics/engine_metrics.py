"""Prometheus metrics for reaction toggles, event ingestion and grouping queries."""

from prometheus_client import Counter, Histogram

reaction_toggles_total = Counter(
    "timeline_feedback_reaction_toggles_total",
    "Reaction toggles applied, by reaction kind and resulting state",
    ["reaction_type", "state"],
)

events_ingested_total = Counter(
    "timeline_feedback_events_ingested_total",
    "Feedback events accepted into the window index, by event kind",
    ["kind"],
)

rejections_total = Counter(
    "timeline_feedback_rejections_total",
    "Operations rejected by validation, by operation and error code",
    ["operation", "error_code"],
)

query_duration_seconds = Histogram(
    "timeline_feedback_query_duration_seconds",
    "Duration of grouping queries against the window index",
    ["query"],
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1),
)


def record_rejection(operation: str, error_code: str) -> None:
    """Count a rejected operation."""
    rejections_total.labels(operation=operation, error_code=error_code).inc()
