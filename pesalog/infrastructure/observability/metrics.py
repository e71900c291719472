"""Prometheus metrics for ingestion outcomes, dialect coverage and debt events"""

from prometheus_client import Counter, Histogram

# Ingestion metrics
message_outcome_counter = Counter(
    "pesalog_messages_total",
    "Messages seen by the ingestion pipeline",
    ["outcome"],  # not_financial | failed_transaction_skipped | parse_failed | duplicate | processed
)

dialect_match_counter = Counter(
    "pesalog_dialect_matches_total",
    "Successful dialect matches",
    ["kind"],
)

import_duration_histogram = Histogram(
    "pesalog_import_batch_seconds",
    "Historical import / poll batch duration",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

# Debt ledger metrics
debt_event_counter = Counter(
    "pesalog_debt_events_total",
    "Debt ledger events applied",
    ["event"],  # draw | repayment | repayment_dropped | manual_payment | overdue
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_outcome(outcome: str, dialect: str | None = None) -> None:
    """Record one pipeline outcome, plus the matching dialect when one parsed"""
    message_outcome_counter.labels(outcome=outcome).inc()
    if dialect:
        dialect_match_counter.labels(kind=dialect).inc()
