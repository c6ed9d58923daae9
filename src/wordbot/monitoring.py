"""Monitoring configuration for the trainer."""
from prometheus_client import Counter, Gauge, start_http_server

# Session metrics
active_sessions = Gauge(
    "wordbot_active_review_sessions",
    "Number of review sessions currently in progress",
)

sessions_started = Counter(
    "wordbot_review_sessions_started_total",
    "Total number of review sessions started",
)

sessions_finished = Counter(
    "wordbot_review_sessions_finished_total",
    "Total number of review sessions that ended",
    ["outcome"],
)

# Attempt metrics
attempts_reported = Counter(
    "wordbot_attempts_reported_total",
    "Total number of review attempts written to the attempt log",
    ["success"],
)

attempt_report_failures = Counter(
    "wordbot_attempt_report_failures_total",
    "Total number of review attempts that could not be written",
)

# Word management metrics
words_added = Counter(
    "wordbot_words_added_total",
    "Total number of word pairs added",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
