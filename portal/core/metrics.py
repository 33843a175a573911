"""Application metrics (Prometheus).

One inventory of everything the portal measures. Modules import the
metric they own and increment it at the point of action; /metrics
exposes the current values for scraping.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Training metrics
# ---------------------------------------------------------------------------

EXAM_SUBMISSIONS = Counter(
    "exam_submissions_total",
    "Scored exam submissions",
    ["result", "trigger"],  # result: passed|failed, trigger: learner|timeout
)

ACTIVE_EXAM_SESSIONS = Gauge(
    "exam_sessions_active",
    "Exam sessions currently held in this process",
)

LESSON_COMPLETIONS = Counter(
    "lesson_completions_total",
    "Lessons newly marked complete",
)

STORE_WRITE_FAILURES = Counter(
    "store_write_failures_total",
    "Best-effort store writes that failed and were only logged",
    ["operation"],  # progress|audit_log|note|exam_attempt
)

TOKEN_BLACKLIST_CHECKS = Counter(
    "token_blacklist_checks_total",
    "Token blacklist lookups by result",
    ["result"],  # "revoked" or "valid"
)
