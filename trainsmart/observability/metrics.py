"""
Prometheus metrics definitions for trainsmart.

Metrics are organized by category:
- HTTP/API metrics: Request counts, latency
- Gamification metrics: XP, missions, workouts
- Persistence metrics: Remote write failures
- AI metrics: Generation outcomes and latency

Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

import logging
from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP/API Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests received",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# Gamification Metrics
# =============================================================================

xp_granted_total = Counter(
    "xp_granted_total",
    "Total XP granted, including streak bonuses",
    ["source"],  # source: manual/mission
)

missions_completed_total = Counter(
    "missions_completed_total",
    "Weekly missions completed",
    ["mission_id"],
)

workouts_logged_total = Counter(
    "workouts_logged_total",
    "Completed workouts logged",
)

active_sessions = Gauge(
    "active_sessions",
    "User sessions currently held in memory",
)

# =============================================================================
# Persistence Metrics
# =============================================================================

remote_write_failures_total = Counter(
    "remote_write_failures_total",
    "Best-effort remote writes that failed (local state kept)",
    ["operation"],
)

# =============================================================================
# AI Metrics
# =============================================================================

ai_generations_total = Counter(
    "ai_generations_total",
    "AI generation calls by flow and outcome",
    ["flow", "status"],  # status: success/error
)

ai_generation_duration_seconds = Histogram(
    "ai_generation_duration_seconds",
    "AI generation latency in seconds",
    ["flow"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)
