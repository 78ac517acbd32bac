"""
Prometheus metrics for the live tracker.
Counters and histograms for probes, feed fetches and tracking passes.
"""
from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
HTTP_REQUESTS = Counter(
    "lw_http_requests_total",
    "Total outbound HTTP requests",
    ["client", "operation", "status"],
)
FEED_FETCHES = Counter(
    "lw_feed_fetches_total",
    "Channel feed fetches",
    ["outcome"],
)
THUMBNAIL_PROBES = Counter(
    "lw_thumbnail_probes_total",
    "Live thumbnail probes by verdict",
    ["verdict"],
)
VIDEO_STATE_CHECKS = Counter(
    "lw_video_state_checks_total",
    "Authoritative YouTube Data API video checks by status",
    ["status"],
)
CHANNEL_RESOLUTIONS = Counter(
    "lw_channel_resolutions_total",
    "Channel URL resolutions",
    ["source"],
)
CANDIDATE_DECISIONS = Counter(
    "lw_candidate_decisions_total",
    "Which path the candidate state machine ended on",
    ["path"],
)

# ── Histograms ──────────────────────────────────────────────────────────
HTTP_LATENCY = Histogram(
    "lw_http_latency_seconds",
    "Outbound HTTP request latency in seconds",
    ["client"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
TRACKING_PASS = Histogram(
    "lw_tracking_pass_seconds",
    "Duration of a single channel tracking pass",
    ["outcome"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
CHANNEL_ID_CACHE_SIZE = Gauge(
    "lw_channel_id_cache_size",
    "Entries in the channel URL to channel ID cache",
)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
