"""Prometheus metrics definitions for ossclient.

All metrics use the ``ossclient_`` prefix for namespace isolation. They are
registered in the global ``prometheus_client`` registry only when
``init_metrics()`` is called (``ClientConfig.metrics.enabled``); until then
the module-level references stay ``None`` and ``observe_request`` is a no-op.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# Request counter and latency  (labels: method, status)
# ---------------------------------------------------------------------------
requests_total: Counter | None = None
request_duration_seconds: Histogram | None = None

# ---------------------------------------------------------------------------
# Byte counters
# ---------------------------------------------------------------------------
bytes_sent_total: Counter | None = None
bytes_received_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call more than once; collectors are registered only on the
    first call.
    """
    global _initialized
    global requests_total, request_duration_seconds
    global bytes_sent_total, bytes_received_total

    if _initialized:
        return

    requests_total = Counter(
        "ossclient_requests_total",
        "Total OSS requests by method and response status",
        ["method", "status"],
    )

    request_duration_seconds = Histogram(
        "ossclient_request_duration_seconds",
        "OSS request latency until response headers are received",
        ["method"],
    )

    bytes_sent_total = Counter(
        "ossclient_bytes_sent_total",
        "Total bytes sent in request bodies",
    )

    bytes_received_total = Counter(
        "ossclient_bytes_received_total",
        "Total bytes received in response bodies",
    )

    _initialized = True


def observe_request(method: str, status: int | str, duration: float, sent: int = 0) -> None:
    """Record one completed request. No-op when metrics are not initialised."""
    if not _initialized:
        return
    requests_total.labels(method=method, status=str(status)).inc()
    request_duration_seconds.labels(method=method).observe(duration)
    if sent > 0:
        bytes_sent_total.inc(sent)


def observe_received(size: int) -> None:
    """Record response body bytes. No-op when metrics are not initialised."""
    if _initialized and size > 0:
        bytes_received_total.inc(size)
