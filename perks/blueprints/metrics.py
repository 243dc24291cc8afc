"""
Prometheus metrics blueprint for observability.

Exposes /metrics endpoint with HTTP request metrics and checkout counters.
This endpoint should be restricted to internal network or monitoring systems only.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Check if running with several worker processes
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

# HTTP Request Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=registry if not MULTIPROCESS_MODE else None
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=registry if not MULTIPROCESS_MODE else None,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=registry if not MULTIPROCESS_MODE else None
)

# Checkout Metrics
checkout_orders_total = Counter(
    'checkout_orders_total',
    'Orders confirmed by checkout',
    ['mode'],  # points | copay
    registry=registry if not MULTIPROCESS_MODE else None
)

copay_failures_total = Counter(
    'copay_failures_total',
    'Co-pay payments that could not be initiated or verified',
    ['reason'],
    registry=registry if not MULTIPROCESS_MODE else None
)


def setup_metrics_instrumentation(app):
    """
    Setup before_request and after_request hooks for automatic metrics collection.

    Called from the app factory after app creation.
    """

    @app.before_request
    def before_request_metrics():
        g._prometheus_metrics_start_time = time.time()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        start = g.pop('_prometheus_metrics_start_time', None)
        if start is None:
            return response

        endpoint = request.endpoint or 'unknown'
        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(time.time() - start)
        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            http_status=response.status_code
        ).inc()
        http_requests_in_flight.dec()

        return response


@metrics_bp.route('/metrics')
def metrics():
    """
    Prometheus metrics endpoint.

    Not authenticated; restrict it by network rules in production.
    """
    data = generate_latest(registry)
    return Response(data, mimetype=CONTENT_TYPE_LATEST)
