"""
Prometheus metrics definitions for the API.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Video job metrics
video_jobs_submitted_total = Counter(
    'video_jobs_submitted_total',
    'Total video jobs accepted for generation',
    ['duration_seconds']
)

video_jobs_rejected_total = Counter(
    'video_jobs_rejected_total',
    'Total job submissions rejected before any debit',
    ['reason']
)

video_jobs_completed_total = Counter(
    'video_jobs_completed_total',
    'Total video jobs reaching a terminal state',
    ['status']
)

credits_refunded_total = Counter(
    'credits_refunded_total',
    'Total credits returned to users after failed jobs',
    ['reason']
)

# Provider metrics
provider_requests_total = Counter(
    'provider_requests_total',
    'Total external provider requests',
    ['provider', 'operation']
)

provider_failures_total = Counter(
    'provider_failures_total',
    'Total external provider failures',
    ['provider', 'operation']
)

provider_latency_seconds = Histogram(
    'provider_latency_seconds',
    'External provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

# Payment metrics
webhook_events_total = Counter(
    'webhook_events_total',
    'Total payment webhook events received',
    ['provider', 'outcome']
)

credits_purchased_total = Counter(
    'credits_purchased_total',
    'Total credits granted by paid payments'
)
