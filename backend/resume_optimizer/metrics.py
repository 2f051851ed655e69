"""Prometheus instruments for the HTTP layer and the optimizer."""
from prometheus_client import Counter, Histogram

HTTP_REQUESTS = Counter("http_requests_total", "Total HTTP requests", ["route", "method", "status"])
HTTP_LATENCY = Histogram("http_request_latency_seconds", "HTTP request latency seconds", ["route", "method"])
RATE_LIMITED = Counter("http_rate_limited_total", "Requests rejected by the inbound rate limiter", ["limiter"])
