"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"strivon_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"strivon_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MEDIA_INGEST_TOTAL = Counter(
	"strivon_media_ingest_total",
	"Quarantine finalize events handled by the ingestion listener",
	["result"],
)

MEDIA_INGEST_LATENCY_SECONDS = Histogram(
	"strivon_media_ingest_latency_seconds",
	"Ingestion listener latency in seconds",
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MEDIA_DECISIONS_TOTAL = Counter(
	"strivon_media_decisions_total",
	"Media moderation decisions applied",
	["source", "status"],
)

MEDIA_STORAGE_FAILURES_TOTAL = Counter(
	"strivon_media_storage_failures_total",
	"Object store operations that failed and were tolerated or surfaced",
	["op"],
)

MODERATION_QUEUE_BACKLOG = Gauge(
	"strivon_moderation_queue_backlog",
	"Media items awaiting human review",
)

MODERATION_ADMIN_ACTIONS_TOTAL = Counter(
	"strivon_moderation_admin_actions_total",
	"Admin moderation actions by outcome",
	["action", "result"],
)

BUILD_INFO = Gauge(
	"strivon_build_info",
	"Running build of the moderation service",
	["service", "commit", "env"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route, method, str(status)).inc()
	REQUEST_LATENCY.labels(route, method).observe(elapsed_seconds)


def inc_ingest(result: str) -> None:
	MEDIA_INGEST_TOTAL.labels(result).inc()


def inc_decision(source: str, status: str) -> None:
	MEDIA_DECISIONS_TOTAL.labels(source, status).inc()


def inc_storage_failure(op: str) -> None:
	MEDIA_STORAGE_FAILURES_TOTAL.labels(op).inc()


def set_queue_backlog(size: int) -> None:
	MODERATION_QUEUE_BACKLOG.set(size)


def inc_admin_action(action: str, result: str) -> None:
	MODERATION_ADMIN_ACTIONS_TOTAL.labels(action, result).inc()


def set_build_info(service: str, commit: str, env: str) -> None:
	BUILD_INFO.labels(service, commit, env).set(1)
