"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"enso_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"enso_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

REFERENCE_DETECTIONS = Counter(
	"enso_reference_detections_total",
	"Reference detections by resulting type and trigger",
	["type", "explicit"],
)

REFERENCE_LOOKUPS = Counter(
	"enso_reference_lookups_total",
	"Reference resolution calls by type and outcome",
	["type", "outcome"],
)

REFERENCE_LATENCY = Histogram(
	"enso_reference_lookup_duration_seconds",
	"Reference search latency in seconds",
	["type"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

PRESENCE_UPDATES = Counter(
	"enso_presence_updates_total",
	"Presence upserts accepted",
	["created"],
)

PRESENCE_HEARTBEATS = Counter(
	"enso_presence_heartbeats_total",
	"Presence heartbeats by outcome",
	["outcome"],
)

PRESENCE_REMOVALS = Counter(
	"enso_presence_removals_total",
	"Explicit presence removals by outcome",
	["outcome"],
)

PRESENCE_REJECTS = Counter(
	"enso_presence_rejects_total",
	"Presence mutations rejected",
	["reason"],
)

PRESENCE_CLEANUP_DELETES = Counter(
	"enso_presence_cleanup_deleted_total",
	"Presence records deleted by the stale sweeper",
)

# Locations are client supplied, so nothing here is labelled by location.
PRESENCE_LISTING_SIZE = Histogram(
	"enso_presence_listing_size",
	"Active viewers returned per presence listing",
	buckets=(0, 1, 2, 5, 10, 25, 50, 100),
)


def observe_request(route: str, method: str, status: int, latency_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(latency_seconds)


def inc_reference_detection(ref_type: str, explicit: bool) -> None:
	REFERENCE_DETECTIONS.labels(type=ref_type, explicit="true" if explicit else "false").inc()


def inc_reference_lookup(ref_type: str, outcome: str) -> None:
	REFERENCE_LOOKUPS.labels(type=ref_type, outcome=outcome).inc()


def observe_reference_latency(ref_type: str, latency_seconds: float) -> None:
	REFERENCE_LATENCY.labels(type=ref_type).observe(latency_seconds)


def inc_presence_update(created: bool) -> None:
	PRESENCE_UPDATES.labels(created="true" if created else "false").inc()


def inc_presence_heartbeat(outcome: str) -> None:
	PRESENCE_HEARTBEATS.labels(outcome=outcome).inc()


def inc_presence_removal(outcome: str) -> None:
	PRESENCE_REMOVALS.labels(outcome=outcome).inc()


def inc_presence_reject(reason: str) -> None:
	PRESENCE_REJECTS.labels(reason=reason).inc()


def observe_presence_listing(count: int) -> None:
	PRESENCE_LISTING_SIZE.observe(count)
