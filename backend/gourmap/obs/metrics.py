"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"gourmap_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"gourmap_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SEARCH_QUERIES = Counter(
	"gourmap_search_queries_total",
	"Search and timeline queries executed",
	["kind"],
)

SEARCH_LATENCY = Histogram(
	"gourmap_search_latency_seconds",
	"Search and timeline latency in seconds",
	["kind"],
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0),
)

SEARCH_RESULTS = Histogram(
	"gourmap_search_results",
	"Items returned per page",
	["kind"],
	buckets=(0, 1, 5, 10, 20, 50),
)

KEYWORD_MATCHES = Counter(
	"gourmap_keyword_matches_total",
	"Keyword resolution outcomes",
	["outcome"],
)

SUGGESTIONS_INJECTED = Counter(
	"gourmap_suggestions_injected_total",
	"Cold-start suggestion blocks attached to a timeline page",
	["timeline"],
)

UPSTREAM_FAILURES = Counter(
	"gourmap_upstream_failures_total",
	"Store calls that failed and surfaced as upstream_unavailable",
	["collaborator"],
)


def observe_request(route: str, method: str, status: int, latency_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(latency_seconds)


def inc_search_query(kind: str) -> None:
	SEARCH_QUERIES.labels(kind=kind).inc()


def observe_search_latency(kind: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(kind=kind).observe(latency_seconds)


def observe_search_results(kind: str, count: int) -> None:
	SEARCH_RESULTS.labels(kind=kind).observe(count)


def inc_keyword_match(matched: bool) -> None:
	KEYWORD_MATCHES.labels(outcome="matched" if matched else "free_text").inc()


def inc_suggestion_injected(timeline: str) -> None:
	SUGGESTIONS_INJECTED.labels(timeline=timeline).inc()


def inc_upstream_failure(collaborator: str) -> None:
	UPSTREAM_FAILURES.labels(collaborator=collaborator).inc()
