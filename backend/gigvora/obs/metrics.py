"""Central registry for Prometheus metrics used by the feed insights engine."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

FEED_INSIGHTS_REQUESTS = Counter(
	"gigvora_feed_insights_requests_total",
	"Feed insights computations by outcome",
	["outcome"],
)

FEED_INSIGHTS_LATENCY = Histogram(
	"gigvora_feed_insights_duration_seconds",
	"Feed insights computation latency in seconds",
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

FEED_INSIGHTS_ITEMS = Counter(
	"gigvora_feed_insights_items_total",
	"Suggestions and moments served by feed insights",
	["kind"],
)


def inc_feed_insights_request(outcome: str) -> None:
	FEED_INSIGHTS_REQUESTS.labels(outcome=outcome).inc()


def observe_feed_insights_duration(elapsed_seconds: float) -> None:
	FEED_INSIGHTS_LATENCY.observe(elapsed_seconds)


def inc_feed_insights_items(kind: str, count: int) -> None:
	if count > 0:
		FEED_INSIGHTS_ITEMS.labels(kind=kind).inc(count)
