"""Feed insights orchestration: connection, group and live moment suggestions."""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Optional

import asyncpg

from gigvora.domain.feed import candidates as candidate_sources
from gigvora.domain.feed import models
from gigvora.domain.feed.concurrency import gather_all
from gigvora.domain.feed.context import connection_status_index, excluded_user_ids, load_viewer_context
from gigvora.domain.feed.exceptions import ValidationError
from gigvora.domain.feed.groups import build_group_suggestions
from gigvora.domain.feed.moments import build_live_moments
from gigvora.domain.feed.repo import FeedInsightsRepository, FeedInsightsStore
from gigvora.domain.feed.schemas import ConnectionSuggestion, FeedInsightsResponse
from gigvora.domain.feed.scoring import rank_connection_suggestions
from gigvora.domain.feed.tokens import merge_tokens
from gigvora.obs import logging as obs_logging
from gigvora.obs import metrics as obs_metrics
from gigvora.settings import settings

logger = logging.getLogger(__name__)

MIN_LIMIT = 1


def normalise_limit(value: Any) -> int:
	"""Parse and clamp the requested suggestion limit."""
	if value is None:
		return settings.feed_default_limit
	if isinstance(value, bool):
		raise ValidationError("invalid_limit")
	if isinstance(value, str):
		value = value.strip()
		if not value:
			raise ValidationError("invalid_limit")
	try:
		numeric = float(value)
	except (TypeError, ValueError, OverflowError) as exc:
		raise ValidationError("invalid_limit") from exc
	if not math.isfinite(numeric):
		raise ValidationError("invalid_limit")
	return max(MIN_LIMIT, min(settings.feed_max_limit, int(numeric)))


def group_suggestion_limit(limit: int) -> int:
	return max(3, limit // 2)


def live_moment_limit(limit: int) -> int:
	# half-up rounding so odd limits round 4.5 -> 5
	return max(4, math.floor(limit * 1.5 + 0.5))


class FeedInsightsService:
	"""Builds the feed insights payload for one viewer."""

	def __init__(self, repository: FeedInsightsStore | None = None) -> None:
		self.repo = repository or FeedInsightsRepository()

	def _store_for(self, transaction: Optional[asyncpg.Connection]) -> FeedInsightsStore:
		if transaction is None:
			return self.repo
		bind = getattr(self.repo, "bind", None)
		return bind(transaction) if bind is not None else self.repo

	async def get_feed_insights(
		self,
		*,
		viewer_id: Optional[int],
		limit: Any = None,
		transaction: Optional[asyncpg.Connection] = None,
	) -> FeedInsightsResponse:
		started = time.perf_counter()
		tokens = obs_logging.bind_context(viewer_id=str(viewer_id) if viewer_id is not None else None)
		try:
			try:
				resolved_limit = normalise_limit(limit)
			except ValidationError:
				obs_metrics.inc_feed_insights_request("invalid")
				raise
			store = self._store_for(transaction)
			try:
				response = await self._build(store, viewer_id=viewer_id, limit=resolved_limit)
			except Exception:
				obs_metrics.inc_feed_insights_request("error")
				logger.warning("Feed insights computation failed", exc_info=True)
				raise
			elapsed = time.perf_counter() - started
			obs_metrics.inc_feed_insights_request("ok")
			obs_metrics.observe_feed_insights_duration(elapsed)
			obs_metrics.inc_feed_insights_items("connections", len(response.connection_suggestions))
			obs_metrics.inc_feed_insights_items("groups", len(response.group_suggestions))
			obs_metrics.inc_feed_insights_items("moments", len(response.live_moments))
			logger.info(
				"feed_insights.generated",
				extra={
					"limit": resolved_limit,
					"connections": len(response.connection_suggestions),
					"groups": len(response.group_suggestions),
					"moments": len(response.live_moments),
					"duration_ms": round(elapsed * 1000, 2),
				},
			)
			return response
		finally:
			obs_logging.reset_context(tokens)

	async def _build(self, store: FeedInsightsStore, *, viewer_id: Optional[int], limit: int) -> FeedInsightsResponse:
		context = await load_viewer_context(store, viewer_id)
		connections, groups, moments = await gather_all(
			self._build_connection_suggestions(store, context, limit=limit),
			build_group_suggestions(
				store,
				membership_status=context.membership_status,
				interests=context.interests,
				limit=group_suggestion_limit(limit),
			),
			build_live_moments(store, limit=live_moment_limit(limit)),
		)
		interests = merge_tokens(
			context.interests,
			(moment.type for moment in moments),
			cap=settings.feed_interest_cap,
		)
		return FeedInsightsResponse(
			generated_at=datetime.now(timezone.utc),
			interests=interests,
			connection_suggestions=connections,
			group_suggestions=groups,
			live_moments=moments,
		)

	async def _build_connection_suggestions(
		self,
		store: FeedInsightsStore,
		context: models.ViewerContext,
		*,
		limit: int,
	) -> list[ConnectionSuggestion]:
		excluded = excluded_user_ids(context)
		group_candidates, trending_candidates = await gather_all(
			candidate_sources.fetch_group_candidates(
				store,
				group_ids=context.active_group_ids,
				excluded_ids=excluded,
				limit=limit,
			),
			candidate_sources.fetch_trending_candidates(store, excluded_ids=excluded, limit=limit),
		)
		pool = group_candidates + trending_candidates
		mutual_counts: dict[int, int] = {}
		if context.viewer_id is not None and pool:
			candidate_ids = list(dict.fromkeys(candidate.user_id for candidate in pool))
			mutual_counts = await store.count_mutual_connections(context.viewer_id, candidate_ids)
		return rank_connection_suggestions(
			pool,
			statuses=connection_status_index(context),
			interests=context.interests,
			limit=limit,
			mutual_counts=mutual_counts,
		)


_default_service: FeedInsightsService | None = None


def _service() -> FeedInsightsService:
	global _default_service
	if _default_service is None:
		_default_service = FeedInsightsService()
	return _default_service


async def get_feed_insights(
	*,
	viewer_id: Optional[int],
	limit: Any = None,
	transaction: Optional[asyncpg.Connection] = None,
) -> FeedInsightsResponse:
	"""Module-level entry point used by the API layer."""
	return await _service().get_feed_insights(viewer_id=viewer_id, limit=limit, transaction=transaction)


__all__ = [
	"FeedInsightsService",
	"get_feed_insights",
	"group_suggestion_limit",
	"live_moment_limit",
	"normalise_limit",
]
