"""Viewer context loading: profile, memberships, connections and interests."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from gigvora.domain.feed import models
from gigvora.domain.feed.concurrency import gather_all
from gigvora.domain.feed.repo import FeedInsightsStore
from gigvora.domain.feed.tokens import extract_tokens, merge_tokens

logger = logging.getLogger(__name__)

PROFILE_INTEREST_FIELDS = (
	"skills",
	"areas_of_focus",
	"preferred_engagements",
	"collaboration_roles",
	"impact_highlights",
)
GROUP_FOCUS_KEYS = ("focus", "focusAreas", "focus_areas", "topics", "tags")


def group_focus_tokens(metadata: Optional[dict[str, Any]]) -> list[str]:
	if not metadata:
		return []
	return merge_tokens(*(extract_tokens(metadata.get(key)) for key in GROUP_FOCUS_KEYS))


def profile_interest_tokens(profile: Optional[models.ProfileRecord]) -> list[str]:
	if profile is None:
		return []
	return merge_tokens(*(extract_tokens(getattr(profile, field)) for field in PROFILE_INTEREST_FIELDS))


def _active_memberships(records: Iterable[models.MembershipRecord]) -> tuple[models.ActiveMembership, ...]:
	active: list[models.ActiveMembership] = []
	for record in records:
		if record.status != models.MembershipStatus.ACTIVE.value:
			continue
		active.append(
			models.ActiveMembership(
				group_id=record.group_id,
				group_name=(record.group_name or "").strip(),
				focus=tuple(group_focus_tokens(record.group_metadata)),
				role=record.role,
				status=record.status,
			)
		)
	return tuple(active)


def build_viewer_context(
	viewer_id: int,
	profile: Optional[models.ProfileRecord],
	memberships: Iterable[models.MembershipRecord],
	connections: Iterable[models.ConnectionEdge],
) -> models.ViewerContext:
	membership_rows = list(memberships)
	active = _active_memberships(membership_rows)
	# every membership counts towards status, only active ones towards interests
	membership_status = {record.group_id: record.status for record in membership_rows}
	group_tokens = [
		merge_tokens(membership.focus, [membership.group_name])
		for membership in active
	]
	interests = merge_tokens(profile_interest_tokens(profile), *group_tokens)
	return models.ViewerContext(
		viewer_id=viewer_id,
		profile=profile,
		memberships=active,
		group_statuses=tuple(membership_status.items()),
		connections=tuple(connections),
		interests=tuple(interests),
	)


async def load_viewer_context(store: FeedInsightsStore, viewer_id: Optional[int]) -> models.ViewerContext:
	"""Load the viewer's profile, memberships and connections; anonymous viewers get an empty context."""
	if viewer_id is None:
		return models.ViewerContext()
	profile, memberships, connections = await gather_all(
		store.find_profile_by_user_id(viewer_id),
		store.find_memberships_by_user_id(viewer_id, include_group=True),
		store.find_connections_involving(viewer_id),
	)
	context = build_viewer_context(viewer_id, profile, memberships, connections)
	logger.debug(
		"Loaded viewer context",
		extra={
			"active_groups": len(context.memberships),
			"connections": len(context.connections),
			"interests": len(context.interests),
		},
	)
	return context


def connection_status_index(context: models.ViewerContext) -> dict[int, str]:
	"""Map each connected-or-pending user id to the viewer's edge status; accepted beats pending."""
	if context.viewer_id is None:
		return {}
	index: dict[int, str] = {}
	for edge in context.connections:
		if edge.status not in (models.ConnectionStatus.ACCEPTED.value, models.ConnectionStatus.PENDING.value):
			continue
		other = edge.other_party(context.viewer_id)
		if other == context.viewer_id:
			continue
		if index.get(other) == models.ConnectionStatus.ACCEPTED.value:
			continue
		index[other] = edge.status
	return index


def excluded_user_ids(context: models.ViewerContext) -> list[int]:
	"""The viewer plus everyone already connected or pending."""
	excluded: list[int] = [] if context.viewer_id is None else [context.viewer_id]
	excluded.extend(user_id for user_id in connection_status_index(context) if user_id not in excluded)
	return excluded
