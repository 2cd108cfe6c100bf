"""Group suggestions for groups the viewer has not joined."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from gigvora.domain.feed import models
from gigvora.domain.feed.context import group_focus_tokens
from gigvora.domain.feed.repo import FeedInsightsStore
from gigvora.domain.feed.schemas import GroupSuggestion

MAX_GROUP_FOCUS = 4
OPEN_MEMBER_POLICY = "open"


def group_reason(shared_focus: Sequence[str], member_count: int) -> str:
	if len(shared_focus) == 1:
		return f"Matches your interest in {shared_focus[0]}."
	if len(shared_focus) > 1:
		return f"Matches your interests in {shared_focus[0]} and {shared_focus[1]}."
	if member_count > 0:
		noun = "member is" if member_count == 1 else "members are"
		return f"{member_count:,} {noun} collaborating here."
	return "Trending with professionals across Gigvora this week."


def requires_approval(member_policy: Optional[str]) -> bool:
	return bool(member_policy) and member_policy != OPEN_MEMBER_POLICY


def _text(value: object) -> Optional[str]:
	if isinstance(value, str) and value.strip():
		return value.strip()
	return None


def build_group_suggestion(
	group: models.GroupRecord,
	*,
	interests: Iterable[str],
	membership_status: Mapping[int, str],
) -> tuple[int, GroupSuggestion]:
	"""Project a group row into a suggestion, returning it with its interest overlap size."""
	focus = group_focus_tokens(group.metadata)[:MAX_GROUP_FOCUS]
	interest_set = {token.lower() for token in interests}
	shared_focus = [token for token in focus if token in interest_set]
	suggestion = GroupSuggestion(
		id=f"group:{group.id}",
		group_id=group.id,
		name=group.name,
		summary=_text(group.description) or _text(group.metadata.get("summary")),
		focus=focus,
		location=_text(group.metadata.get("location")) or _text(group.metadata.get("region")),
		member_count=group.member_count,
		members=group.member_count,
		status=membership_status.get(group.id, "available"),
		join_requires_approval=requires_approval(group.member_policy),
		reason=group_reason(shared_focus, group.member_count),
	)
	return len(shared_focus), suggestion


async def build_group_suggestions(
	store: FeedInsightsStore,
	*,
	membership_status: Mapping[int, str],
	interests: Sequence[str],
	limit: int,
) -> list[GroupSuggestion]:
	"""Rank unjoined groups by interest overlap, keeping the store's member-count order on ties."""
	active_group_ids = [
		group_id
		for group_id, status in membership_status.items()
		if status == models.MembershipStatus.ACTIVE.value
	]
	groups = await store.find_groups_excluding(
		active_group_ids,
		max(limit, 3),
		with_active_member_count=True,
	)
	excluded = set(active_group_ids)
	seen: set[int] = set()
	ranked: list[tuple[int, GroupSuggestion]] = []
	for group in groups:
		if group.id in excluded or group.id in seen:
			continue
		seen.add(group.id)
		ranked.append(build_group_suggestion(group, interests=interests, membership_status=membership_status))
	ranked.sort(key=lambda item: -item[0])
	return [suggestion for _, suggestion in ranked[:limit]]
