"""Connection candidate sourcing from shared groups and trending profiles."""

from __future__ import annotations

from typing import Optional, Sequence

from gigvora.domain.feed import models
from gigvora.domain.feed.repo import FeedInsightsStore
from gigvora.domain.feed.scoring import merge_candidates
from gigvora.settings import settings


def _profile_fields(profile: Optional[models.ProfileRecord]) -> dict[str, Optional[str]]:
	if profile is None:
		return {"headline": None, "location": None, "company": None}
	return {"headline": profile.headline, "location": profile.location, "company": profile.company}


def candidate_from_member(row: models.MemberRecord) -> models.Candidate:
	group_name = (row.group_name or "").strip()
	return models.Candidate(
		user_id=row.user_id,
		email=row.email,
		name=models.display_name(row.first_name, row.last_name),
		shared_groups=(group_name,) if group_name else (),
		profile=row.profile,
		**_profile_fields(row.profile),
	)


def candidate_from_user(row: models.UserRecord) -> models.Candidate:
	return models.Candidate(
		user_id=row.id,
		email=row.email,
		name=models.display_name(row.first_name, row.last_name),
		profile=row.profile,
		**_profile_fields(row.profile),
	)


async def fetch_group_candidates(
	store: FeedInsightsStore,
	*,
	group_ids: Sequence[int],
	excluded_ids: Sequence[int],
	limit: int,
) -> list[models.Candidate]:
	"""Members sharing an active group with the viewer, one candidate per user."""
	if not group_ids:
		return []
	rows = await store.find_active_members_by_group_ids(
		list(group_ids),
		list(excluded_ids),
		limit * settings.feed_group_overfetch_factor,
	)
	excluded = set(excluded_ids)
	members = (candidate_from_member(row) for row in rows if row.user_id not in excluded)
	return list(merge_candidates(members).values())


async def fetch_trending_candidates(
	store: FeedInsightsStore,
	*,
	excluded_ids: Sequence[int],
	limit: int,
) -> list[models.Candidate]:
	"""Most-followed, then most-liked profiles outside the exclusion set."""
	rows = await store.find_top_profiles_by_followers_then_likes(
		list(excluded_ids),
		limit * settings.feed_trending_overfetch_factor,
	)
	excluded = set(excluded_ids)
	return [candidate_from_user(row) for row in rows if row.id not in excluded]
