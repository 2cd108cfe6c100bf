"""Candidate merging, relevance scoring and connection suggestion ranking."""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Iterable, Mapping, Optional, Sequence

from gigvora.domain.feed import models
from gigvora.domain.feed.schemas import ConnectionSuggestion, SuggestionStatus

FOLLOWER_WEIGHT = 2
LIKE_WEIGHT = 1
SHARED_GROUP_WEIGHT = 10
SHARED_FOCUS_WEIGHT = 4

CandidateIndex = Mapping[int, models.Candidate]


@dataclass(slots=True, frozen=True)
class CandidateScore:
	"""Weighted components behind a candidate's rank."""

	profile: int
	overlap: int
	focus: int
	shared_focus: tuple[str, ...]

	@property
	def total(self) -> int:
		return self.profile + self.overlap + self.focus


def _first_present(*values: Optional[str]) -> Optional[str]:
	for value in values:
		if value:
			return value
	return None


def merge_pair(existing: models.Candidate, incoming: models.Candidate) -> models.Candidate:
	"""Keep the first candidate's identity, union shared groups, fill missing location/company."""
	return existing.model_copy(
		update={
			"shared_groups": tuple(dict.fromkeys(existing.shared_groups + incoming.shared_groups)),
			"location": _first_present(existing.location, incoming.location),
			"company": _first_present(existing.company, incoming.company),
		}
	)


def _fold_candidate(index: CandidateIndex, candidate: models.Candidate) -> CandidateIndex:
	existing = index.get(candidate.user_id)
	merged = candidate if existing is None else merge_pair(existing, candidate)
	return {**index, candidate.user_id: merged}


def merge_candidates(candidates: Iterable[models.Candidate]) -> CandidateIndex:
	"""Deduplicate by user id; the index keeps first-occurrence order."""
	return reduce(_fold_candidate, candidates, {})


def score_candidate(candidate: models.Candidate, interests: Iterable[str]) -> CandidateScore:
	interest_set = {token.lower() for token in interests}
	shared_focus = tuple(group for group in candidate.shared_groups if group.lower() in interest_set)
	return CandidateScore(
		profile=candidate.followers_count * FOLLOWER_WEIGHT + candidate.likes_count * LIKE_WEIGHT,
		overlap=len(candidate.shared_groups) * SHARED_GROUP_WEIGHT,
		focus=len(shared_focus) * SHARED_FOCUS_WEIGHT,
		shared_focus=shared_focus,
	)


def resolve_connection_status(edge_status: Optional[str]) -> SuggestionStatus:
	if edge_status == models.ConnectionStatus.ACCEPTED.value:
		return "connected"
	if edge_status == models.ConnectionStatus.PENDING.value:
		return "pending"
	return "available"


def connection_reason(shared_groups: Sequence[str], followers_count: int) -> str:
	if len(shared_groups) == 1:
		return f"You both participate in {shared_groups[0]} — continue the conversation."
	if len(shared_groups) > 1:
		return f"You share {len(shared_groups)} groups, including {shared_groups[0]} and {shared_groups[1]}."
	if followers_count > 0:
		noun = "professional follows" if followers_count == 1 else "professionals follow"
		return f"{followers_count:,} {noun} their work on Gigvora."
	return "Active this week across the Gigvora community."


def rank_connection_suggestions(
	candidates: Iterable[models.Candidate],
	*,
	statuses: Mapping[int, str],
	interests: Iterable[str],
	limit: int,
	mutual_counts: Optional[Mapping[int, int]] = None,
) -> list[ConnectionSuggestion]:
	"""Merge, score and rank candidates, returning at most ``limit`` suggestions."""
	interest_list = list(interests)
	mutual_counts = mutual_counts or {}
	scored = [
		(score_candidate(candidate, interest_list), candidate)
		for candidate in merge_candidates(candidates).values()
	]
	# user id breaks ties so equal scores rank the same way on every call
	scored.sort(key=lambda item: (-item[0].total, item[1].user_id))
	return [
		ConnectionSuggestion(
			id=f"user:{candidate.user_id}",
			user_id=candidate.user_id,
			name=candidate.name,
			headline=candidate.headline,
			location=candidate.location,
			mutual_connections=mutual_counts.get(candidate.user_id, 0),
			shared_groups=list(candidate.shared_groups),
			status=resolve_connection_status(statuses.get(candidate.user_id)),
			reason=connection_reason(candidate.shared_groups, candidate.followers_count),
			avatar_seed=candidate.name,
		)
		for _, candidate in scored[: max(limit, 0)]
	]


__all__ = [
	"CandidateScore",
	"connection_reason",
	"merge_candidates",
	"merge_pair",
	"rank_connection_suggestions",
	"resolve_connection_status",
	"score_candidate",
]
