"""Live moments: a compact typed projection of the most recent feed posts."""

from __future__ import annotations

from typing import NamedTuple, Optional

from gigvora.domain.feed import models
from gigvora.domain.feed.repo import FeedInsightsStore
from gigvora.domain.feed.schemas import Moment

TITLE_EXCERPT_LENGTH = 80
PREVIEW_LENGTH = 140
DEFAULT_MOMENT_TYPE = "update"


class MomentMeta(NamedTuple):
	tag: str
	icon: str


MOMENT_TYPES: dict[str, MomentMeta] = {
	"update": MomentMeta("Update", "📝"),
	"media": MomentMeta("Media drop", "🎬"),
	"job": MomentMeta("Job", "💼"),
	"gig": MomentMeta("Gig", "🛠️"),
	"project": MomentMeta("Project", "🚀"),
	"volunteering": MomentMeta("Volunteering", "🤝"),
	"launchpad": MomentMeta("Launchpad", "🌱"),
	"news": MomentMeta("News", "📰"),
}


def resolve_moment_type(post_type: Optional[str]) -> str:
	normalised = (post_type or "").strip().lower()
	return normalised if normalised in MOMENT_TYPES else DEFAULT_MOMENT_TYPE


def _excerpt(text: Optional[str], length: int) -> Optional[str]:
	if not text or not text.strip():
		return None
	cleaned = " ".join(text.split())
	return cleaned if len(cleaned) <= length else f"{cleaned[:length]}…"


def _quoted(text: Optional[str]) -> Optional[str]:
	excerpt = _excerpt(text, TITLE_EXCERPT_LENGTH)
	return f"“{excerpt}”" if excerpt else None


def moment_title(post: models.PostRecord, moment_type: str) -> str:
	if post.title and post.title.strip():
		return post.title.strip()
	quoted = _quoted(post.summary) or _quoted(post.content)
	if quoted:
		return quoted
	author = models.display_name(post.first_name, post.last_name, fallback="Someone")
	return f"{author} posted a {moment_type}"


def build_moment(post: models.PostRecord) -> Moment:
	moment_type = resolve_moment_type(post.type)
	meta = MOMENT_TYPES[moment_type]
	has_title = bool(post.title and post.title.strip())
	timestamp = post.published_at or post.created_at
	return Moment(
		id=f"post:{post.id}",
		post_id=post.id,
		title=moment_title(post, moment_type),
		preview=_excerpt(post.summary or post.content, PREVIEW_LENGTH) if has_title else None,
		tag=meta.tag,
		icon=meta.icon,
		timestamp=timestamp.isoformat() if timestamp else None,
		type=moment_type,
	)


async def build_live_moments(store: FeedInsightsStore, *, limit: int) -> list[Moment]:
	posts = await store.find_recent_posts(max(limit, 5), with_author_and_profile=True)
	seen: set[int] = set()
	moments: list[Moment] = []
	for post in posts:
		if post.id in seen:
			continue
		seen.add(post.id)
		moments.append(build_moment(post))
	return moments[:limit]
