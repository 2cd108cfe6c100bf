"""Async read-only repository backing the feed insights engine."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol, Sequence

import asyncpg

from gigvora.domain.feed import models
from gigvora.domain.feed.exceptions import UpstreamStoreError
from gigvora.infra.postgres import get_pool

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class FeedInsightsStore(Protocol):
	async def find_profile_by_user_id(self, user_id: int) -> Optional[models.ProfileRecord]: ...

	async def find_memberships_by_user_id(
		self, user_id: int, *, include_group: bool = True
	) -> list[models.MembershipRecord]: ...

	async def find_active_members_by_group_ids(
		self, group_ids: Sequence[int], excluded_user_ids: Sequence[int], limit: int
	) -> list[models.MemberRecord]: ...

	async def find_connections_involving(self, user_id: int) -> list[models.ConnectionEdge]: ...

	async def find_top_profiles_by_followers_then_likes(
		self, excluded_user_ids: Sequence[int], limit: int
	) -> list[models.UserRecord]: ...

	async def find_groups_excluding(
		self, group_ids: Sequence[int], limit: int, *, with_active_member_count: bool = True
	) -> list[models.GroupRecord]: ...

	async def find_recent_posts(
		self, limit: int, *, with_author_and_profile: bool = True
	) -> list[models.PostRecord]: ...

	async def count_mutual_connections(self, user_id: int, candidate_ids: Sequence[int]) -> dict[int, int]: ...


_PROFILE_JSON = "CASE WHEN p.user_id IS NULL THEN NULL ELSE to_jsonb(p.*) END AS profile"


class FeedInsightsRepository:
	"""Thin data-access layer around asyncpg.

	Reads use a pooled connection each, unless the repository is bound to a caller's
	connection (e.g. one holding an open transaction). A bound connection cannot run
	overlapping queries, so reads against it are serialised.
	"""

	def __init__(self, connection: Optional[asyncpg.Connection] = None) -> None:
		self._connection = connection
		self._lock = asyncio.Lock() if connection is not None else None

	def bind(self, connection: Optional[asyncpg.Connection]) -> "FeedInsightsRepository":
		if connection is None:
			return self
		return FeedInsightsRepository(connection=connection)

	@asynccontextmanager
	async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:
		if self._connection is not None:
			assert self._lock is not None
			async with self._lock:
				yield self._connection
			return
		pool = await get_pool()
		async with pool.acquire() as conn:
			yield conn

	async def _fetch(self, sql: str, *args: object) -> list[asyncpg.Record]:
		try:
			async with self._acquire() as conn:
				return list(await conn.fetch(sql, *args))
		except _STORE_ERRORS as exc:
			raise UpstreamStoreError(f"store_unavailable: {exc.__class__.__name__}") from exc

	# --- Viewer reads -----------------------------------------------------

	async def find_profile_by_user_id(self, user_id: int) -> Optional[models.ProfileRecord]:
		rows = await self._fetch(
			"""
			SELECT p.*
			FROM profiles p
			WHERE p.user_id = $1
			ORDER BY p.id ASC
			LIMIT 1
			""",
			user_id,
		)
		return models.ProfileRecord.from_row(rows[0]) if rows else None

	async def find_memberships_by_user_id(
		self,
		user_id: int,
		*,
		include_group: bool = True,
	) -> list[models.MembershipRecord]:
		if include_group:
			sql = """
				SELECT gm.group_id, gm.user_id, gm.role, gm.status,
					g.name AS group_name, g.metadata AS group_metadata
				FROM group_memberships gm
				JOIN groups g ON g.id = gm.group_id
				WHERE gm.user_id = $1
				ORDER BY gm.id ASC
			"""
		else:
			sql = """
				SELECT gm.group_id, gm.user_id, gm.role, gm.status
				FROM group_memberships gm
				WHERE gm.user_id = $1
				ORDER BY gm.id ASC
			"""
		rows = await self._fetch(sql, user_id)
		return [models.MembershipRecord.from_row(row) for row in rows]

	async def find_connections_involving(self, user_id: int) -> list[models.ConnectionEdge]:
		rows = await self._fetch(
			"""
			SELECT c.requester_id, c.addressee_id, c.status
			FROM connections c
			WHERE c.requester_id = $1 OR c.addressee_id = $1
			ORDER BY c.id ASC
			""",
			user_id,
		)
		return [models.ConnectionEdge.from_row(row) for row in rows]

	# --- Candidate reads --------------------------------------------------

	async def find_active_members_by_group_ids(
		self,
		group_ids: Sequence[int],
		excluded_user_ids: Sequence[int],
		limit: int,
	) -> list[models.MemberRecord]:
		rows = await self._fetch(
			f"""
			SELECT gm.user_id, gm.group_id, g.name AS group_name,
				u.email, u.first_name, u.last_name,
				{_PROFILE_JSON}
			FROM group_memberships gm
			JOIN groups g ON g.id = gm.group_id
			JOIN users u ON u.id = gm.user_id
			LEFT JOIN profiles p ON p.user_id = gm.user_id
			WHERE gm.group_id = ANY($1::int[])
			  AND gm.status = 'active'
			  AND NOT (gm.user_id = ANY($2::int[]))
			ORDER BY gm.id ASC
			LIMIT $3
			""",
			list(group_ids),
			list(excluded_user_ids),
			limit,
		)
		return [models.MemberRecord.from_row(row) for row in rows]

	async def find_top_profiles_by_followers_then_likes(
		self,
		excluded_user_ids: Sequence[int],
		limit: int,
	) -> list[models.UserRecord]:
		rows = await self._fetch(
			f"""
			SELECT u.id, u.email, u.first_name, u.last_name,
				{_PROFILE_JSON}
			FROM users u
			JOIN profiles p ON p.user_id = u.id
			WHERE NOT (u.id = ANY($1::int[]))
			ORDER BY COALESCE(p.followers_count, 0) DESC, COALESCE(p.likes_count, 0) DESC, u.id ASC
			LIMIT $2
			""",
			list(excluded_user_ids),
			limit,
		)
		return [models.UserRecord.from_row(row) for row in rows]

	async def count_mutual_connections(self, user_id: int, candidate_ids: Sequence[int]) -> dict[int, int]:
		if not candidate_ids:
			return {}
		rows = await self._fetch(
			"""
			WITH viewer_friends AS (
				SELECT CASE WHEN c.requester_id = $1 THEN c.addressee_id ELSE c.requester_id END AS friend_id
				FROM connections c
				WHERE c.status = 'accepted' AND (c.requester_id = $1 OR c.addressee_id = $1)
			),
			candidate_edges AS (
				SELECT c.requester_id AS candidate_id, c.addressee_id AS friend_id
				FROM connections c
				WHERE c.status = 'accepted' AND c.requester_id = ANY($2::int[])
				UNION ALL
				SELECT c.addressee_id AS candidate_id, c.requester_id AS friend_id
				FROM connections c
				WHERE c.status = 'accepted' AND c.addressee_id = ANY($2::int[])
			)
			SELECT ce.candidate_id, COUNT(DISTINCT ce.friend_id) AS mutual_count
			FROM candidate_edges ce
			JOIN viewer_friends vf ON vf.friend_id = ce.friend_id
			GROUP BY ce.candidate_id
			""",
			user_id,
			list(candidate_ids),
		)
		return {int(row["candidate_id"]): int(row["mutual_count"]) for row in rows}

	# --- Group and post reads ---------------------------------------------

	async def find_groups_excluding(
		self,
		group_ids: Sequence[int],
		limit: int,
		*,
		with_active_member_count: bool = True,
	) -> list[models.GroupRecord]:
		if with_active_member_count:
			sql = """
				SELECT g.id, g.name, g.description, g.metadata, g.member_policy, g.created_at,
					COUNT(gm.id) FILTER (WHERE gm.status = 'active') AS member_count
				FROM groups g
				LEFT JOIN group_memberships gm ON gm.group_id = g.id
				WHERE NOT (g.id = ANY($1::int[]))
				GROUP BY g.id
				ORDER BY member_count DESC, g.created_at DESC
				LIMIT $2
			"""
		else:
			sql = """
				SELECT g.id, g.name, g.description, g.metadata, g.member_policy, g.created_at
				FROM groups g
				WHERE NOT (g.id = ANY($1::int[]))
				ORDER BY g.created_at DESC
				LIMIT $2
			"""
		rows = await self._fetch(sql, list(group_ids), limit)
		return [models.GroupRecord.from_row(row) for row in rows]

	async def find_recent_posts(
		self,
		limit: int,
		*,
		with_author_and_profile: bool = True,
	) -> list[models.PostRecord]:
		if with_author_and_profile:
			sql = f"""
				SELECT fp.id, fp.user_id, fp.title, fp.summary, fp.content, fp.type,
					fp.published_at, fp.created_at,
					u.first_name, u.last_name,
					{_PROFILE_JSON}
				FROM feed_posts fp
				LEFT JOIN users u ON u.id = fp.user_id
				LEFT JOIN profiles p ON p.user_id = fp.user_id
				ORDER BY fp.created_at DESC, fp.id DESC
				LIMIT $1
			"""
		else:
			sql = """
				SELECT fp.id, fp.user_id, fp.title, fp.summary, fp.content, fp.type,
					fp.published_at, fp.created_at
				FROM feed_posts fp
				ORDER BY fp.created_at DESC, fp.id DESC
				LIMIT $1
			"""
		rows = await self._fetch(sql, limit)
		return [models.PostRecord.from_row(row) for row in rows]


__all__ = ["FeedInsightsRepository", "FeedInsightsStore"]
