import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from gigvora.domain.feed import models
from gigvora.domain.feed.exceptions import UpstreamStoreError
from gigvora.infra import postgres

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


class InMemoryFeedStore:
	"""Store double answering the feed insights reads from plain dict fixtures."""

	def __init__(self) -> None:
		self.users: dict[int, dict] = {}
		self.profiles: dict[int, dict] = {}
		self.groups: dict[int, dict] = {}
		self.memberships: list[dict] = []
		self.connections: list[dict] = []
		self.posts: list[dict] = []
		self.calls: list[tuple] = []
		self.fail_on: set[str] = set()

	# --- fixture builders -------------------------------------------------

	def add_user(self, user_id: int, first: str, last: str = "", *, followers: int = 0, likes: int = 0, **profile) -> None:
		self.users[user_id] = {"id": user_id, "email": f"user{user_id}@example.com", "first_name": first, "last_name": last}
		self.profiles[user_id] = {"user_id": user_id, "followers_count": followers, "likes_count": likes, **profile}

	def add_group(self, group_id: int, name: str, *, metadata: dict | None = None, member_policy: str | None = None, description: str | None = None, age_days: int = 0) -> None:
		self.groups[group_id] = {
			"id": group_id,
			"name": name,
			"description": description,
			"metadata": metadata or {},
			"member_policy": member_policy,
			"created_at": BASE_TIME - timedelta(days=age_days),
		}

	def join(self, user_id: int, group_id: int, status: str = "active", role: str = "member") -> None:
		self.memberships.append({"user_id": user_id, "group_id": group_id, "status": status, "role": role})

	def connect(self, requester_id: int, addressee_id: int, status: str = "accepted") -> None:
		self.connections.append({"requester_id": requester_id, "addressee_id": addressee_id, "status": status})

	def add_post(self, post_id: int, user_id: int, *, minutes_ago: int = 0, **fields) -> None:
		created = BASE_TIME - timedelta(minutes=minutes_ago)
		self.posts.append({"id": post_id, "user_id": user_id, "created_at": created, **fields})

	# --- store interface --------------------------------------------------

	def _record(self, name: str, *args) -> None:
		self.calls.append((name, *args))
		if name in self.fail_on:
			raise UpstreamStoreError("store_unavailable")

	def _user_fields(self, user_id: int) -> dict:
		user = self.users.get(user_id, {})
		return {
			"email": user.get("email"),
			"first_name": user.get("first_name"),
			"last_name": user.get("last_name"),
			"profile": self.profiles.get(user_id),
		}

	async def find_profile_by_user_id(self, user_id):
		self._record("find_profile_by_user_id", user_id)
		profile = self.profiles.get(user_id)
		return models.ProfileRecord.from_row(profile) if profile else None

	async def find_memberships_by_user_id(self, user_id, *, include_group=True):
		self._record("find_memberships_by_user_id", user_id)
		rows = []
		for membership in self.memberships:
			if membership["user_id"] != user_id:
				continue
			group = self.groups[membership["group_id"]]
			rows.append(
				models.MembershipRecord.from_row(
					{**membership, "group_name": group["name"], "group_metadata": group["metadata"]}
				)
			)
		return rows

	async def find_connections_involving(self, user_id):
		self._record("find_connections_involving", user_id)
		return [
			models.ConnectionEdge.from_row(edge)
			for edge in self.connections
			if user_id in (edge["requester_id"], edge["addressee_id"])
		]

	async def find_active_members_by_group_ids(self, group_ids, excluded_user_ids, limit):
		self._record("find_active_members_by_group_ids", tuple(group_ids), tuple(excluded_user_ids), limit)
		rows = []
		for membership in self.memberships:
			if membership["group_id"] not in group_ids or membership["status"] != "active":
				continue
			if membership["user_id"] in excluded_user_ids:
				continue
			rows.append(
				models.MemberRecord.from_row(
					{
						"user_id": membership["user_id"],
						"group_id": membership["group_id"],
						"group_name": self.groups[membership["group_id"]]["name"],
						**self._user_fields(membership["user_id"]),
					}
				)
			)
		return rows[:limit]

	async def find_top_profiles_by_followers_then_likes(self, excluded_user_ids, limit):
		self._record("find_top_profiles_by_followers_then_likes", tuple(excluded_user_ids), limit)
		ranked = sorted(
			(uid for uid in self.profiles if uid in self.users and uid not in excluded_user_ids),
			key=lambda uid: (-self.profiles[uid]["followers_count"], -self.profiles[uid]["likes_count"], uid),
		)
		return [models.UserRecord.from_row({"id": uid, **self._user_fields(uid)}) for uid in ranked[:limit]]

	async def find_groups_excluding(self, group_ids, limit, *, with_active_member_count=True):
		self._record("find_groups_excluding", tuple(group_ids), limit)
		rows = []
		for group in self.groups.values():
			if group["id"] in group_ids:
				continue
			count = sum(
				1 for m in self.memberships if m["group_id"] == group["id"] and m["status"] == "active"
			)
			rows.append({**group, "member_count": count if with_active_member_count else 0})
		rows.sort(key=lambda row: (-row["member_count"], -row["created_at"].timestamp()))
		return [models.GroupRecord.from_row(row) for row in rows[:limit]]

	async def find_recent_posts(self, limit, *, with_author_and_profile=True):
		self._record("find_recent_posts", limit)
		ordered = sorted(self.posts, key=lambda post: (post["created_at"], post["id"]), reverse=True)
		rows = []
		for post in ordered[:limit]:
			author = self._user_fields(post["user_id"]) if with_author_and_profile else {}
			author.pop("email", None)
			rows.append(models.PostRecord.from_row({**post, **author}))
		return rows

	async def count_mutual_connections(self, user_id, candidate_ids):
		self._record("count_mutual_connections", user_id, tuple(candidate_ids))

		def friends(uid):
			return {
				edge["addressee_id"] if edge["requester_id"] == uid else edge["requester_id"]
				for edge in self.connections
				if edge["status"] == "accepted" and uid in (edge["requester_id"], edge["addressee_id"])
			}

		viewer_friends = friends(user_id)
		counts = {cid: len(friends(cid) & viewer_friends) for cid in candidate_ids}
		return {cid: count for cid, count in counts.items() if count}

	def call_names(self) -> list[str]:
		return [call[0] for call in self.calls]


@pytest.fixture
def store() -> InMemoryFeedStore:
	return InMemoryFeedStore()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)
