import pytest

from gigvora.domain.feed import candidates
from gigvora.settings import settings


@pytest.mark.asyncio
async def test_group_candidates_skip_store_without_groups(store):
	result = await candidates.fetch_group_candidates(store, group_ids=[], excluded_ids=[1], limit=6)

	assert result == []
	assert store.calls == []


@pytest.mark.asyncio
async def test_group_candidates_aggregate_per_user_and_overfetch(store):
	store.add_user(1, "Viewer")
	store.add_user(2, "Ana", "Silva", location=None, company="Acme")
	store.add_user(3, "Ben")
	store.add_group(10, "Design Guild")
	store.add_group(11, "Growth Lab")
	for group_id in (10, 11):
		store.join(1, group_id)
		store.join(2, group_id)
	store.join(3, 11)

	result = await candidates.fetch_group_candidates(store, group_ids=[10, 11], excluded_ids=[1], limit=3)

	assert [c.user_id for c in result] == [2, 3]
	assert result[0].shared_groups == ("Design Guild", "Growth Lab")
	assert result[0].name == "Ana Silva"
	assert result[0].company == "Acme"
	assert store.calls[0] == ("find_active_members_by_group_ids", (10, 11), (1,), 3 * settings.feed_group_overfetch_factor)


@pytest.mark.asyncio
async def test_trending_candidates_order_and_cap(store, monkeypatch):
	monkeypatch.setattr(settings, "feed_trending_overfetch_factor", 1)
	store.add_user(1, "Viewer", followers=999)
	store.add_user(2, "Low", followers=1)
	store.add_user(3, "TieA", followers=5, likes=1)
	store.add_user(4, "TieB", followers=5, likes=7)

	result = await candidates.fetch_trending_candidates(store, excluded_ids=[1], limit=2)

	assert [c.user_id for c in result] == [4, 3]
	assert all(c.shared_groups == () for c in result)
	assert store.calls[0] == ("find_top_profiles_by_followers_then_likes", (1,), 2)
