import pytest

from gigvora.domain.feed import groups


@pytest.mark.asyncio
async def test_group_suggestions_exclude_active_memberships_only(store):
	store.add_group(10, "Joined")
	store.add_group(11, "Pending", member_policy="request")
	store.add_group(12, "Open", member_policy="open")
	store.join(1, 10, status="active")
	store.join(1, 11, status="pending")

	result = await groups.build_group_suggestions(
		store,
		membership_status={10: "active", 11: "pending"},
		interests=[],
		limit=3,
	)

	ids = [s.group_id for s in result]
	assert 10 not in ids
	assert set(ids) == {11, 12}
	by_id = {s.group_id: s for s in result}
	assert by_id[11].status == "pending"
	assert by_id[11].join_requires_approval is True
	assert by_id[12].status == "available"
	assert by_id[12].join_requires_approval is False
	assert store.calls[0] == ("find_groups_excluding", (10,), 3)


@pytest.mark.asyncio
async def test_group_suggestions_rank_interest_overlap_before_member_count(store):
	store.add_group(20, "Big Group", metadata={"focus": ["Finance"]})
	store.add_group(21, "Niche Group", metadata={"focus": ["Design", "Research", "UX", "Motion", "Brand"]}, description="  Craft talk ")
	for user_id in range(100, 105):
		store.join(user_id, 20)
	store.join(200, 21)

	result = await groups.build_group_suggestions(store, membership_status={}, interests=["ux"], limit=3)

	assert [s.group_id for s in result] == [21, 20]
	niche, big = result
	assert niche.focus == ["design", "research", "ux", "motion"]
	assert niche.summary == "Craft talk"
	assert niche.reason == "Matches your interest in ux."
	assert big.member_count == 5
	assert big.members == 5
	assert big.reason == "5 members are collaborating here."
	assert big.id == "group:20"


def test_group_reason_fallbacks():
	assert groups.group_reason(["ai", "ml"], 0) == "Matches your interests in ai and ml."
	assert groups.group_reason([], 1) == "1 member is collaborating here."
	assert groups.group_reason([], 0) == "Trending with professionals across Gigvora this week."


def test_requires_approval():
	assert groups.requires_approval(None) is False
	assert groups.requires_approval("") is False
	assert groups.requires_approval("open") is False
	assert groups.requires_approval("invite") is True
