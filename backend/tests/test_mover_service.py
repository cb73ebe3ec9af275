"""
Magic Movers Backend — Mover Service Unit Tests
=================================================

What:  Tests for MoverService: registry, quest transitions, ranking and the
       compare-and-swap retry path.
How:   Runs against the in-memory repositories in tests/fakes.py (no database).

What we test:
    ✅ Create starts resting with zero missions; duplicate names rejected
    ✅ Load fills up to the weight limit exactly, one more unit fails
    ✅ Loading is rejected on a mission and leaves nothing attached
    ✅ End mission releases items and increments the counter by one
    ✅ Unknown mover / item IDs raise NotFoundError
    ✅ Lost version races are retried, then reported as 409
    ✅ Top movers ordering and size
"""

import logging
from unittest.mock import MagicMock

import pytest

from app.config import settings
from app.exceptions import (
    CapacityExceededError,
    ConcurrentModificationError,
    DuplicateNameError,
    InvalidStateError,
    NotFoundError,
)
from app.models.mover import QuestState
from app.schemas.item import ItemUpdate
from app.schemas.mover import MoverCreate, MoverUpdate
from app.services.mover_service import cas_wait


class TestMoverRegistry:

    @pytest.mark.asyncio
    async def test_create_mover_starts_resting(self, mover_service):
        result = await mover_service.create_mover(
            MoverCreate(name="Gandalf", weight_limit=10, energy=5)
        )

        assert result.id == 1
        assert result.quest_state == QuestState.RESTING
        assert result.missions_completed == 0
        assert result.items == []
        assert result.total_weight == 0

    @pytest.mark.asyncio
    async def test_create_mover_duplicate_name(self, mover_service, store):
        store.put_mover("Gandalf", weight_limit=10)

        with pytest.raises(DuplicateNameError) as exc_info:
            await mover_service.create_mover(MoverCreate(name="Gandalf", weight_limit=5, energy=1))

        assert exc_info.value.context["name"] == "Gandalf"
        assert len(store.movers) == 1

    @pytest.mark.asyncio
    async def test_get_mover_not_found(self, mover_service):
        with pytest.raises(NotFoundError) as exc_info:
            await mover_service.get_mover(5)

        assert exc_info.value.context["resource_id"] == 5

    @pytest.mark.asyncio
    async def test_list_movers_pagination(self, mover_service, store):
        for i in range(5):
            store.put_mover(f"Mover {i}", weight_limit=10)

        result = await mover_service.list_movers(limit=2, offset=1, descending=True)

        assert result.total == 5
        assert [m.id for m in result.movers] == [4, 3]

    @pytest.mark.asyncio
    async def test_update_mover_fields(self, mover_service, store):
        mover = store.put_mover("Radagast", weight_limit=10, energy=3)

        result = await mover_service.update_mover(
            mover.id, MoverUpdate(name="Radagast the Brown", energy=7)
        )

        assert result.name == "Radagast the Brown"
        assert result.energy == 7
        assert result.weight_limit == 10
        assert store.movers[mover.id].version == 2

    @pytest.mark.asyncio
    async def test_update_mover_rename_to_taken_name(self, mover_service, store):
        store.put_mover("Saruman", weight_limit=10)
        mover = store.put_mover("Radagast", weight_limit=10)

        with pytest.raises(DuplicateNameError):
            await mover_service.update_mover(mover.id, MoverUpdate(name="Saruman"))

    @pytest.mark.asyncio
    async def test_update_mover_limit_below_held_weight(self, mover_service, store):
        mover = store.put_mover("Frodo", weight_limit=10)
        store.put_item("Ring", weight=6, mover_id=mover.id)

        with pytest.raises(CapacityExceededError):
            await mover_service.update_mover(mover.id, MoverUpdate(weight_limit=5))

        assert store.movers[mover.id].weight_limit == 10


class TestLoadItems:

    @pytest.mark.asyncio
    async def test_load_up_to_limit_then_one_more_fails(self, mover_service, store):
        """weightLimit=10: items totaling 10 load, a further item of weight 1 does not."""
        mover = store.put_mover("Sam", weight_limit=10)
        a = store.put_item("Pan", weight=4)
        b = store.put_item("Rope", weight=6)
        c = store.put_item("Salt", weight=1)

        result = await mover_service.load_items(mover.id, [a.id, b.id])

        assert result.quest_state == QuestState.LOADING
        assert result.total_weight == 10
        assert [i.id for i in result.items] == [a.id, b.id]

        with pytest.raises(CapacityExceededError) as exc_info:
            await mover_service.load_items(mover.id, [c.id])

        assert exc_info.value.total_weight == 11
        assert exc_info.value.weight_limit == 10
        assert store.items[c.id].mover_id is None

    @pytest.mark.asyncio
    async def test_reloading_held_item_is_not_counted_twice(self, mover_service, store):
        mover = store.put_mover("Sam", weight_limit=10)
        a = store.put_item("Pan", weight=8)
        await mover_service.load_items(mover.id, [a.id])

        result = await mover_service.load_items(mover.id, [a.id])

        assert result.total_weight == 8

    @pytest.mark.asyncio
    async def test_load_rejected_on_a_mission(self, mover_service, store):
        mover = store.put_mover("Pippin", weight_limit=10, quest_state=QuestState.ON_A_MISSION)
        item = store.put_item("Stone", weight=1)

        with pytest.raises(InvalidStateError):
            await mover_service.load_items(mover.id, [item.id])

        assert store.items[item.id].mover_id is None
        assert store.movers[mover.id].quest_state == QuestState.ON_A_MISSION

    @pytest.mark.asyncio
    async def test_load_allowed_after_mission_done(self, mover_service, store):
        mover = store.put_mover("Merry", weight_limit=10, quest_state=QuestState.DONE)
        item = store.put_item("Horn", weight=2)

        result = await mover_service.load_items(mover.id, [item.id])

        assert result.quest_state == QuestState.LOADING

    @pytest.mark.asyncio
    async def test_load_missing_items_lists_them(self, mover_service, store):
        mover = store.put_mover("Sam", weight_limit=10)
        item = store.put_item("Pan", weight=1)

        with pytest.raises(NotFoundError) as exc_info:
            await mover_service.load_items(mover.id, [item.id, 7, 9])

        assert exc_info.value.context["missing_ids"] == [7, 9]
        assert store.items[item.id].mover_id is None

    @pytest.mark.asyncio
    async def test_load_unknown_mover(self, mover_service, store):
        item = store.put_item("Pan", weight=1)

        with pytest.raises(NotFoundError):
            await mover_service.load_items(5, [item.id])

    @pytest.mark.asyncio
    async def test_load_item_held_by_another_mover(self, mover_service, store):
        owner = store.put_mover("Frodo", weight_limit=10)
        other = store.put_mover("Gollum", weight_limit=10)
        ring = store.put_item("Ring", weight=1, mover_id=owner.id)

        with pytest.raises(InvalidStateError) as exc_info:
            await mover_service.load_items(other.id, [ring.id])

        assert exc_info.value.context["item_ids"] == [ring.id]
        assert store.items[ring.id].mover_id == owner.id

    @pytest.mark.asyncio
    async def test_load_writes_action_log(self, mover_service, store, caplog):
        mover = store.put_mover("Sam", weight_limit=10)
        a = store.put_item("Pan", weight=1)
        b = store.put_item("Rope", weight=1)

        with caplog.at_level(logging.INFO, logger="magicmovers.actions"):
            await mover_service.load_items(mover.id, [a.id, b.id])

        assert f"Mover with ID {mover.id} loaded with items: {a.id}, {b.id}" in caplog.text


class TestMissions:

    @pytest.mark.asyncio
    async def test_start_mission_from_any_state(self, mover_service, store):
        mover = store.put_mover("Aragorn", weight_limit=10)

        result = await mover_service.start_mission(mover.id)

        assert result.quest_state == QuestState.ON_A_MISSION

    @pytest.mark.asyncio
    async def test_end_mission_releases_items_and_counts(self, mover_service, store):
        """3 held items and missionsCompleted=2 → 0 items and missionsCompleted=3."""
        mover = store.put_mover(
            "Legolas",
            weight_limit=10,
            quest_state=QuestState.ON_A_MISSION,
            missions_completed=2,
        )
        for name in ("Bow", "Quiver", "Knife"):
            store.put_item(name, weight=1, mover_id=mover.id)

        result = await mover_service.end_mission(mover.id)

        assert result.quest_state == QuestState.DONE
        assert result.missions_completed == 3
        assert result.items == []
        assert all(item.mover_id is None for item in store.items.values())

    @pytest.mark.asyncio
    async def test_end_mission_unknown_mover(self, mover_service):
        with pytest.raises(NotFoundError):
            await mover_service.end_mission(5)

    @pytest.mark.asyncio
    async def test_start_mission_unknown_mover(self, mover_service):
        with pytest.raises(NotFoundError):
            await mover_service.start_mission(5)

    @pytest.mark.asyncio
    async def test_update_unknown_mover(self, mover_service):
        with pytest.raises(NotFoundError):
            await mover_service.update_mover(5, MoverUpdate(energy=1))


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_lost_race_is_retried(self, mover_service, store):
        mover = store.put_mover("Gimli", weight_limit=10, missions_completed=1)
        store.fail_next_cas = 1

        result = await mover_service.end_mission(mover.id)

        assert result.missions_completed == 2
        assert store.cas_calls == 2

    @pytest.mark.asyncio
    async def test_retry_re_validates_capacity(self, mover_service, store):
        """The retried attempt re-reads held items instead of reusing the first read."""
        mover = store.put_mover("Gimli", weight_limit=10)
        axe = store.put_item("Axe", weight=6)

        original = mover_service.movers.update_if_version

        async def racing_update(mover_id, expected_version, **values):
            if store.cas_calls == 0:
                # Another load grabs a heavy item and bumps the version first
                store.put_item("Anvil", weight=5, mover_id=mover_id)
                store.movers[mover_id].version += 1
            return await original(mover_id, expected_version, **values)

        mover_service.movers.update_if_version = racing_update

        with pytest.raises(CapacityExceededError):
            await mover_service.load_items(mover.id, [axe.id])

        assert store.items[axe.id].mover_id is None

    @pytest.mark.asyncio
    async def test_persistent_conflict_becomes_409(self, mover_service, store):
        mover = store.put_mover("Boromir", weight_limit=10)
        store.fail_next_cas = 10

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await mover_service.start_mission(mover.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.context["attempts"] == 3
        assert store.movers[mover.id].quest_state == QuestState.RESTING

    @pytest.mark.asyncio
    async def test_item_claimed_between_check_and_assign(self, mover_service, store):
        mover = store.put_mover("Sam", weight_limit=10)
        other = store.put_mover("Gollum", weight_limit=10)
        item = store.put_item("Ring", weight=1)

        original = mover_service.items.assign

        async def racing_assign(expected, mover_id):
            store.items[item.id].mover_id = other.id
            return await original(expected, mover_id)

        mover_service.items.assign = racing_assign

        with pytest.raises(ConcurrentModificationError):
            await mover_service.load_items(mover.id, [item.id])

    @pytest.mark.asyncio
    async def test_item_reweighed_between_check_and_assign(self, mover_service, item_service, store):
        """A weight change after capacity was checked voids the claim."""
        mover = store.put_mover("Sam", weight_limit=10)
        item = store.put_item("Sack", weight=5)

        original = mover_service.movers.update_if_version

        async def reweigh_then_update(mover_id, expected_version, **values):
            await item_service.update_item(item.id, ItemUpdate(weight=50))
            return await original(mover_id, expected_version, **values)

        mover_service.movers.update_if_version = reweigh_then_update

        with pytest.raises(ConcurrentModificationError):
            await mover_service.load_items(mover.id, [item.id])

        held = [i for i in store.items.values() if i.mover_id == mover.id]
        assert sum(i.weight for i in held) <= store.movers[mover.id].weight_limit
        assert store.items[item.id].mover_id is None
        assert store.items[item.id].weight == 50

    def test_cas_wait_within_configured_bounds(self):
        retry_state = MagicMock(attempt_number=6)

        wait = cas_wait(retry_state)

        assert 0 <= wait <= settings.cas_retry_max_wait + settings.cas_retry_min_wait


class TestTopMovers:

    @pytest.mark.asyncio
    async def test_top_movers_ordered_by_missions(self, mover_service, store):
        store.put_mover("A", weight_limit=1, missions_completed=1)
        store.put_mover("B", weight_limit=1, missions_completed=5)
        store.put_mover("C", weight_limit=1, missions_completed=3)
        store.put_mover("D", weight_limit=1, missions_completed=5)

        result = await mover_service.top_movers()

        assert result.limit == 3
        assert [m.name for m in result.movers] == ["B", "D", "C"]

    @pytest.mark.asyncio
    async def test_top_movers_zero_means_all(self, mover_service, store):
        for i in range(5):
            store.put_mover(f"M{i}", weight_limit=1, missions_completed=i)

        result = await mover_service.top_movers(limit=0)

        assert result.limit is None
        assert len(result.movers) == 5
        assert result.movers[0].missions_completed == 4
