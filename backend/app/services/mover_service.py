"""
Magic Movers Backend — Mover Service (Registry + Quest-State Machine)
=======================================================================

What:  Business rules for movers: create/list/get/update, loading items,
       starting and ending missions, and ranking by missions completed.
How:   Works against the MoverRepository / ItemRepository interfaces, so the
       same rules run on PostgreSQL in production and on an in-memory fake
       in the tests.
Who:   Called by the /movers route handlers.

Quest-State Machine:
    ┌─────────┐  load   ┌─────────┐  start   ┌──────────────┐  end   ┌──────┐
    │ resting │───────▶│ loading │────────▶│ on_a_mission │──────▶│ done │
    └─────────┘         └─────────┘          └──────────────┘        └──────┘
                          ▲   │ load                                    │
                          └───┘◀────────────────── load ────────────────┘

    - load is rejected only while on_a_mission
    - start-mission is accepted from any state
    - end-mission releases every held item and adds exactly one to
      missions_completed

Atomicity:
    Each transition reads the mover, validates, then writes with
    update_if_version(). When the version moved in between, nothing was
    written; StaleMoverError makes tenacity re-run the read-validate-write
    sequence. Item attachment happens after the mover write succeeded, in the
    same transaction, and is itself conditional: if another mover claimed
    one of the items first, or an item's weight changed after capacity was
    checked, the request fails and the transaction rolls back.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.config import settings
from app.exceptions import (
    CapacityExceededError,
    ConcurrentModificationError,
    DuplicateNameError,
    InvalidStateError,
    NotFoundError,
)
from app.models.item import Item
from app.models.mover import Mover, QuestState
from app.repositories.base import ItemRepository, MoverRepository
from app.schemas.item import ItemResponse
from app.schemas.mover import (
    MoverCreate,
    MoverListItem,
    MoverListResponse,
    MoverResponse,
    MoverUpdate,
    TopMoversResponse,
)

logger = logging.getLogger(__name__)
actions_logger = logging.getLogger("magicmovers.actions")


class StaleMoverError(Exception):
    """A compare-and-swap write matched no row; the mover changed since it was read."""

    def __init__(self, mover_id: int):
        super().__init__(f"Mover {mover_id} was modified concurrently")
        self.mover_id = mover_id


# Exponential backoff between CAS_RETRY_MIN_WAIT and CAS_RETRY_MAX_WAIT plus jitter
cas_wait = wait_exponential(
    multiplier=settings.cas_retry_min_wait,
    min=settings.cas_retry_min_wait,
    max=settings.cas_retry_max_wait,
) + wait_random(0, settings.cas_retry_min_wait)

# Re-runs a whole read-validate-write sequence after a lost version race.
# Validation errors (NotFound, CapacityExceeded, ...) are not retried.
retry_on_stale = retry(
    retry=retry_if_exception_type(StaleMoverError),
    stop=stop_after_attempt(settings.cas_max_attempts),
    wait=cas_wait,
    before_sleep=before_sleep_log(logger, logging.WARNING),
)


def held_weight(items: Sequence[Item]) -> int:
    return sum(item.weight for item in items)


def build_mover_response(mover: Mover, held: Sequence[Item]) -> MoverResponse:
    """Combine a mover row and its held items into the API representation."""
    summary = MoverListItem.model_validate(mover)
    return MoverResponse(
        **summary.model_dump(),
        items=[ItemResponse.model_validate(item) for item in held],
        total_weight=held_weight(held),
    )


class MoverService:
    """
    Business logic layer for mover operations.

    Responsibilities:
        - create_mover / list_movers / get_mover / update_mover: registry
        - load_items / start_mission / end_mission: quest transitions
        - top_movers: ranking by missions_completed

    Error Handling:
        Rule violations raise the matching MagicMoversError subclass before
        anything is written. A compare-and-swap that keeps losing after
        CAS_MAX_ATTEMPTS becomes ConcurrentModificationError.
    """

    def __init__(
        self,
        movers: MoverRepository,
        items: ItemRepository,
        top_limit: Optional[int] = None,
    ):
        self.movers = movers
        self.items = items
        self.top_limit = settings.top_movers_limit if top_limit is None else top_limit

    # ── Registry ──────────────────────────────────────────────────────────

    async def create_mover(self, payload: MoverCreate) -> MoverResponse:
        """
        Create a mover in the `resting` state with no completed missions.

        Raises:
            DuplicateNameError: Another mover already uses the name
        """
        if await self.movers.get_by_name(payload.name) is not None:
            raise DuplicateNameError("mover", payload.name)

        mover = await self.movers.add(
            Mover(
                name=payload.name,
                weight_limit=payload.weight_limit,
                energy=payload.energy,
                quest_state=QuestState.RESTING,
                missions_completed=0,
                version=1,
            )
        )
        logger.info("Mover created: %s (id=%s)", mover.name, mover.id)
        return build_mover_response(mover, [])

    async def list_movers(
        self, limit: int, offset: int = 0, descending: bool = True
    ) -> MoverListResponse:
        movers, total = await self.movers.list(limit=limit, offset=offset, descending=descending)
        return MoverListResponse(
            total=total,
            limit=limit,
            offset=offset,
            movers=[MoverListItem.model_validate(m) for m in movers],
        )

    async def get_mover(self, mover_id: int) -> MoverResponse:
        """Fetch a mover with its held items (NotFoundError if absent)."""
        mover = await self._require_mover(mover_id)
        return await self._snapshot(mover)

    async def update_mover(self, mover_id: int, payload: MoverUpdate) -> MoverResponse:
        """
        Rename a mover or change its weight limit / energy.

        Raises:
            NotFoundError: Mover does not exist
            DuplicateNameError: New name belongs to another mover
            CapacityExceededError: New weight limit is below the held weight
            ConcurrentModificationError: Lost the version race on every attempt
        """
        changes = payload.model_dump(exclude_none=True)
        try:
            await self._apply_update(mover_id, changes)
        except RetryError as e:
            raise self._conflict(mover_id, "update", e) from e
        return await self.get_mover(mover_id)

    # ── Quest transitions ─────────────────────────────────────────────────

    async def load_items(self, mover_id: int, item_ids: Sequence[int]) -> MoverResponse:
        """
        Attach items to a mover and put it into the `loading` state.

        All-or-nothing: either every requested item ends up held by the
        mover, or nothing changes.

        Raises:
            NotFoundError: Mover or any of the items does not exist
            InvalidStateError: Mover is on a mission, or an item is held by
                               another mover
            CapacityExceededError: Held + requested weight > weight_limit
            ConcurrentModificationError: Lost a race with another writer
        """
        item_ids = list(item_ids)
        try:
            await self._load(mover_id, item_ids)
        except RetryError as e:
            raise self._conflict(mover_id, "load", e) from e

        actions_logger.info(
            "Mover with ID %d loaded with items: %s",
            mover_id,
            ", ".join(str(i) for i in item_ids),
        )
        return await self.get_mover(mover_id)

    async def start_mission(self, mover_id: int) -> MoverResponse:
        """Put the mover on a mission, whatever its current state."""
        try:
            await self._transition(mover_id, quest_state=QuestState.ON_A_MISSION)
        except RetryError as e:
            raise self._conflict(mover_id, "start mission", e) from e

        actions_logger.info("Mover with ID %d started a mission", mover_id)
        return await self.get_mover(mover_id)

    async def end_mission(self, mover_id: int) -> MoverResponse:
        """
        Finish the mover's mission.

        Detaches every held item, sets `done` and increments
        missions_completed by exactly one, in one transaction.
        """
        try:
            released = await self._end(mover_id)
        except RetryError as e:
            raise self._conflict(mover_id, "end mission", e) from e

        actions_logger.info(
            "Mover with ID %d has completed the mission and unloaded %d item(s)",
            mover_id,
            released,
        )
        return await self.get_mover(mover_id)

    async def top_movers(self, limit: Optional[int] = None) -> TopMoversResponse:
        """
        Movers ordered by missions_completed, most first (ties by id).

        Args:
            limit: Ranking size; defaults to TOP_MOVERS_LIMIT. 0 lists everyone.
        """
        size = self.top_limit if limit is None else limit
        effective: Optional[int] = size or None
        movers = await self.movers.top(effective)
        return TopMoversResponse(
            limit=effective,
            movers=[MoverListItem.model_validate(m) for m in movers],
        )

    # ── Internals ─────────────────────────────────────────────────────────

    async def _require_mover(self, mover_id: int) -> Mover:
        mover = await self.movers.get(mover_id)
        if mover is None:
            raise NotFoundError(resource="mover", resource_id=mover_id)
        return mover

    async def _snapshot(self, mover: Mover) -> MoverResponse:
        held = await self.items.held_by(mover.id)
        return build_mover_response(mover, held)

    async def _compare_and_set(self, mover: Mover, **values: Any) -> None:
        if not await self.movers.update_if_version(mover.id, mover.version, **values):
            raise StaleMoverError(mover.id)

    @retry_on_stale
    async def _apply_update(self, mover_id: int, changes: Dict[str, Any]) -> None:
        mover = await self._require_mover(mover_id)

        new_name = changes.get("name")
        if new_name is not None and new_name != mover.name:
            existing = await self.movers.get_by_name(new_name)
            if existing is not None and existing.id != mover_id:
                raise DuplicateNameError("mover", new_name)

        new_limit = changes.get("weight_limit")
        if new_limit is not None:
            current = held_weight(await self.items.held_by(mover_id))
            if current > new_limit:
                raise CapacityExceededError(
                    weight_limit=new_limit,
                    total_weight=current,
                    context={"mover_id": mover_id},
                )

        await self._compare_and_set(mover, **changes)

    @retry_on_stale
    async def _load(self, mover_id: int, item_ids: List[int]) -> None:
        mover = await self._require_mover(mover_id)

        if mover.quest_state == QuestState.ON_A_MISSION:
            raise InvalidStateError(
                message=f"Mover {mover_id} is on a mission and cannot be loaded",
                context={"mover_id": mover_id, "quest_state": mover.quest_state.value},
            )

        requested = await self.items.get_many(item_ids)
        missing = set(item_ids) - {item.id for item in requested}
        if missing:
            raise NotFoundError(resource="item", missing_ids=missing)

        taken = sorted(
            item.id for item in requested
            if item.mover_id is not None and item.mover_id != mover_id
        )
        if taken:
            raise InvalidStateError(
                message=(
                    "Items already held by another mover: "
                    + ", ".join(str(i) for i in taken)
                ),
                context={"mover_id": mover_id, "item_ids": taken},
            )

        held = await self.items.held_by(mover_id)
        held_ids = {item.id for item in held}
        total = held_weight(held) + held_weight(
            [item for item in requested if item.id not in held_ids]
        )
        if total > mover.weight_limit:
            raise CapacityExceededError(
                weight_limit=mover.weight_limit,
                total_weight=total,
                context={"mover_id": mover_id},
            )

        await self._compare_and_set(mover, quest_state=QuestState.LOADING)

        claimed = await self.items.assign({item.id: item.weight for item in requested}, mover_id)
        if claimed != len(requested):
            # The mover row is already written; raising rolls back the request
            raise ConcurrentModificationError(
                message="One or more items were claimed or reweighed concurrently. Please retry.",
                context={"mover_id": mover_id, "item_ids": item_ids},
            )

    @retry_on_stale
    async def _transition(self, mover_id: int, **values: Any) -> None:
        mover = await self._require_mover(mover_id)
        await self._compare_and_set(mover, **values)

    @retry_on_stale
    async def _end(self, mover_id: int) -> int:
        mover = await self._require_mover(mover_id)
        await self._compare_and_set(
            mover,
            quest_state=QuestState.DONE,
            missions_completed=mover.missions_completed + 1,
        )
        return await self.items.release_all(mover_id)

    @staticmethod
    def _conflict(mover_id: int, operation: str, error: RetryError) -> ConcurrentModificationError:
        attempts = error.last_attempt.attempt_number if error.last_attempt else None
        logger.warning(
            "Giving up on %s for mover %d after %s attempts (version conflicts)",
            operation,
            mover_id,
            attempts,
        )
        return ConcurrentModificationError(
            context={"mover_id": mover_id, "operation": operation, "attempts": attempts},
        )
