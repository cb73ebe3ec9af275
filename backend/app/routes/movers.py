"""
Magic Movers Backend — Mover Route Handlers
=============================================

What:  /movers endpoints: registry (create, list, get, update), the quest
       transitions (load, start-mission, end-mission) and the ranking.
How:   Extracts path/query/body parameters, delegates to MoverService,
       returns JSON. Business rules live in the service.

Route Inventory:
    POST /movers                          create a mover (201)
    GET  /movers                          paginated list
    GET  /movers/top                      ranking by missions completed
    GET  /movers/{id}                     mover with its held items
    PUT  /movers/{id}                     update name / weightLimit / energy
    POST /movers/{id}/load                attach items
    POST /movers/{id}/start-mission       → on_a_mission
    POST /movers/{id}/end-mission         → done, items released
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query, Response

from app.config import settings
from app.dependencies import MoverServiceDep, PaginationDep
from app.schemas.common import ErrorResponse
from app.schemas.mover import (
    LoadItemsRequest,
    MoverCreate,
    MoverListResponse,
    MoverResponse,
    MoverUpdate,
    TopMoversResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/movers", tags=["Movers"])

_NOT_FOUND = {404: {"description": "Mover not found", "model": ErrorResponse}}
_BAD_REQUEST = {400: {"description": "Validation or rule violation", "model": ErrorResponse}}
_CONFLICT = {409: {"description": "Concurrent modification, retry", "model": ErrorResponse}}

MoverId = Annotated[int, Path(description="Mover ID", ge=1)]


@router.post(
    "",
    status_code=201,
    response_model=MoverResponse,
    responses={**_BAD_REQUEST},
    summary="Create a mover",
    description=(
        "Creates a mover in the 'resting' state with no completed missions. "
        "Names are unique; a taken name fails with DuplicateName."
    ),
)
async def create_mover(payload: MoverCreate, service: MoverServiceDep) -> MoverResponse:
    return await service.create_mover(payload)


@router.get(
    "",
    response_model=MoverListResponse,
    summary="List movers",
    description="Paginated list ordered by id (descending by default).",
)
async def list_movers(
    response: Response,
    page: PaginationDep,
    service: MoverServiceDep,
) -> MoverListResponse:
    result = await service.list_movers(
        limit=page.limit, offset=page.offset, descending=page.descending
    )
    response.headers["X-Total-Count"] = str(result.total)
    return result


@router.get(
    "/top",
    response_model=TopMoversResponse,
    summary="Top movers by missions completed",
    description=(
        "Movers ordered by missionsCompleted, most first. The size defaults to "
        "the TOP_MOVERS_LIMIT setting; limit=0 returns every mover."
    ),
)
async def top_movers(
    service: MoverServiceDep,
    limit: Optional[int] = Query(
        default=None,
        ge=0,
        le=settings.max_page_size,
        description=f"Ranking size override (max {settings.max_page_size}); 0 lists every mover",
    ),
) -> TopMoversResponse:
    return await service.top_movers(limit=limit)


@router.get(
    "/{mover_id}",
    response_model=MoverResponse,
    responses={**_NOT_FOUND},
    summary="Get a mover by ID",
)
async def get_mover(mover_id: MoverId, service: MoverServiceDep) -> MoverResponse:
    return await service.get_mover(mover_id)


@router.put(
    "/{mover_id}",
    response_model=MoverResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_CONFLICT},
    summary="Update a mover",
    description=(
        "Updates name, weightLimit and/or energy. questState and "
        "missionsCompleted are changed only by the mission endpoints. "
        "A weightLimit below the currently held weight fails with CapacityExceeded."
    ),
)
async def update_mover(
    mover_id: MoverId,
    payload: MoverUpdate,
    service: MoverServiceDep,
) -> MoverResponse:
    return await service.update_mover(mover_id, payload)


@router.post(
    "/{mover_id}/load",
    response_model=MoverResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_CONFLICT},
    summary="Load items onto a mover",
    description=(
        "Attaches the given items and puts the mover into 'loading'. Fails with "
        "InvalidState while the mover is on a mission and with CapacityExceeded "
        "when held plus requested weight exceeds weightLimit. All-or-nothing."
    ),
)
async def load_mover(
    mover_id: MoverId,
    payload: LoadItemsRequest,
    service: MoverServiceDep,
) -> MoverResponse:
    return await service.load_items(mover_id, payload.item_ids)


@router.post(
    "/{mover_id}/start-mission",
    response_model=MoverResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="Start a mission",
)
async def start_mission(mover_id: MoverId, service: MoverServiceDep) -> MoverResponse:
    return await service.start_mission(mover_id)


@router.post(
    "/{mover_id}/end-mission",
    response_model=MoverResponse,
    responses={**_NOT_FOUND, **_CONFLICT},
    summary="End a mission",
    description=(
        "Unloads every item, sets questState to 'done' and increments "
        "missionsCompleted by one."
    ),
)
async def end_mission(mover_id: MoverId, service: MoverServiceDep) -> MoverResponse:
    return await service.end_mission(mover_id)
