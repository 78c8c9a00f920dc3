"""Shift-end hook that starts a custody chain."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from cash_custody.api.dependencies import ActorId, DbSession, Outbox
from cash_custody.api.schemas import ErrorResponse, HandoverResponse, ShiftHandoverRequest
from cash_custody.models import Shift
from cash_custody.services import ChainEngine, HandoverQueryService, NotFound

router = APIRouter(prefix="/shifts", tags=["shifts"])


@router.post(
    "/{shift_id}/handover",
    response_model=HandoverResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def open_shift_handover(
    db: DbSession,
    actor_id: ActorId,
    outbox: Outbox,
    shift_id: Annotated[UUID, Path()],
    payload: ShiftHandoverRequest | None = None,
) -> HandoverResponse:
    """Open the shift_collection handover for an ended shift."""
    shift = await db.get(Shift, shift_id)
    if shift is None:
        raise NotFound("Shift", shift_id)
    await HandoverQueryService(db).ensure_station_access(shift.station_id, actor_id)

    engine = ChainEngine(db, outbox=outbox)
    handover = await engine.open_from_shift(
        shift_id, notes=payload.notes if payload else None
    )
    await db.commit()
    await outbox.publish()
    return HandoverResponse.model_validate(handover)
