"""Cash handover API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from cash_custody.api.dependencies import ActorId, DbSession, Outbox, Tolerance
from cash_custody.api.schemas import (
    BankDepositCreate,
    ConfirmRequest,
    ConfirmResponse,
    ErrorResponse,
    HandoverCreate,
    HandoverListResponse,
    HandoverResponse,
)
from cash_custody.services import (
    BankDepositService,
    ChainEngine,
    ConfirmationService,
    HandoverQueryService,
    HandoverStatus,
)

router = APIRouter(prefix="/handovers", tags=["handovers"])


# ============================================================================
# Reads
# ============================================================================


@router.get("/pending", response_model=HandoverListResponse)
async def list_pending_handovers(
    db: DbSession,
    actor_id: ActorId,
    station_id: UUID | None = None,
) -> HandoverListResponse:
    """Pending handovers the acting user has to confirm."""
    handovers = await HandoverQueryService(db).list_pending_for_actor(actor_id, station_id)
    return HandoverListResponse(
        items=[HandoverResponse.model_validate(h) for h in handovers],
        count=len(handovers),
    )


@router.get(
    "/{handover_id}",
    response_model=HandoverResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_handover(
    db: DbSession,
    actor_id: ActorId,
    handover_id: Annotated[UUID, Path()],
) -> HandoverResponse:
    """Get a specific handover by ID."""
    queries = HandoverQueryService(db)
    handover = await queries.get_handover(handover_id)
    await queries.ensure_station_access(handover.station_id, actor_id)
    return HandoverResponse.model_validate(handover)


@router.get(
    "/{handover_id}/chain",
    response_model=HandoverListResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_handover_chain(
    db: DbSession,
    actor_id: ActorId,
    handover_id: Annotated[UUID, Path()],
) -> HandoverListResponse:
    """The full chain a handover belongs to, from shift collection onwards."""
    queries = HandoverQueryService(db)
    chain = await queries.get_chain(handover_id)
    await queries.ensure_station_access(chain[0].station_id, actor_id)
    return HandoverListResponse(
        items=[HandoverResponse.model_validate(h) for h in chain],
        count=len(chain),
    )


# ============================================================================
# Chain operations
# ============================================================================


@router.post(
    "",
    response_model=HandoverResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def open_handover(
    db: DbSession,
    actor_id: ActorId,
    outbox: Outbox,
    payload: HandoverCreate,
) -> HandoverResponse:
    """Open the next step of a station's chain in pending status."""
    queries = HandoverQueryService(db)
    await queries.ensure_station_access(payload.station_id, actor_id)

    engine = ChainEngine(db, outbox=outbox)
    handover = await engine.open_handover(
        payload.station_id,
        payload.handover_type.value,
        payload.from_user_id,
        shift_id=payload.shift_id,
        handover_date=payload.handover_date,
        notes=payload.notes,
        actor_id=actor_id,
    )
    await db.commit()
    await outbox.publish()
    return HandoverResponse.model_validate(handover)


@router.post(
    "/bank-deposit",
    response_model=HandoverResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def record_bank_deposit(
    db: DbSession,
    actor_id: ActorId,
    outbox: Outbox,
    tolerance: Tolerance,
    payload: BankDepositCreate,
) -> HandoverResponse:
    """Record the bank deposit that closes a chain."""
    service = BankDepositService(db, outbox=outbox, tolerance=tolerance)
    deposit = await service.record_deposit(
        payload.station_id,
        actor_id,
        payload.amount,
        payload.bank_name,
        payload.deposit_reference,
        deposit_receipt_url=payload.deposit_receipt_url,
        handover_date=payload.handover_date,
        notes=payload.notes,
    )
    await db.commit()
    await outbox.publish()
    return HandoverResponse.model_validate(deposit)


@router.post(
    "/{handover_id}/confirm",
    response_model=ConfirmResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def confirm_handover(
    db: DbSession,
    actor_id: ActorId,
    outbox: Outbox,
    tolerance: Tolerance,
    handover_id: Annotated[UUID, Path()],
    payload: ConfirmRequest,
) -> ConfirmResponse:
    """Confirm receipt of a pending handover."""
    service = ConfirmationService(db, outbox=outbox, tolerance=tolerance)
    handover = await service.confirm(
        handover_id,
        actor_id,
        actual_amount=payload.actual_amount,
        accept_as_is=payload.accept_as_is,
        notes=payload.notes,
    )
    await db.commit()
    await outbox.publish()

    if handover.status == HandoverStatus.DISPUTED.value:
        message = f"Handover confirmed with discrepancy of {handover.difference}"
    else:
        message = "Handover confirmed successfully"
    return ConfirmResponse(handover=HandoverResponse.model_validate(handover), message=message)
