"""Station-scoped handover listings and reports."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from cash_custody.api.dependencies import ActorId, DbSession
from cash_custody.api.schemas import (
    BankDepositListResponse,
    CashFlowSummaryResponse,
    ErrorResponse,
    HandoverPageResponse,
    HandoverResponse,
    TypeTotalsResponse,
    UnconfirmedResponse,
)
from cash_custody.services import HandoverQueryService, HandoverStatus, HandoverType

router = APIRouter(
    prefix="/stations/{station_id}",
    tags=["stations"],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _check_range(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must be on or before end_date",
        )


@router.get("/handovers", response_model=HandoverPageResponse)
async def list_station_handovers(
    db: DbSession,
    actor_id: ActorId,
    station_id: Annotated[UUID, Path()],
    start_date: date | None = None,
    end_date: date | None = None,
    handover_type: HandoverType | None = None,
    status_filter: Annotated[HandoverStatus | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 50,
) -> HandoverPageResponse:
    """List a station's handovers with optional filters."""
    _check_range(start_date, end_date)
    queries = HandoverQueryService(db)
    await queries.ensure_station_access(station_id, actor_id)

    items, total = await queries.list_station_handovers(
        station_id,
        start_date=start_date,
        end_date=end_date,
        handover_type=handover_type.value if handover_type else None,
        status=status_filter.value if status_filter else None,
        page=page,
        page_size=page_size,
    )
    return HandoverPageResponse(
        items=[HandoverResponse.model_validate(h) for h in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/handovers/unconfirmed", response_model=UnconfirmedResponse)
async def list_unconfirmed_handovers(
    db: DbSession,
    actor_id: ActorId,
    station_id: Annotated[UUID, Path()],
    start_date: date | None = None,
    end_date: date | None = None,
) -> UnconfirmedResponse:
    """Pending handovers for the day (or a range), with an alert when any exist."""
    _check_range(start_date, end_date)
    queries = HandoverQueryService(db)
    await queries.ensure_station_access(station_id, actor_id)

    pending = await queries.list_unconfirmed(station_id, start_date, end_date)
    alert = f"{len(pending)} handover(s) awaiting confirmation" if pending else None
    return UnconfirmedResponse(
        items=[HandoverResponse.model_validate(h) for h in pending],
        count=len(pending),
        alert=alert,
    )


@router.get("/handovers/summary", response_model=CashFlowSummaryResponse)
async def get_cash_flow_summary(
    db: DbSession,
    actor_id: ActorId,
    station_id: Annotated[UUID, Path()],
    start_date: date,
    end_date: date,
) -> CashFlowSummaryResponse:
    """Confirmed cash flow per handover type over a date range."""
    _check_range(start_date, end_date)
    queries = HandoverQueryService(db)
    await queries.ensure_station_access(station_id, actor_id)

    summary = await queries.cash_flow_summary(station_id, start_date, end_date)
    return CashFlowSummaryResponse(
        station_id=summary.station_id,
        start_date=summary.start_date,
        end_date=summary.end_date,
        by_type=[TypeTotalsResponse.model_validate(t) for t in summary.by_type],
        pending_count=summary.pending_count,
        disputed_count=summary.disputed_count,
    )


@router.get("/handovers/bank-deposits", response_model=BankDepositListResponse)
async def list_bank_deposits(
    db: DbSession,
    actor_id: ActorId,
    station_id: Annotated[UUID, Path()],
    start_date: date,
    end_date: date,
) -> BankDepositListResponse:
    """Bank deposit register for a date range."""
    _check_range(start_date, end_date)
    queries = HandoverQueryService(db)
    await queries.ensure_station_access(station_id, actor_id)

    register = await queries.list_bank_deposits(station_id, start_date, end_date)
    return BankDepositListResponse(
        items=[HandoverResponse.model_validate(d) for d in register.deposits],
        count=register.count,
        total_deposited=register.total_deposited,
    )
