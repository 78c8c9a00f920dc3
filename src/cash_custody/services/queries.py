"""Read-side queries over custody chains. Reads take no locks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cash_custody.models import CashHandover, Station, utcnow
from cash_custody.services.directory import SqlStationDirectory, StationDirectory
from cash_custody.services.errors import NotFound, NotPermitted
from cash_custody.services.sequencing import HandoverSequence, HandoverStatus, HandoverType


def _as_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass
class TypeTotals:
    """Confirmed totals for one handover type."""

    handover_type: str
    count: int
    total_amount: Decimal
    total_difference: Decimal


@dataclass
class CashFlowSummary:
    """Cash movement through a station's chains over a date range."""

    station_id: UUID
    start_date: date
    end_date: date
    by_type: list[TypeTotals] = field(default_factory=list)
    pending_count: int = 0
    disputed_count: int = 0


@dataclass
class BankDepositRegister:
    """Bank deposits over a date range."""

    deposits: list[CashHandover]
    total_deposited: Decimal

    @property
    def count(self) -> int:
        return len(self.deposits)


class HandoverQueryService:
    """Lookups for handovers and chains."""

    def __init__(self, session: AsyncSession, directory: StationDirectory | None = None):
        self.session = session
        self.directory = directory or SqlStationDirectory(session)

    async def ensure_station_access(self, station_id: UUID, actor_id: UUID) -> None:
        """Station must exist and the actor must belong to it."""
        if await self.session.get(Station, station_id) is None:
            raise NotFound("Station", station_id)
        if not await self.directory.is_member(station_id, actor_id):
            raise NotPermitted(actor_id, "Not authorized to access this station")

    async def get_handover(self, handover_id: UUID) -> CashHandover:
        handover = await self.session.get(CashHandover, handover_id)
        if handover is None:
            raise NotFound("Handover", handover_id)
        return handover

    async def list_pending_for_actor(
        self, actor_id: UUID, station_id: UUID | None = None
    ) -> list[CashHandover]:
        """Pending handovers the actor is expected to confirm, newest first."""
        query = select(CashHandover).where(
            CashHandover.to_user_id == actor_id,
            CashHandover.status == HandoverStatus.PENDING.value,
        )
        if station_id is not None:
            query = query.where(CashHandover.station_id == station_id)
        query = query.order_by(
            CashHandover.handover_date.desc(), CashHandover.created_at.desc()
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_chain(self, handover_id: UUID) -> list[CashHandover]:
        """Full chain containing a handover, root first.

        Walks ``previous_handover_id`` back to the shift_collection root,
        then follows successors forward to the current tip.
        """
        current = await self.get_handover(handover_id)

        backward: list[CashHandover] = [current]
        while backward[-1].previous_handover_id is not None:
            previous = await self.session.get(CashHandover, backward[-1].previous_handover_id)
            if previous is None:
                break
            backward.append(previous)
        chain = list(reversed(backward))

        tip = current
        while not HandoverSequence.is_terminal(tip.handover_type):
            result = await self.session.execute(
                select(CashHandover).where(CashHandover.previous_handover_id == tip.handover_id)
            )
            successor = result.scalar_one_or_none()
            if successor is None:
                break
            chain.append(successor)
            tip = successor

        return chain

    async def list_station_handovers(
        self,
        station_id: UUID,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        handover_type: str | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[CashHandover], int]:
        """Filtered, paginated handovers for a station, newest first."""
        query = select(CashHandover).where(CashHandover.station_id == station_id)
        if start_date is not None and end_date is not None:
            query = query.where(CashHandover.handover_date.between(start_date, end_date))
        if handover_type:
            query = query.where(CashHandover.handover_type == handover_type)
        if status:
            query = query.where(CashHandover.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.session.scalar(count_query) or 0

        query = query.order_by(
            CashHandover.handover_date.desc(), CashHandover.created_at.desc()
        )
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def list_unconfirmed(
        self,
        station_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[CashHandover]:
        """Pending handovers in a date range (default today), oldest first."""
        today = utcnow().date()
        start = start_date or today
        end = end_date or today

        result = await self.session.execute(
            select(CashHandover)
            .where(
                CashHandover.station_id == station_id,
                CashHandover.handover_date.between(start, end),
                CashHandover.status == HandoverStatus.PENDING.value,
            )
            .order_by(CashHandover.handover_date.asc(), CashHandover.created_at.asc())
        )
        return list(result.scalars().all())

    async def cash_flow_summary(
        self, station_id: UUID, start_date: date, end_date: date
    ) -> CashFlowSummary:
        """Confirmed totals per type plus pending/disputed counts."""
        in_range = (
            CashHandover.station_id == station_id,
            CashHandover.handover_date.between(start_date, end_date),
        )

        totals = await self.session.execute(
            select(
                CashHandover.handover_type,
                func.count(CashHandover.handover_id),
                func.sum(CashHandover.actual_amount),
                func.sum(CashHandover.difference),
            )
            .where(*in_range, CashHandover.status == HandoverStatus.CONFIRMED.value)
            .group_by(CashHandover.handover_type)
        )
        rows = {row[0]: row for row in totals.all()}

        by_type = [
            TypeTotals(
                handover_type=htype.value,
                count=rows[htype.value][1],
                total_amount=_as_decimal(rows[htype.value][2]),
                total_difference=_as_decimal(rows[htype.value][3]),
            )
            for htype in HandoverType
            if htype.value in rows
        ]

        counts = await self.session.execute(
            select(CashHandover.status, func.count(CashHandover.handover_id))
            .where(
                *in_range,
                CashHandover.status.in_(
                    [HandoverStatus.PENDING.value, HandoverStatus.DISPUTED.value]
                ),
            )
            .group_by(CashHandover.status)
        )
        status_counts = dict(counts.all())

        return CashFlowSummary(
            station_id=station_id,
            start_date=start_date,
            end_date=end_date,
            by_type=by_type,
            pending_count=status_counts.get(HandoverStatus.PENDING.value, 0),
            disputed_count=status_counts.get(HandoverStatus.DISPUTED.value, 0),
        )

    async def list_bank_deposits(
        self, station_id: UUID, start_date: date, end_date: date
    ) -> BankDepositRegister:
        """Bank deposits in a date range, newest first, with their total."""
        result = await self.session.execute(
            select(CashHandover)
            .where(
                CashHandover.station_id == station_id,
                CashHandover.handover_type == HandoverType.DEPOSIT_TO_BANK.value,
                CashHandover.handover_date.between(start_date, end_date),
            )
            .order_by(CashHandover.handover_date.desc(), CashHandover.created_at.desc())
        )
        deposits = list(result.scalars().all())
        total = sum((_as_decimal(d.actual_amount) for d in deposits), Decimal("0"))
        return BankDepositRegister(deposits=deposits, total_deposited=total)
