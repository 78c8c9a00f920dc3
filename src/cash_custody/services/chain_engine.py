"""Chain engine - opens custody chain steps.

Each step is linked to the most recent confirmed step of the preceding
type that has not been advanced yet. The receiving actor and the expected
amount are always derived, never taken from the caller.
"""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from cash_custody.database import lock_station_chain
from cash_custody.events import EventMetadata, EventOutbox, HandoverOpened
from cash_custody.models import CashHandover, Shift, Station, utcnow
from cash_custody.services.directory import (
    SqlStationDirectory,
    StationDirectory,
    resolve_receiver,
)
from cash_custody.services.errors import NotFound, NotPermitted, SequenceViolation
from cash_custody.services.sequencing import (
    HandoverSequence,
    HandoverStatus,
    HandoverType,
)

logger = logging.getLogger(__name__)


async def find_open_predecessor(
    session: AsyncSession,
    station_id: UUID,
    handover_type: HandoverType,
    from_user_id: UUID | None = None,
    *,
    for_update: bool = True,
) -> CashHandover | None:
    """Find the chain head a new step of ``handover_type`` would attach to.

    That is the latest confirmed handover of the preceding type at the
    station which has no successor yet.
    """
    predecessor_type = HandoverSequence.predecessor(handover_type)
    if predecessor_type is None:
        return None

    successor = aliased(CashHandover)
    query = select(CashHandover).where(
        CashHandover.station_id == station_id,
        CashHandover.handover_type == predecessor_type.value,
        CashHandover.status == HandoverStatus.CONFIRMED.value,
        ~exists().where(successor.previous_handover_id == CashHandover.handover_id),
    )
    if predecessor_type == HandoverType.SHIFT_COLLECTION and from_user_id is not None:
        # Employees hand over the cash of their own shift
        query = query.where(CashHandover.from_user_id == from_user_id)

    query = query.order_by(
        CashHandover.confirmed_at.desc(), CashHandover.created_at.desc()
    ).limit(1)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)

    result = await session.execute(query)
    return result.scalar_one_or_none()


async def insert_handover(session: AsyncSession, handover: CashHandover) -> CashHandover:
    """Persist a new chain step.

    A unique-constraint violation means another request attached to the
    same predecessor (or shift) first.
    """
    session.add(handover)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning(
            "Concurrent %s for station %s rejected",
            handover.handover_type,
            handover.station_id,
        )
        raise SequenceViolation(
            handover.handover_type,
            "the chain was already advanced by another request",
        ) from exc
    return handover


class ChainEngine:
    """Service for opening custody chain steps.

    Operations:
    - open_handover: open the next step of a station's chain
    - open_from_shift: open shift_collection when a shift ends
    """

    def __init__(
        self,
        session: AsyncSession,
        directory: StationDirectory | None = None,
        outbox: EventOutbox | None = None,
    ):
        self.session = session
        self.directory = directory or SqlStationDirectory(session)
        self.outbox = outbox

    async def open_handover(
        self,
        station_id: UUID,
        handover_type: str,
        from_user_id: UUID,
        *,
        shift_id: UUID | None = None,
        handover_date: date | None = None,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> CashHandover:
        """Open a pending chain step.

        ``actor_id`` is the user making the request; when given it must be
        the sender or the station owner.

        Raises:
            SequenceViolation: Predecessor missing/unconfirmed or already advanced.
            NotFound: Station, shift, or receiving role does not exist.
            NotPermitted: from_user_id does not belong to the station/shift or
                does not hold the cash, or the actor may not open for them.
        """
        try:
            htype = HandoverType(handover_type)
        except ValueError:
            raise SequenceViolation(str(handover_type), "unknown handover type") from None

        if htype == HandoverType.DEPOSIT_TO_BANK:
            raise SequenceViolation(
                htype.value, "bank deposits are recorded through the deposit endpoint"
            )

        await lock_station_chain(self.session, station_id)

        if await self.session.get(Station, station_id) is None:
            raise NotFound("Station", station_id)
        if not await self.directory.is_member(station_id, from_user_id):
            raise NotPermitted(from_user_id, "User does not belong to this station")
        await self._ensure_may_open(station_id, from_user_id, actor_id)

        previous_handover_id: UUID | None = None
        if htype == HandoverType.SHIFT_COLLECTION:
            shift = await self._load_shift_for_collection(station_id, shift_id, from_user_id)
            expected_amount = shift.cash_collected
            handover_date = shift.shift_date
        else:
            predecessor = await find_open_predecessor(
                self.session, station_id, htype, from_user_id
            )
            if predecessor is None:
                logger.warning(
                    "Sequence violation: %s requested for station %s without a confirmed %s",
                    htype.value,
                    station_id,
                    HandoverSequence.predecessor(htype).value,
                )
                raise SequenceViolation(
                    htype.value,
                    f"no confirmed {HandoverSequence.predecessor(htype).value} "
                    "awaiting handover at this station",
                )
            if (
                predecessor.handover_type != HandoverType.SHIFT_COLLECTION.value
                and predecessor.to_user_id != from_user_id
            ):
                # The receiver of the previous step is the one holding the cash
                raise NotPermitted(
                    from_user_id, f"Only the holder of the cash can open {htype.value}"
                )
            expected_amount = predecessor.actual_amount
            previous_handover_id = predecessor.handover_id
            shift_id = None

        to_user_id = await resolve_receiver(
            self.directory, station_id, HandoverSequence.receiver_role(htype)
        )

        handover = CashHandover(
            station_id=station_id,
            handover_type=htype.value,
            handover_date=handover_date or utcnow().date(),
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            shift_id=shift_id,
            previous_handover_id=previous_handover_id,
            expected_amount=expected_amount,
            status=HandoverStatus.PENDING.value,
            notes=notes,
        )
        await insert_handover(self.session, handover)

        logger.info(
            "Opened %s %s for station %s: expected=%s to_user=%s",
            handover.handover_type,
            handover.handover_id,
            station_id,
            expected_amount,
            to_user_id,
        )

        if self.outbox is not None:
            self.outbox.add(
                HandoverOpened(
                    metadata=EventMetadata.create(
                        station_id=station_id, actor_id=actor_id or from_user_id
                    ),
                    handover_id=handover.handover_id,
                    handover_type=handover.handover_type,
                    from_user_id=from_user_id,
                    to_user_id=to_user_id,
                    expected_amount=expected_amount,
                    previous_handover_id=previous_handover_id,
                )
            )

        return handover

    async def open_from_shift(self, shift_id: UUID, notes: str | None = None) -> CashHandover:
        """Open the shift_collection step for an ended shift."""
        shift = await self.session.get(Shift, shift_id)
        if shift is None:
            raise NotFound("Shift", shift_id)

        return await self.open_handover(
            shift.station_id,
            HandoverType.SHIFT_COLLECTION.value,
            shift.employee_id,
            shift_id=shift_id,
            notes=notes,
        )

    async def _ensure_may_open(
        self, station_id: UUID, from_user_id: UUID, actor_id: UUID | None
    ) -> None:
        if actor_id is None or actor_id == from_user_id:
            return
        try:
            owner_id = await self.directory.get_owner_id(station_id)
        except NotFound:
            owner_id = None
        if owner_id != actor_id:
            raise NotPermitted(actor_id, "Only the sender can open this handover")

    async def _load_shift_for_collection(
        self,
        station_id: UUID,
        shift_id: UUID | None,
        from_user_id: UUID,
    ) -> Shift:
        if shift_id is None:
            raise NotFound("Shift", reason="shift_collection requires a shift reference")

        shift = await self.session.get(Shift, shift_id, with_for_update=True)
        if shift is None or shift.station_id != station_id:
            raise NotFound("Shift", shift_id)
        if not shift.is_ended:
            raise SequenceViolation(
                HandoverType.SHIFT_COLLECTION.value, "the shift has not ended yet"
            )
        if shift.employee_id != from_user_id:
            raise NotPermitted(from_user_id, "Only the shift's employee can hand over its cash")

        existing = await self.session.execute(
            select(CashHandover.handover_id).where(CashHandover.shift_id == shift_id)
        )
        if existing.first() is not None:
            raise SequenceViolation(
                HandoverType.SHIFT_COLLECTION.value, "the shift's cash was already collected"
            )
        return shift
