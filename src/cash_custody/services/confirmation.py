"""Confirmation workflow - the receiving actor confirms a pending handover."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cash_custody.config import VarianceTolerance
from cash_custody.events import (
    EventMetadata,
    EventOutbox,
    HandoverConfirmed,
    HandoverDisputed,
)
from cash_custody.models import CashHandover, utcnow
from cash_custody.services.directory import SqlStationDirectory, StationDirectory
from cash_custody.services.errors import (
    AlreadyFinalized,
    AmbiguousConfirmation,
    MissingAmount,
    NotFound,
    NotPermitted,
)
from cash_custody.services.sequencing import HandoverStatus, HandoverStatusMachine
from cash_custody.services.variance import DEFAULT_TOLERANCE, assess

logger = logging.getLogger(__name__)


class ConfirmationService:
    """Service for confirming pending handovers.

    Confirmation is the only transition a handover makes after creation:
    pending → confirmed, or pending → disputed when the confirmed amount
    falls outside tolerance. A disputed handover is kept, not rolled back.
    Opening the next chain step is always a separate call.
    """

    def __init__(
        self,
        session: AsyncSession,
        directory: StationDirectory | None = None,
        outbox: EventOutbox | None = None,
        tolerance: VarianceTolerance = DEFAULT_TOLERANCE,
    ):
        self.session = session
        self.directory = directory or SqlStationDirectory(session)
        self.outbox = outbox
        self.tolerance = tolerance

    async def confirm(
        self,
        handover_id: UUID,
        actor_id: UUID,
        *,
        actual_amount: Decimal | None = None,
        accept_as_is: bool = False,
        notes: str | None = None,
    ) -> CashHandover:
        """Confirm receipt of a pending handover.

        Exactly one of ``actual_amount`` or ``accept_as_is`` must be given;
        accept-as-is confirms the expected amount with zero variance.

        Raises:
            MissingAmount: Neither an amount nor accept-as-is was supplied.
            AmbiguousConfirmation: Both were supplied.
            NotFound: Handover does not exist.
            AlreadyFinalized: Handover is not pending.
            NotPermitted: Actor is neither the receiver nor the station owner.
        """
        if actual_amount is None and not accept_as_is:
            raise MissingAmount()
        if actual_amount is not None and accept_as_is:
            raise AmbiguousConfirmation()

        result = await self.session.execute(
            select(CashHandover)
            .where(CashHandover.handover_id == handover_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        handover = result.scalar_one_or_none()
        if handover is None:
            raise NotFound("Handover", handover_id)

        if HandoverStatusMachine.is_finalized(handover.status):
            raise AlreadyFinalized(handover.handover_id, handover.status)
        await self._ensure_may_confirm(handover, actor_id)

        amount = handover.expected_amount if accept_as_is else actual_amount
        assessment = assess(handover.expected_amount, amount, self.tolerance)

        HandoverStatusMachine.validate_transition(
            handover.handover_id, handover.status, assessment.status.value
        )

        values = {
            "actual_amount": amount,
            "difference": assessment.difference,
            "status": assessment.status.value,
            "confirmed_at": utcnow(),
            "confirmed_by": actor_id,
        }
        if notes:
            values["notes"] = notes
        if assessment.status == HandoverStatus.DISPUTED:
            values["dispute_notes"] = f"Discrepancy of {assessment.difference}"

        # A handover is finalized at most once
        result = await self.session.execute(
            update(CashHandover)
            .where(
                CashHandover.handover_id == handover.handover_id,
                CashHandover.status == HandoverStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self.session.scalar(
                select(CashHandover.status).where(CashHandover.handover_id == handover_id)
            )
            logger.warning(
                "Handover %s was finalized concurrently (status=%s); confirmation by %s rejected",
                handover_id,
                current,
                actor_id,
            )
            raise AlreadyFinalized(handover_id, current)

        await self.session.refresh(handover)

        if assessment.status == HandoverStatus.DISPUTED:
            logger.warning(
                "Handover %s disputed: expected=%s actual=%s difference=%s",
                handover.handover_id,
                handover.expected_amount,
                amount,
                assessment.difference,
            )
        else:
            logger.info(
                "Handover %s confirmed by %s: actual=%s",
                handover.handover_id,
                actor_id,
                amount,
            )

        self._record_event(handover, actor_id, assessment.relative)
        return handover

    async def _ensure_may_confirm(self, handover: CashHandover, actor_id: UUID) -> None:
        """Only the designated receiver, or the station owner, may confirm."""
        if handover.to_user_id == actor_id:
            return
        owner_id = await self.directory.get_owner_id(handover.station_id)
        if owner_id != actor_id:
            raise NotPermitted(actor_id, "Only the designated recipient can confirm")

    def _record_event(self, handover: CashHandover, actor_id: UUID, relative: Decimal) -> None:
        if self.outbox is None:
            return

        metadata = EventMetadata.create(station_id=handover.station_id, actor_id=actor_id)
        if handover.status == HandoverStatus.DISPUTED.value:
            event = HandoverDisputed(
                metadata=metadata,
                handover_id=handover.handover_id,
                handover_type=handover.handover_type,
                expected_amount=handover.expected_amount,
                actual_amount=handover.actual_amount,
                difference=handover.difference,
                relative_variance=relative,
            )
        else:
            event = HandoverConfirmed(
                metadata=metadata,
                handover_id=handover.handover_id,
                handover_type=handover.handover_type,
                expected_amount=handover.expected_amount,
                actual_amount=handover.actual_amount,
                difference=handover.difference,
            )
        self.outbox.add(event)
