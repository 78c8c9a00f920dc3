"""Bank deposit finalizer - closes a custody chain."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cash_custody.config import VarianceTolerance
from cash_custody.database import lock_station_chain
from cash_custody.events import BankDepositRecorded, EventMetadata, EventOutbox
from cash_custody.models import CashHandover, Station, utcnow
from cash_custody.services.chain_engine import find_open_predecessor, insert_handover
from cash_custody.services.directory import SqlStationDirectory, StationDirectory
from cash_custody.services.errors import (
    AmountMismatch,
    NotFound,
    NotPermitted,
    SequenceViolation,
)
from cash_custody.services.sequencing import HandoverStatus, HandoverType
from cash_custody.services.variance import DEFAULT_TOLERANCE, assess

logger = logging.getLogger(__name__)


class BankDepositService:
    """Records the terminal deposit_to_bank step.

    Unlike a confirmation, a deposit outside tolerance is refused rather than
    stored as disputed: nobody downstream of the bank could adjudicate it.
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

    async def record_deposit(
        self,
        station_id: UUID,
        actor_id: UUID,
        amount: Decimal,
        bank_name: str | None,
        deposit_reference: str | None,
        *,
        deposit_receipt_url: str | None = None,
        handover_date: date | None = None,
        notes: str | None = None,
    ) -> CashHandover:
        """Record a bank deposit against the confirmed manager_to_owner step.

        Raises:
            NotFound: Station does not exist or has no owner.
            NotPermitted: Actor is not the station owner.
            SequenceViolation: No confirmed manager_to_owner awaits deposit.
            AmountMismatch: Amount outside tolerance; nothing is created.
        """
        await lock_station_chain(self.session, station_id)

        if await self.session.get(Station, station_id) is None:
            raise NotFound("Station", station_id)

        owner_id = await self.directory.get_owner_id(station_id)
        if owner_id != actor_id:
            raise NotPermitted(actor_id, "Only the station owner can record bank deposits")

        predecessor = await find_open_predecessor(
            self.session, station_id, HandoverType.DEPOSIT_TO_BANK
        )
        if predecessor is None:
            logger.warning(
                "Bank deposit for station %s rejected: no confirmed manager_to_owner",
                station_id,
            )
            raise SequenceViolation(
                HandoverType.DEPOSIT_TO_BANK.value,
                "no confirmed manager_to_owner awaiting deposit at this station",
            )

        confirmed_amount = predecessor.actual_amount
        assessment = assess(confirmed_amount, amount, self.tolerance)
        if not assessment.within_tolerance:
            logger.warning(
                "Bank deposit for station %s rejected: amount=%s confirmed=%s",
                station_id,
                amount,
                confirmed_amount,
            )
            raise AmountMismatch(confirmed_amount, amount)

        now = utcnow()
        deposit = CashHandover(
            station_id=station_id,
            handover_type=HandoverType.DEPOSIT_TO_BANK.value,
            handover_date=handover_date or now.date(),
            from_user_id=actor_id,
            to_user_id=None,
            previous_handover_id=predecessor.handover_id,
            expected_amount=confirmed_amount,
            actual_amount=amount,
            difference=assessment.difference,
            status=HandoverStatus.CONFIRMED.value,
            confirmed_at=now,
            confirmed_by=actor_id,
            bank_name=bank_name,
            deposit_reference=deposit_reference,
            deposit_receipt_url=deposit_receipt_url,
            notes=notes,
        )
        await insert_handover(self.session, deposit)

        logger.info(
            "Bank deposit %s of %s recorded for station %s (ref=%s)",
            deposit.handover_id,
            amount,
            station_id,
            deposit_reference,
        )

        if self.outbox is not None:
            self.outbox.add(
                BankDepositRecorded(
                    metadata=EventMetadata.create(station_id=station_id, actor_id=actor_id),
                    handover_id=deposit.handover_id,
                    previous_handover_id=predecessor.handover_id,
                    amount=amount,
                    bank_name=bank_name,
                    deposit_reference=deposit_reference,
                )
            )

        return deposit
