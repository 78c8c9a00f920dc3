"""End-to-end custody of one shift's cash from collection to bank."""

from decimal import Decimal

from cash_custody.services import (
    BankDepositService,
    ChainEngine,
    ConfirmationService,
    HandoverQueryService,
    HandoverSequence,
)


class TestFullChain:
    """A shift reporting 1500.00 in cash, carried through to the bank."""

    async def test_shift_to_bank(self, session, station, staff, ended_shift, outbox, captured_events):
        engine = ChainEngine(session, outbox=outbox)
        confirmations = ConfirmationService(session, outbox=outbox)

        collection = await engine.open_from_shift(ended_shift.shift_id)
        assert collection.expected_amount == Decimal("1500.00")
        collection = await confirmations.confirm(
            collection.handover_id, staff.manager_id, accept_as_is=True
        )
        assert collection.actual_amount == Decimal("1500.00")
        assert collection.status == "confirmed"

        to_manager = await engine.open_handover(
            station.station_id, "employee_to_manager", staff.employee_id
        )
        assert to_manager.expected_amount == Decimal("1500.00")
        to_manager = await confirmations.confirm(
            to_manager.handover_id, staff.manager_id, actual_amount=Decimal("1500.00")
        )
        assert to_manager.status == "confirmed"

        to_owner = await engine.open_handover(
            station.station_id, "manager_to_owner", staff.manager_id
        )
        assert to_owner.expected_amount == Decimal("1500.00")
        await confirmations.confirm(to_owner.handover_id, staff.owner_id, accept_as_is=True)

        deposit = await BankDepositService(session, outbox=outbox).record_deposit(
            station.station_id, staff.owner_id, Decimal("1500.00"), "State Bank", "DEP-1500"
        )
        await session.commit()
        assert captured_events == []
        await outbox.publish()

        chain = await HandoverQueryService(session).get_chain(collection.handover_id)
        assert len(chain) == 4
        assert [h.handover_id for h in chain][-1] == deposit.handover_id
        assert HandoverSequence.is_valid_chain([h.handover_type for h in chain])
        assert all(h.status == "confirmed" for h in chain)
        assert all(h.actual_amount == Decimal("1500.00") for h in chain)

        assert [e.event_type for e in captured_events] == [
            "HandoverOpened",
            "HandoverConfirmed",
            "HandoverOpened",
            "HandoverConfirmed",
            "HandoverOpened",
            "HandoverConfirmed",
            "BankDepositRecorded",
        ]
