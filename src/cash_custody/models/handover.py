"""Cash handover model: one custody transfer in a station's cash chain."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from cash_custody.models.base import Base, TimestampMixin, UpdatedAtMixin


class CashHandover(Base, TimestampMixin, UpdatedAtMixin):
    """Cash handover record.

    Records form a singly-linked list per chain through
    ``previous_handover_id``:

        shift_collection -> employee_to_manager -> manager_to_owner -> deposit_to_bank

    A confirmed record has at most one successor, and a shift opens at most
    one chain; both are enforced by unique constraints so that concurrent
    writers cannot fork a chain.
    """

    __tablename__ = "cash_handover"

    handover_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    station_id: Mapped[UUID] = mapped_column(
        ForeignKey("station.station_id", ondelete="RESTRICT"),
        nullable=False,
    )
    handover_type: Mapped[str] = mapped_column(String(30), nullable=False)
    handover_date: Mapped[date] = mapped_column(Date, nullable=False)

    from_user_id: Mapped[UUID] = mapped_column(nullable=False)
    to_user_id: Mapped[UUID | None] = mapped_column(nullable=True)

    shift_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("shift.shift_id", ondelete="RESTRICT"),
        nullable=True,
    )
    previous_handover_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("cash_handover.handover_id", ondelete="RESTRICT"),
        nullable=True,
    )

    expected_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    actual_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    difference: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    confirmed_by: Mapped[UUID | None] = mapped_column(nullable=True)

    # Bank deposit details (deposit_to_bank only)
    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deposit_reference: Mapped[str | None] = mapped_column(String(50), nullable=True)
    deposit_receipt_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("previous_handover_id", name="cash_handover_single_successor"),
        UniqueConstraint("shift_id", name="cash_handover_single_chain_per_shift"),
        CheckConstraint(
            "handover_type IN ('shift_collection', 'employee_to_manager', "
            "'manager_to_owner', 'deposit_to_bank')",
            name="cash_handover_type_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'disputed')",
            name="cash_handover_status_check",
        ),
        CheckConstraint("expected_amount >= 0", name="cash_handover_expected_nonnegative"),
        CheckConstraint(
            "(handover_type = 'shift_collection') = (previous_handover_id IS NULL)",
            name="cash_handover_root_check",
        ),
        CheckConstraint(
            "(handover_type = 'deposit_to_bank') = (to_user_id IS NULL)",
            name="cash_handover_receiver_check",
        ),
        CheckConstraint(
            "(status = 'pending') = (actual_amount IS NULL)",
            name="cash_handover_actual_amount_check",
        ),
        Index("ix_cash_handover_station_date", "station_id", "handover_date"),
        Index("ix_cash_handover_station_type_status", "station_id", "handover_type", "status"),
        Index("ix_cash_handover_to_user_status", "to_user_id", "status"),
    )
