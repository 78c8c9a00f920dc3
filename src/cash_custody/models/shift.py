"""Work shift model (written by the shift lifecycle, read by the chain)."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from cash_custody.models.base import Base, TimestampMixin


class Shift(Base, TimestampMixin):
    """An employee's work shift and the cash it collected."""

    __tablename__ = "shift"

    shift_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    station_id: Mapped[UUID] = mapped_column(
        ForeignKey("station.station_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    cash_collected: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'ended')", name="shift_status_check"),
        CheckConstraint("cash_collected >= 0", name="shift_cash_nonnegative"),
    )

    @property
    def is_ended(self) -> bool:
        return self.status == "ended"
