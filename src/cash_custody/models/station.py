"""Station and staff assignment models.

Stations and their staff are owned by the wider station management
application; these tables carry only what the custody chain needs to
resolve who manages and who owns a station.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cash_custody.models.base import Base, TimestampMixin


class Station(Base, TimestampMixin):
    """Fuel station."""

    __tablename__ = "station"

    station_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    staff: Mapped[list[StationStaff]] = relationship(back_populates="station")


class StationStaff(Base, TimestampMixin):
    """Assignment of a user to a station in a given role."""

    __tablename__ = "station_staff"

    station_staff_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    station_id: Mapped[UUID] = mapped_column(
        ForeignKey("station.station_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        UniqueConstraint("station_id", "user_id", name="station_staff_station_user_unique"),
        CheckConstraint(
            "role IN ('employee', 'manager', 'owner')",
            name="station_staff_role_check",
        ),
    )

    station: Mapped[Station] = relationship(back_populates="staff")
