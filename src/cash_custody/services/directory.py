"""Role/station directory used to route cash between actors."""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cash_custody.models import Station, StationStaff
from cash_custody.services.errors import NotFound
from cash_custody.services.sequencing import StaffRole


@runtime_checkable
class StationDirectory(Protocol):
    """Answers who holds which role at a station."""

    async def get_manager_id(self, station_id: UUID) -> UUID:
        """Current manager of the station. Raises NotFound if unassigned."""
        ...

    async def get_owner_id(self, station_id: UUID) -> UUID:
        """Current owner of the station. Raises NotFound if unassigned."""
        ...

    async def is_member(self, station_id: UUID, user_id: UUID) -> bool:
        """Whether the user belongs to the station in any role."""
        ...


class SqlStationDirectory:
    """Directory backed by the ``station`` and ``station_staff`` tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def ensure_station(self, station_id: UUID) -> Station:
        station = await self.session.get(Station, station_id)
        if station is None:
            raise NotFound("Station", station_id)
        return station

    async def _user_with_role(self, station_id: UUID, role: StaffRole) -> UUID:
        await self.ensure_station(station_id)
        result = await self.session.execute(
            select(StationStaff.user_id)
            .where(
                StationStaff.station_id == station_id,
                StationStaff.role == role.value,
            )
            .order_by(StationStaff.created_at.desc())
            .limit(1)
        )
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise NotFound("Station", station_id, reason=f"no {role.value} assigned")
        return user_id

    async def get_manager_id(self, station_id: UUID) -> UUID:
        return await self._user_with_role(station_id, StaffRole.MANAGER)

    async def get_owner_id(self, station_id: UUID) -> UUID:
        return await self._user_with_role(station_id, StaffRole.OWNER)

    async def is_member(self, station_id: UUID, user_id: UUID) -> bool:
        result = await self.session.execute(
            select(StationStaff.station_staff_id).where(
                StationStaff.station_id == station_id,
                StationStaff.user_id == user_id,
            )
        )
        return result.first() is not None


async def resolve_receiver(
    directory: StationDirectory, station_id: UUID, role: StaffRole | None
) -> UUID | None:
    """Resolve the user holding ``role`` at the station (None for no receiver)."""
    if role is None:
        return None
    if role == StaffRole.MANAGER:
        return await directory.get_manager_id(station_id)
    if role == StaffRole.OWNER:
        return await directory.get_owner_id(station_id)
    raise ValueError(f"Cash is never routed to role {role.value}")
