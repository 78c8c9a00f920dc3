"""Pytest fixtures for cash custody tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cash_custody.events import AsyncEventEmitter, DomainEvent, EventOutbox
from cash_custody.models import Base, CashHandover, Shift, Station, StationStaff, utcnow
from cash_custody.services import ChainEngine, ConfirmationService

# In-memory SQLite shared across sessions of one test.
# PostgreSQL-only locking is skipped on this backend.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@dataclass
class StationStaffIds:
    """Users assigned to the test station."""

    employee_id: UUID
    manager_id: UUID
    owner_id: UUID


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def staff() -> StationStaffIds:
    return StationStaffIds(employee_id=uuid4(), manager_id=uuid4(), owner_id=uuid4())


@pytest.fixture
async def station(session: AsyncSession, staff: StationStaffIds) -> Station:
    """Create a station with one employee, one manager and one owner."""
    station = Station(station_id=uuid4(), name="Highway 7 Fuels")
    session.add(station)
    await session.flush()

    session.add_all(
        [
            StationStaff(station_id=station.station_id, user_id=staff.employee_id, role="employee"),
            StationStaff(station_id=station.station_id, user_id=staff.manager_id, role="manager"),
            StationStaff(station_id=station.station_id, user_id=staff.owner_id, role="owner"),
        ]
    )
    await session.commit()
    return station


@pytest.fixture
def make_shift(session: AsyncSession, station: Station, staff: StationStaffIds):
    """Factory for shifts at the test station."""

    async def _make_shift(
        cash_collected: Decimal = Decimal("1500.00"),
        *,
        ended: bool = True,
        employee_id: UUID | None = None,
        shift_date: date | None = None,
    ) -> Shift:
        shift = Shift(
            shift_id=uuid4(),
            station_id=station.station_id,
            employee_id=employee_id or staff.employee_id,
            shift_date=shift_date or utcnow().date(),
            cash_collected=cash_collected,
            status="ended" if ended else "active",
            ended_at=utcnow() if ended else None,
        )
        session.add(shift)
        await session.commit()
        return shift

    return _make_shift


@pytest.fixture
async def ended_shift(make_shift) -> Shift:
    """An ended shift that collected 1500.00 in cash."""
    return await make_shift()


@pytest.fixture
def emitter() -> AsyncEventEmitter:
    return AsyncEventEmitter()


@pytest.fixture
def captured_events(emitter: AsyncEventEmitter) -> list[DomainEvent]:
    """Events published through the ``emitter`` fixture, in order."""
    events: list[DomainEvent] = []
    emitter.on_all(events.append)
    return events


@pytest.fixture
def outbox(emitter: AsyncEventEmitter) -> EventOutbox:
    """Outbox publishing to the ``emitter`` fixture."""
    return EventOutbox(emitter)


class ChainBuilder:
    """Drives a station's chain forward through the services."""

    def __init__(self, session: AsyncSession, station: Station, staff: StationStaffIds):
        self.session = session
        self.station = station
        self.staff = staff

    async def collect(self, shift: Shift) -> CashHandover:
        """Open the shift_collection and have the manager accept it."""
        handover = await ChainEngine(self.session).open_from_shift(shift.shift_id)
        return await ConfirmationService(self.session).confirm(
            handover.handover_id, self.staff.manager_id, accept_as_is=True
        )

    async def to_manager(self, employee_id: UUID | None = None) -> CashHandover:
        """Open employee_to_manager and have the manager accept it."""
        handover = await ChainEngine(self.session).open_handover(
            self.station.station_id,
            "employee_to_manager",
            employee_id or self.staff.employee_id,
        )
        return await ConfirmationService(self.session).confirm(
            handover.handover_id, self.staff.manager_id, accept_as_is=True
        )

    async def to_owner(self) -> CashHandover:
        """Open manager_to_owner and have the owner accept it."""
        handover = await ChainEngine(self.session).open_handover(
            self.station.station_id, "manager_to_owner", self.staff.manager_id
        )
        return await ConfirmationService(self.session).confirm(
            handover.handover_id, self.staff.owner_id, accept_as_is=True
        )


@pytest.fixture
def chain(session: AsyncSession, station: Station, staff: StationStaffIds) -> ChainBuilder:
    return ChainBuilder(session, station, staff)
