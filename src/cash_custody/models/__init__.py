"""ORM models for the cash custody engine."""

from cash_custody.models.base import Base, TimestampMixin, UpdatedAtMixin, utcnow
from cash_custody.models.handover import CashHandover
from cash_custody.models.shift import Shift
from cash_custody.models.station import Station, StationStaff

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "utcnow",
    "CashHandover",
    "Shift",
    "Station",
    "StationStaff",
]
