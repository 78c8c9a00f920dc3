"""Domain event types for custody chain operations.

All events are immutable, typed with explicit payloads, and serializable
for logging and downstream notification.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    CHAIN = "chain"
    CONFIRMATION = "confirmation"
    DEPOSIT = "deposit"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    station_id: UUID
    actor_id: UUID | None  # User that triggered the change
    source_service: str
    version: int = 1  # Schema version for evolution

    @classmethod
    def create(
        cls,
        station_id: UUID,
        actor_id: UUID | None = None,
        source_service: str = "cash_custody",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            station_id=station_id,
            actor_id=actor_id,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        """Event category for filtering."""
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        data = asdict(self)
        data["event_type"] = self.event_type
        return _serialize_dict(data)

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


def _serialize_dict(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize_dict(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_serialize_dict(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Chain Events
# =============================================================================


@dataclass(frozen=True)
class HandoverOpened(DomainEvent):
    """A chain step was opened and awaits confirmation."""

    handover_id: UUID
    handover_type: str
    from_user_id: UUID
    to_user_id: UUID | None
    expected_amount: Decimal
    previous_handover_id: UUID | None

    @property
    def category(self) -> EventCategory:
        return EventCategory.CHAIN


# =============================================================================
# Confirmation Events
# =============================================================================


@dataclass(frozen=True)
class HandoverConfirmed(DomainEvent):
    """The receiver confirmed the handover within tolerance."""

    handover_id: UUID
    handover_type: str
    expected_amount: Decimal
    actual_amount: Decimal
    difference: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.CONFIRMATION


@dataclass(frozen=True)
class HandoverDisputed(DomainEvent):
    """The receiver confirmed an amount outside tolerance."""

    handover_id: UUID
    handover_type: str
    expected_amount: Decimal
    actual_amount: Decimal
    difference: Decimal
    relative_variance: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.CONFIRMATION


# =============================================================================
# Deposit Events
# =============================================================================


@dataclass(frozen=True)
class BankDepositRecorded(DomainEvent):
    """Cash left custody into a bank account, closing the chain."""

    handover_id: UUID
    previous_handover_id: UUID
    amount: Decimal
    bank_name: str | None
    deposit_reference: str | None

    @property
    def category(self) -> EventCategory:
        return EventCategory.DEPOSIT
