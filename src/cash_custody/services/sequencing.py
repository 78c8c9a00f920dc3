"""Handover type ordering and status transitions."""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from cash_custody.services.errors import AlreadyFinalized


class HandoverType(str, Enum):
    """Chain step types, in custody order."""

    SHIFT_COLLECTION = "shift_collection"
    EMPLOYEE_TO_MANAGER = "employee_to_manager"
    MANAGER_TO_OWNER = "manager_to_owner"
    DEPOSIT_TO_BANK = "deposit_to_bank"


class HandoverStatus(str, Enum):
    """Handover status values."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISPUTED = "disputed"


class StaffRole(str, Enum):
    """Station roles the chain routes cash to."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    OWNER = "owner"


class InvalidTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition from '{from_status}' to '{to_status}'")


class HandoverSequence:
    """Ordering rules for chain steps.

    shift_collection → employee_to_manager → manager_to_owner → deposit_to_bank
    """

    ORDER: tuple[HandoverType, ...] = (
        HandoverType.SHIFT_COLLECTION,
        HandoverType.EMPLOYEE_TO_MANAGER,
        HandoverType.MANAGER_TO_OWNER,
        HandoverType.DEPOSIT_TO_BANK,
    )

    # Who receives the cash at each step (None = leaves custody)
    RECEIVER_ROLE: dict[str, StaffRole | None] = {
        HandoverType.SHIFT_COLLECTION: StaffRole.MANAGER,
        HandoverType.EMPLOYEE_TO_MANAGER: StaffRole.MANAGER,
        HandoverType.MANAGER_TO_OWNER: StaffRole.OWNER,
        HandoverType.DEPOSIT_TO_BANK: None,
    }

    @classmethod
    def position(cls, handover_type: str) -> int:
        """Zero-based position of a type in the chain."""
        return cls.ORDER.index(HandoverType(handover_type))

    @classmethod
    def predecessor(cls, handover_type: str) -> HandoverType | None:
        """Type that must be confirmed before this one can be opened."""
        pos = cls.position(handover_type)
        return cls.ORDER[pos - 1] if pos > 0 else None

    @classmethod
    def successor(cls, handover_type: str) -> HandoverType | None:
        """Type that follows this one, or None at the end of the chain."""
        pos = cls.position(handover_type)
        return cls.ORDER[pos + 1] if pos + 1 < len(cls.ORDER) else None

    @classmethod
    def is_root(cls, handover_type: str) -> bool:
        return cls.predecessor(handover_type) is None

    @classmethod
    def is_terminal(cls, handover_type: str) -> bool:
        return cls.successor(handover_type) is None

    @classmethod
    def receiver_role(cls, handover_type: str) -> StaffRole | None:
        return cls.RECEIVER_ROLE[HandoverType(handover_type)]

    @classmethod
    def is_valid_chain(cls, handover_types: list[str]) -> bool:
        """Check that types follow the chain order from the root with no gaps."""
        return list(handover_types) == [t.value for t in cls.ORDER[: len(handover_types)]]


class HandoverStatusMachine:
    """Status transitions for a single handover.

    Allowed transitions:
    - pending → confirmed
    - pending → disputed

    confirmed and disputed are terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        HandoverStatus.PENDING.value: [
            HandoverStatus.CONFIRMED.value,
            HandoverStatus.DISPUTED.value,
        ],
        HandoverStatus.CONFIRMED.value: [],
        HandoverStatus.DISPUTED.value: [],
    }

    FINALIZED = {HandoverStatus.CONFIRMED.value, HandoverStatus.DISPUTED.value}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def is_finalized(cls, status: str) -> bool:
        return status in cls.FINALIZED

    @classmethod
    def validate_transition(cls, handover_id: UUID, from_status: str, to_status: str) -> None:
        """Validate a transition.

        Raises:
            AlreadyFinalized: If the handover has left pending.
            InvalidTransitionError: For any other disallowed transition.
        """
        if cls.is_finalized(from_status):
            raise AlreadyFinalized(handover_id, from_status)
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)
