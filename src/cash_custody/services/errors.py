"""Errors raised by the custody chain services.

Every error is a validation-level failure detected before any mutation.
Each carries a stable ``code`` and the HTTP status the API maps it to.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID


class HandoverError(Exception):
    """Base class for custody chain errors."""

    code = "HANDOVER_ERROR"
    status_code = 400

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class SequenceViolation(HandoverError):
    """Raised when a chain step's confirmed predecessor is missing."""

    code = "SEQUENCE_VIOLATION"

    def __init__(self, handover_type: str, reason: str):
        self.handover_type = handover_type
        super().__init__(
            f"Cannot open {handover_type}: {reason}",
            {"handover_type": handover_type},
        )


class AlreadyFinalized(HandoverError):
    """Raised when confirming a handover that is no longer pending."""

    code = "ALREADY_FINALIZED"

    def __init__(self, handover_id: UUID, status: str):
        self.handover_id = handover_id
        self.status = status
        super().__init__(
            f"Handover {handover_id} is already {status}",
            {"handover_id": str(handover_id), "status": status},
        )


class MissingAmount(HandoverError):
    """Raised when a confirmation carries neither an amount nor accept-as-is."""

    code = "MISSING_AMOUNT"

    def __init__(self) -> None:
        super().__init__("Provide actual_amount or set accept_as_is")


class AmbiguousConfirmation(HandoverError):
    """Raised when a confirmation carries both an amount and accept-as-is."""

    code = "AMBIGUOUS_CONFIRMATION"

    def __init__(self) -> None:
        super().__init__("Provide either actual_amount or accept_as_is, not both")


class AmountMismatch(HandoverError):
    """Raised when a bank deposit falls outside tolerance of the confirmed amount."""

    code = "AMOUNT_MISMATCH"

    def __init__(self, expected: Decimal, actual: Decimal):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Deposit amount {actual} does not match confirmed amount {expected}",
            {"expected_amount": str(expected), "amount": str(actual)},
        )


class NotFound(HandoverError):
    """Raised when a referenced station, shift, or handover does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: UUID | str | None = None, reason: str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} {entity_id} not found" if entity_id is not None else f"{entity} not found"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(
            msg,
            {"entity": entity, "id": str(entity_id) if entity_id is not None else None},
        )


class NotPermitted(HandoverError):
    """Raised when the acting user may not perform the operation."""

    code = "NOT_PERMITTED"
    status_code = 403

    def __init__(self, actor_id: UUID, reason: str):
        self.actor_id = actor_id
        super().__init__(reason, {"actor_id": str(actor_id)})
