"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cash_custody.services.sequencing import HandoverType


# ============================================================================
# Handover schemas
# ============================================================================


class HandoverResponse(BaseModel):
    """Schema for a handover record."""

    model_config = ConfigDict(from_attributes=True)

    handover_id: UUID
    station_id: UUID
    handover_type: str
    handover_date: date
    from_user_id: UUID
    to_user_id: UUID | None = None
    shift_id: UUID | None = None
    previous_handover_id: UUID | None = None
    expected_amount: Decimal
    actual_amount: Decimal | None = None
    difference: Decimal | None = None
    status: str
    confirmed_at: datetime | None = None
    confirmed_by: UUID | None = None
    bank_name: str | None = None
    deposit_reference: str | None = None
    deposit_receipt_url: str | None = None
    notes: str | None = None
    dispute_notes: str | None = None
    created_at: datetime
    updated_at: datetime


class HandoverListResponse(BaseModel):
    """Schema for listing handovers."""

    items: list[HandoverResponse]
    count: int


class HandoverPageResponse(BaseModel):
    """Schema for a paginated page of handovers."""

    items: list[HandoverResponse]
    total: int
    page: int
    page_size: int


class HandoverCreate(BaseModel):
    """Schema for opening the next chain step.

    The receiving user and the expected amount are derived server-side.
    """

    model_config = ConfigDict(extra="forbid")

    station_id: UUID
    handover_type: HandoverType
    from_user_id: UUID
    shift_id: UUID | None = None
    handover_date: date | None = None
    notes: str | None = Field(default=None, max_length=500)


class ConfirmRequest(BaseModel):
    """Schema for confirming a handover.

    Provide ``actual_amount`` or ``accept_as_is: true``.
    """

    actual_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    accept_as_is: bool = False
    notes: str | None = Field(default=None, max_length=500)


class ConfirmResponse(BaseModel):
    """Schema for a confirmation outcome."""

    handover: HandoverResponse
    message: str


class BankDepositCreate(BaseModel):
    """Schema for recording a bank deposit."""

    station_id: UUID
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    bank_name: str | None = Field(default=None, max_length=100)
    deposit_reference: str | None = Field(default=None, max_length=50)
    deposit_receipt_url: str | None = None
    handover_date: date | None = None
    notes: str | None = Field(default=None, max_length=500)


class ShiftHandoverRequest(BaseModel):
    """Schema for the shift-end hook."""

    notes: str | None = Field(default=None, max_length=500)


# ============================================================================
# Station report schemas
# ============================================================================


class UnconfirmedResponse(BaseModel):
    """Schema for unconfirmed handover alerts."""

    items: list[HandoverResponse]
    count: int
    alert: str | None = None


class TypeTotalsResponse(BaseModel):
    """Schema for confirmed totals of one handover type."""

    model_config = ConfigDict(from_attributes=True)

    handover_type: str
    count: int
    total_amount: Decimal
    total_difference: Decimal


class CashFlowSummaryResponse(BaseModel):
    """Schema for a station cash flow summary."""

    model_config = ConfigDict(from_attributes=True)

    station_id: UUID
    start_date: date
    end_date: date
    by_type: list[TypeTotalsResponse]
    pending_count: int
    disputed_count: int


class BankDepositListResponse(BaseModel):
    """Schema for the bank deposit register."""

    items: list[HandoverResponse]
    count: int
    total_deposited: Decimal


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
