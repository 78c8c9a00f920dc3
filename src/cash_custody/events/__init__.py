"""Custody chain domain events package."""

from cash_custody.events.types import (
    # Base
    DomainEvent,
    EventMetadata,
    EventCategory,
    # Chain events
    HandoverOpened,
    HandoverConfirmed,
    HandoverDisputed,
    BankDepositRecorded,
)
from cash_custody.events.emitter import (
    AsyncEventEmitter,
    AsyncEventHandler,
    EventHandler,
    EventOutbox,
    log_event,
)

__all__ = [
    "DomainEvent",
    "EventMetadata",
    "EventCategory",
    "HandoverOpened",
    "HandoverConfirmed",
    "HandoverDisputed",
    "BankDepositRecorded",
    "AsyncEventEmitter",
    "AsyncEventHandler",
    "EventHandler",
    "EventOutbox",
    "log_event",
]
