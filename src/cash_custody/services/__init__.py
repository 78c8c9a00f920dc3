"""Cash custody chain services."""

from cash_custody.services.bank_deposit import BankDepositService
from cash_custody.services.chain_engine import ChainEngine
from cash_custody.services.confirmation import ConfirmationService
from cash_custody.services.directory import SqlStationDirectory, StationDirectory
from cash_custody.services.errors import (
    AlreadyFinalized,
    AmbiguousConfirmation,
    AmountMismatch,
    HandoverError,
    MissingAmount,
    NotFound,
    NotPermitted,
    SequenceViolation,
)
from cash_custody.services.queries import HandoverQueryService
from cash_custody.services.sequencing import (
    HandoverSequence,
    HandoverStatus,
    HandoverStatusMachine,
    HandoverType,
    StaffRole,
)
from cash_custody.services.variance import VarianceAssessment, assess, classify

__all__ = [
    "BankDepositService",
    "ChainEngine",
    "ConfirmationService",
    "HandoverQueryService",
    "SqlStationDirectory",
    "StationDirectory",
    "HandoverError",
    "SequenceViolation",
    "AlreadyFinalized",
    "MissingAmount",
    "AmbiguousConfirmation",
    "AmountMismatch",
    "NotFound",
    "NotPermitted",
    "HandoverSequence",
    "HandoverStatus",
    "HandoverStatusMachine",
    "HandoverType",
    "StaffRole",
    "VarianceAssessment",
    "assess",
    "classify",
]
