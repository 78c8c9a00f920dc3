"""Variance detection between expected and confirmed cash amounts.

A handover is confirmed clean only when the difference is small both
relative to the expected amount and in absolute currency terms:

    diff     = |actual - expected|
    relative = diff / expected          (0 when expected is 0)

    confirmed  <=>  relative <= tolerance.relative  AND  diff < tolerance.absolute

Examples with default tolerance (2%, 100):
    10000 -> 10050: 0.5% and 50      -> confirmed
    1000  -> 970:   3% and 30        -> disputed (relative)
    50000 -> 50500: 1% and 500       -> disputed (absolute)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from cash_custody.config import VarianceTolerance
from cash_custody.services.sequencing import HandoverStatus

DEFAULT_TOLERANCE = VarianceTolerance()


@dataclass(frozen=True)
class VarianceAssessment:
    """Outcome of comparing an actual amount against the expected one."""

    expected: Decimal
    actual: Decimal
    difference: Decimal  # signed: actual - expected
    absolute_difference: Decimal
    relative: Decimal
    status: HandoverStatus

    @property
    def within_tolerance(self) -> bool:
        return self.status == HandoverStatus.CONFIRMED


def _to_decimal(value: Decimal | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Use Decimal or str for amounts, not float")
    return Decimal(value)


def assess(
    expected: Decimal | int | str,
    actual: Decimal | int | str,
    tolerance: VarianceTolerance = DEFAULT_TOLERANCE,
) -> VarianceAssessment:
    """Compare amounts and classify the outcome."""
    expected_amt = _to_decimal(expected)
    actual_amt = _to_decimal(actual)

    difference = actual_amt - expected_amt
    absolute = abs(difference)
    relative = absolute / abs(expected_amt) if expected_amt != 0 else Decimal("0")

    if relative <= tolerance.relative and absolute < tolerance.absolute:
        status = HandoverStatus.CONFIRMED
    else:
        status = HandoverStatus.DISPUTED

    return VarianceAssessment(
        expected=expected_amt,
        actual=actual_amt,
        difference=difference,
        absolute_difference=absolute,
        relative=relative,
        status=status,
    )


def classify(
    expected: Decimal | int | str,
    actual: Decimal | int | str,
    tolerance: VarianceTolerance = DEFAULT_TOLERANCE,
) -> HandoverStatus:
    """Classify a confirmation as confirmed or disputed."""
    return assess(expected, actual, tolerance).status
