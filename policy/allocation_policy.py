"""Target allocation validation.

Gate that must pass before any contribution is allocated or forecast.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from common.errors import InvalidAllocationError, NoHoldingsError
from common.logging import get_logger
from common.money import HUNDRED, ZERO, Number, to_decimal
from portfolio.holding import Holding

logger = get_logger(__name__)

VALIDATION_TOLERANCE = Decimal("0.5")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a set of target allocations."""

    is_valid: bool
    total: Decimal
    message: Optional[str] = None
    no_holdings: bool = False


def out_of_range_targets(holdings: Sequence[Holding]) -> List[str]:
    """Ids of holdings whose target is not a number in [0, 100]."""
    return [
        h.id
        for h in holdings
        if not h.target_allocation.is_finite()
        or h.target_allocation < ZERO
        or h.target_allocation > HUNDRED
    ]


def duplicate_ids(holdings: Sequence[Holding]) -> List[str]:
    """Ids that appear more than once, in first-seen order."""
    seen = set()
    dupes: List[str] = []
    for h in holdings:
        if h.id in seen and h.id not in dupes:
            dupes.append(h.id)
        seen.add(h.id)
    return dupes


def validate_allocations(
    holdings: Sequence[Holding],
    tolerance: Number = VALIDATION_TOLERANCE,
) -> ValidationResult:
    """Check that targets are in range and sum to 100% within ``tolerance``.

    Args:
        holdings: Holdings to check.
        tolerance: Allowed distance of the target total from 100, in
            percentage points.

    Returns:
        ValidationResult; ``message`` reports the actual total on failure.
    """
    # Non-finite targets are reported as out of range and left out of the total
    total = sum((h.target_allocation for h in holdings if h.target_allocation.is_finite()), ZERO)

    if not holdings:
        return ValidationResult(False, total, "No holdings to rebalance", no_holdings=True)

    dupes = duplicate_ids(holdings)
    if dupes:
        return ValidationResult(False, total, f"Holding ids must be unique ({', '.join(dupes)})")

    bad = out_of_range_targets(holdings)
    if bad:
        return ValidationResult(
            False,
            total,
            f"Target allocations must be between 0% and 100% ({', '.join(bad)}); total is {total:.1f}%",
        )

    if abs(total - HUNDRED) > to_decimal(tolerance):
        return ValidationResult(False, total, f"Target allocations sum to {total:.1f}% instead of 100%")

    return ValidationResult(True, total)


def require_valid_allocations(
    holdings: Sequence[Holding],
    tolerance: Number = VALIDATION_TOLERANCE,
) -> ValidationResult:
    """Validate and raise the matching error on failure."""
    result = validate_allocations(holdings, tolerance)
    if result.is_valid:
        return result

    logger.warning("allocation_rejected", reason=result.message, total=str(result.total))
    if result.no_holdings:
        raise NoHoldingsError(result.message)
    raise InvalidAllocationError(result.message, total=result.total, context={"total": str(result.total)})
