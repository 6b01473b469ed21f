"""Contribution allocation engine.

Splits a new cash contribution across holdings so the portfolio moves toward
its target weights, using only purchases (nothing is ever sold).

For each holding the target value after the contribution is
``target_allocation / 100 * (old_total + amount)``; its deficit is the
positive part of ``target_value - current_value``. When targets sum to 100%
the raw differences sum exactly to the contribution, so the deficits sum to
at least the contribution, with equality iff no holding is overweight.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from common.errors import InvalidAmountError
from common.logging import get_logger
from common.money import CENT, HUNDRED, ZERO, Number, pct, round2, to_decimal
from policy.allocation_policy import VALIDATION_TOLERANCE, require_valid_allocations
from portfolio.holding import Holding

logger = get_logger(__name__)

EXACT = "exact"
SCARCE = "scarce"
SURPLUS = "surplus"


@dataclass(frozen=True)
class AllocationLine:
    """How much of a contribution goes to one holding."""

    holding_id: str
    amount_to_invest: Decimal
    new_value: Decimal
    current_allocation: Decimal  # percent before, 2 dp
    new_allocation: Decimal  # percent after, 2 dp
    target_allocation: Decimal


def compute_deficits(holdings: Sequence[Holding], new_total: Decimal) -> List[Decimal]:
    """Shortfall of each holding against its target value at ``new_total``.

    Overweight holdings get 0 here, which is what keeps every allocation
    non-negative whichever branch distributes the cash.
    """
    return [
        max(ZERO, h.target_allocation / HUNDRED * new_total - h.current_value)
        for h in holdings
    ]


def allocation_case(total_deficit: Decimal, amount: Decimal) -> str:
    if abs(total_deficit - amount) <= CENT:
        return EXACT
    if total_deficit > amount:
        return SCARCE
    return SURPLUS


def _surplus_shares(
    holdings: Sequence[Holding],
    deficits: List[Decimal],
    remainder: Decimal,
    new_total: Decimal,
) -> List[Decimal]:
    # Only reachable when targets sum to less than 100 (within tolerance).
    # The leftover follows target weights among holdings not above target.
    eligible = [
        h.target_allocation / HUNDRED * new_total >= h.current_value for h in holdings
    ]
    weight_total = sum((h.target_allocation for h, ok in zip(holdings, eligible) if ok), ZERO)
    if weight_total <= 0:
        eligible = [True] * len(holdings)
        weight_total = sum((h.target_allocation for h in holdings), ZERO)
    return [
        d + (remainder * h.target_allocation / weight_total if ok else ZERO)
        for h, d, ok in zip(holdings, deficits, eligible)
    ]


def _settle_residual(amounts: List[Decimal], deficits: List[Decimal], residual: Decimal) -> List[Decimal]:
    """Put the rounding residual on the largest deficit, ties by input order."""
    order = sorted(range(len(amounts)), key=lambda i: deficits[i], reverse=True)
    for i in order:
        if residual == 0:
            break
        adjusted = max(ZERO, amounts[i] + residual)
        residual -= adjusted - amounts[i]
        amounts[i] = adjusted
    return amounts


def split_contribution(holdings: Sequence[Holding], amount: Decimal) -> List[AllocationLine]:
    """Allocate ``amount`` (already in whole cents) over validated holdings.

    Args:
        holdings: Holdings that passed validation.
        amount: Positive contribution, rounded to cents.

    Returns:
        One AllocationLine per holding, in input order, whose amounts sum
        to ``amount`` exactly.
    """
    old_total = sum((h.current_value for h in holdings), ZERO)
    new_total = old_total + amount

    deficits = compute_deficits(holdings, new_total)
    total_deficit = sum(deficits, ZERO)
    case = allocation_case(total_deficit, amount)

    if case == EXACT:
        raw = list(deficits)
    elif case == SCARCE:
        factor = amount / total_deficit
        raw = [d * factor for d in deficits]
    else:
        raw = _surplus_shares(holdings, deficits, amount - total_deficit, new_total)

    amounts = [round2(r) for r in raw]
    residual = amount - sum(amounts, ZERO)
    amounts = _settle_residual(amounts, deficits, residual)

    logger.debug(
        "contribution_split",
        case=case,
        amount=str(amount),
        total_deficit=str(round2(total_deficit)),
        residual=str(residual),
    )

    lines: List[AllocationLine] = []
    for h, invest in zip(holdings, amounts):
        new_value = h.current_value + invest
        lines.append(
            AllocationLine(
                holding_id=h.id,
                amount_to_invest=invest,
                new_value=new_value,
                current_allocation=round2(pct(h.current_value, old_total)),
                new_allocation=round2(pct(new_value, new_total)),
                target_allocation=h.target_allocation,
            )
        )
    return lines


def check_amount(amount: Number, label: str = "Investment amount") -> Decimal:
    """Return ``amount`` in whole cents, rejecting anything not positive."""
    value = to_decimal(amount)
    if not value.is_finite() or round2(value) <= 0:
        raise InvalidAmountError(f"{label} must be a positive number, got {amount}", amount=value)
    return round2(value)


def allocate(
    holdings: Sequence[Holding],
    investment_amount: Number,
    tolerance: Number = VALIDATION_TOLERANCE,
) -> List[AllocationLine]:
    """Split one contribution across holdings, buying only.

    Args:
        holdings: Current holdings with target allocations.
        investment_amount: Cash to add; rounded to whole cents.
        tolerance: Allowed distance of the target total from 100%.

    Returns:
        AllocationLines in input order; amounts sum to the contribution.

    Raises:
        InvalidAmountError: amount is not positive.
        NoHoldingsError: holdings is empty.
        InvalidAllocationError: targets fail validation.
    """
    amount = check_amount(investment_amount)
    require_valid_allocations(holdings, tolerance)
    return split_contribution(holdings, amount)


def apply_allocation(holdings: Sequence[Holding], lines: Sequence[AllocationLine]) -> List[Holding]:
    """Holdings with their values replaced by the allocation's new values."""
    new_values = {line.holding_id: line.new_value for line in lines}
    return [h.with_value(new_values.get(h.id, h.current_value)) for h in holdings]
