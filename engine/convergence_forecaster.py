"""Convergence forecasting.

Simulates one contribution per month, each split by the deficit allocator,
and reports how many months it takes until every holding is within a
tolerance of its target weight.

Overweight holdings receive nothing, so their share only falls because the
total grows around them. That approach is asymptotic; a small contribution
or a tight tolerance can need centuries, so the simulation is capped at
``MAX_MONTHS`` and reports ``reachable=False`` when the cap is hit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Sequence

import pandas as pd

from common.logging import get_logger
from common.money import ZERO, Number, pct, to_decimal
from engine.deficit_allocator import apply_allocation, check_amount, split_contribution
from policy.allocation_policy import VALIDATION_TOLERANCE, require_valid_allocations
from portfolio.holding import Holding
from portfolio.portfolio import Portfolio

logger = get_logger(__name__)

MAX_MONTHS = 600  # 50 years
DEFAULT_TOLERANCE_PERCENT = 1.0


@dataclass(frozen=True)
class ProjectedAllocation:
    """Simulated share of one holding at the end of a forecast."""

    holding_id: str
    projected_percentage: Decimal
    target_allocation: Decimal

    @property
    def deviation(self) -> Decimal:
        return self.projected_percentage - self.target_allocation


@dataclass
class ForecastResult:
    """Outcome of a convergence forecast."""

    months: int
    reachable: bool
    final_allocations: List[ProjectedAllocation]
    projected_value: Decimal
    trajectory: pd.DataFrame = field(compare=False)  # month -> percentage share per holding


def _snapshot(holdings: Sequence[Holding]) -> List[ProjectedAllocation]:
    total = sum((h.current_value for h in holdings), ZERO)
    return [
        ProjectedAllocation(h.id, pct(h.current_value, total), h.target_allocation)
        for h in holdings
    ]


def is_converged(holdings: Sequence[Holding], tolerance_percent: Decimal) -> bool:
    """True when every holding's share is within tolerance of its target."""
    return Portfolio(list(holdings)).max_deviation() <= tolerance_percent


def forecast(
    holdings: Sequence[Holding],
    monthly_investment: Number,
    tolerance_percent: Number = DEFAULT_TOLERANCE_PERCENT,
    max_months: int = MAX_MONTHS,
    tolerance: Number = VALIDATION_TOLERANCE,
) -> ForecastResult:
    """Estimate months of contributions until targets are reached.

    Args:
        holdings: Current holdings with target allocations.
        monthly_investment: Contribution made every month.
        tolerance_percent: Max distance, in percentage points, from each
            target that counts as converged.
        max_months: Simulation cap.
        tolerance: Allowed distance of the target total from 100%.

    Returns:
        ForecastResult. ``months == max_months`` and ``reachable=False``
        when the cap is hit first.

    Raises:
        InvalidAmountError: monthly_investment is not positive.
        NoHoldingsError: holdings is empty.
        InvalidAllocationError: targets fail validation.
        ValueError: negative tolerance_percent or max_months below 1.
    """
    amount = check_amount(monthly_investment, label="Monthly investment")
    require_valid_allocations(holdings, tolerance)
    tol = to_decimal(tolerance_percent)
    if tol < 0:
        raise ValueError(f"tolerance_percent must be non-negative, got {tolerance_percent}")
    if max_months < 1:
        raise ValueError(f"max_months must be at least 1, got {max_months}")

    working = list(holdings)
    rows: List[Dict[str, float]] = []
    month = 0
    reachable = False

    while month < max_months:
        working = apply_allocation(working, split_contribution(working, amount))
        month += 1

        snapshot = _snapshot(working)
        rows.append({p.holding_id: float(p.projected_percentage) for p in snapshot})

        if is_converged(working, tol):
            reachable = True
            break

    trajectory = pd.DataFrame(rows, index=pd.RangeIndex(1, month + 1, name="month"))
    projected_value = sum((h.current_value for h in working), ZERO)

    logger.info(
        "forecast_complete",
        months=month,
        reachable=reachable,
        monthly_investment=str(amount),
        tolerance_percent=str(tol),
    )

    return ForecastResult(
        months=month,
        reachable=reachable,
        final_allocations=_snapshot(working),
        projected_value=projected_value,
        trajectory=trajectory,
    )
