from __future__ import annotations
from typing import Dict, Any, List
from policy.allocation_policy import VALIDATION_TOLERANCE, validate_allocations
from portfolio.holding import Holding
from portfolio.portfolio import Portfolio

def portfolio_summary(holdings: List[Holding], tolerance=VALIDATION_TOLERANCE) -> Dict[str, Any]:
    portfolio = Portfolio(holdings)
    validation = validate_allocations(holdings, tolerance)
    return {
        "total_value": portfolio.total_value(),
        "holdings_count": len(holdings),
        "allocation_valid": validation.is_valid,
        "allocation_total": validation.total,
        "weights": portfolio.current_weights(),
    }
