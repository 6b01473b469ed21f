from __future__ import annotations
from decimal import Decimal
from typing import Dict, Any, List
from engine.convergence_forecaster import ForecastResult
from engine.deficit_allocator import AllocationLine
from portfolio.holding import Holding

def allocation_report(holdings: List[Holding], lines: List[AllocationLine], amount: Decimal) -> Dict[str, Any]:
    current_total = sum((h.current_value for h in holdings), Decimal("0"))
    return {
        "calculations": [ln.__dict__ for ln in lines],
        "summary": {
            "investment_amount": amount,
            "current_portfolio_value": current_total,
            "new_portfolio_value": current_total + amount,
            "total_allocated": sum((ln.amount_to_invest for ln in lines), Decimal("0")),
            "holdings_count": len(holdings),
        },
    }

def forecast_report(holdings: List[Holding], result: ForecastResult, monthly: Decimal, tolerance: Decimal) -> Dict[str, Any]:
    current_total = sum((h.current_value for h in holdings), Decimal("0"))
    return {
        "months_to_ideal": result.months,
        "reachable": result.reachable,
        "monthly_investment": monthly,
        "tolerance_percent": tolerance,
        "final_allocations": [p.__dict__ for p in result.final_allocations],
        "current_portfolio_value": current_total,
        "projected_portfolio_value": result.projected_value,
    }
