from __future__ import annotations
from typing import List
from engine.convergence_forecaster import ForecastResult
from engine.deficit_allocator import AllocationLine

def explain_allocation(lines: List[AllocationLine]) -> List[str]:
    out = []
    for ln in lines:
        if ln.amount_to_invest > 0:
            reason = f"below target {ln.target_allocation}% (now {ln.current_allocation}%)"
        else:
            reason = f"at or above target {ln.target_allocation}% (now {ln.current_allocation}%), skipped"
        out.append(f"{ln.holding_id}: BUY {ln.amount_to_invest:,.2f} -> {ln.new_value:,.2f}  |  {reason}")
    return out

def explain_forecast(result: ForecastResult) -> List[str]:
    if result.reachable:
        head = f"Targets reached after {result.months} month(s)"
    else:
        head = f"Targets not reached within {result.months} month(s)"
    return [head] + [
        f"{p.holding_id}: {p.projected_percentage:.2f}% (target {p.target_allocation}%, {p.deviation:+.2f})"
        for p in result.final_allocations
    ]
