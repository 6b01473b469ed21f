from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List
from common.money import ZERO, pct
from portfolio.holding import Holding

@dataclass
class Portfolio:
    holdings: List[Holding]

    def total_value(self) -> Decimal:
        return sum((h.current_value for h in self.holdings), ZERO)

    def target_total(self) -> Decimal:
        return sum((h.target_allocation for h in self.holdings), ZERO)

    def current_values(self) -> Dict[str, Decimal]:
        return {h.id: h.current_value for h in self.holdings}

    def current_weights(self) -> Dict[str, Decimal]:
        """Percentage share of each holding (0 for an empty portfolio)."""
        total = self.total_value()
        return {h.id: pct(h.current_value, total) for h in self.holdings}

    def max_deviation(self) -> Decimal:
        """Largest absolute distance, in percentage points, from any target."""
        weights = self.current_weights()
        return max((abs(weights[h.id] - h.target_allocation) for h in self.holdings), default=ZERO)
