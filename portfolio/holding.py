from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from common.money import Number, to_decimal

@dataclass(frozen=True)
class Holding:
    id: str
    current_value: Decimal  # base currency
    target_allocation: Decimal  # percent, 0..100
    name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "current_value", to_decimal(self.current_value))
        object.__setattr__(self, "target_allocation", to_decimal(self.target_allocation))
        if not self.current_value.is_finite():
            raise ValueError(f"Holding {self.id}: current value must be a finite number, got {self.current_value}")
        if self.current_value < 0:
            raise ValueError(f"Holding {self.id}: current value must be non-negative, got {self.current_value}")

    @property
    def label(self) -> str:
        return self.name or self.id

    def with_value(self, value: Number) -> Holding:
        return Holding(self.id, to_decimal(value), self.target_allocation, self.name)
