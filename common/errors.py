"""Error taxonomy for the rebalancing engine.

All errors are raised at the function boundary, before any computation,
and are deterministic functions of the input.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional


class RebalanceError(ValueError):
    """Base class for rejected engine input."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class InvalidAllocationError(RebalanceError):
    """Target percentages out of range or not summing to ~100%."""

    def __init__(self, message: str, total: Optional[Decimal] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.total = total


class NoHoldingsError(RebalanceError):
    """An empty holdings list was passed to allocation or forecasting."""


class InvalidAmountError(RebalanceError):
    """Contribution amount is not strictly positive."""

    def __init__(self, message: str, amount: Optional[Decimal] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.amount = amount
