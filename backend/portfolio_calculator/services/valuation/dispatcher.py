# backend/portfolio_calculator/services/valuation/dispatcher.py
"""
Holding type → valuation strategy lookup.

The table is populated once at assembly time and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from portfolio_calculator.models import HoldingType
from portfolio_calculator.services.exceptions import UnsupportedHoldingTypeError

if TYPE_CHECKING:
    from portfolio_calculator.services.protocols import ValuationStrategy


class StrategyDispatcher:
    """
    Resolves the strategy registered for a holding type.

    Types are listed in HoldingType declaration order, which is also the
    order of the category breakdown.
    """

    def __init__(self, strategies: Mapping[HoldingType, ValuationStrategy]) -> None:
        self._strategies: dict[HoldingType, ValuationStrategy] = {
            holding_type: strategies[holding_type]
            for holding_type in HoldingType
            if holding_type in strategies
        }

    @property
    def registered_types(self) -> tuple[HoldingType, ...]:
        return tuple(self._strategies)

    def resolve(self, holding_type: HoldingType) -> ValuationStrategy:
        """
        Return the strategy for a holding type.

        Raises:
            UnsupportedHoldingTypeError: Nothing is registered for the type
        """
        strategy = self._strategies.get(holding_type)
        if strategy is None:
            raise UnsupportedHoldingTypeError(holding_type)
        return strategy
