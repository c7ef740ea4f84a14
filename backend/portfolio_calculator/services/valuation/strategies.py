# backend/portfolio_calculator/services/valuation/strategies.py
"""
Per-type valuation strategies.

Each strategy values ONE holding of ONE type as of the context's date:
- EquityStrategy: units held × latest price
- RealEstateStrategy: latest land appraisal + latest building appraisal
- FundStrategy: ownership fraction × value of the fund's own holdings

Design Principles:
- Stateless (per-request state lives in ValuationContext)
- Receive the repository through the constructor
- Missing data yields ZERO, never an exception
- Return unrounded Decimal values

Usage:
    equity = EquityStrategy(repository)
    value = equity.value(holding, ValuationContext(as_of=date(2019, 12, 31)))
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from portfolio_calculator.models import LedgerKind
from portfolio_calculator.services.constants import ZERO, DEFAULT_MAX_FUND_DEPTH
from portfolio_calculator.services.exceptions import (
    FundCycleError,
    FundDepthExceededError,
    ValuationConfigurationError,
)

if TYPE_CHECKING:
    from portfolio_calculator.models import Holding
    from portfolio_calculator.services.protocols import (
        PortfolioRepositoryProtocol,
        HoldingValuer,
    )
    from portfolio_calculator.services.valuation.types import ValuationContext

logger = logging.getLogger(__name__)


# =============================================================================
# EQUITY
# =============================================================================

class EquityStrategy:
    """
    Values a direct equity position.

    Formula:
        value = units_held(holding, as_of) × latest_price(security, as_of)

    Note:
        A negative unit total (more sold than bought) keeps its sign.
        An equity without a security id cannot be priced and is worth ZERO.
    """

    def __init__(self, repository: PortfolioRepositoryProtocol) -> None:
        self._repository = repository

    def value(self, holding: Holding, context: ValuationContext) -> Decimal:
        if not holding.security_id:
            logger.debug(f"Equity {holding.holding_id} has no security id, valued at zero")
            return ZERO

        units = self._repository.units_held(holding.holding_id, context.as_of)
        price = self._repository.latest_price(holding.security_id, context.as_of)
        return units * price


# =============================================================================
# REAL ESTATE
# =============================================================================

class RealEstateStrategy:
    """
    Values a real-estate parcel as the sum of its two appraised components.

    Formula:
        value = latest LAND appraisal + latest BUILDING appraisal
    """

    def __init__(self, repository: PortfolioRepositoryProtocol) -> None:
        self._repository = repository

    def value(self, holding: Holding, context: ValuationContext) -> Decimal:
        land = self._repository.property_component_value(
            holding.holding_id, LedgerKind.LAND, context.as_of
        )
        building = self._repository.property_component_value(
            holding.holding_id, LedgerKind.BUILDING, context.as_of
        )
        return land + building


# =============================================================================
# FUND
# =============================================================================

class FundStrategy:
    """
    Values a stake in a fund by recursively valuing the fund's own holdings.

    Algorithm:
        1. ownership = ownership_fraction(investor, holding, as_of);
           ownership <= 0 returns ZERO without further queries
        2. reject a holding already being expanded (FundCycleError) and
           nesting beyond max_depth (FundDepthExceededError)
        3. underlying = list_underlying_holdings(holding); empty returns ZERO
        4. subtotal = valuer.value_holdings(underlying, child context)
        5. return ownership × subtotal

    The same fund reached through two different branches (a diamond) is not a
    cycle: only the ancestors of the current holding are checked.

    The valuer is bound after construction (bind_valuer) because the valuer
    itself dispatches back to this strategy.
    """

    def __init__(
            self,
            repository: PortfolioRepositoryProtocol,
            max_depth: int = DEFAULT_MAX_FUND_DEPTH,
    ) -> None:
        self._repository = repository
        self._max_depth = max_depth
        self._valuer: HoldingValuer | None = None

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def bind_valuer(self, valuer: HoldingValuer) -> None:
        """Attach the holding-set valuer used for the fund's constituents."""
        self._valuer = valuer

    def value(self, holding: Holding, context: ValuationContext) -> Decimal:
        if self._valuer is None:
            raise ValuationConfigurationError(
                "FundStrategy has no holding valuer bound; use build_valuation_service()"
            )

        ownership = self._repository.ownership_fraction(
            holding.investor_id, holding.holding_id, context.as_of
        )
        if ownership <= ZERO:
            return ZERO

        if context.is_expanding(holding.holding_id):
            raise FundCycleError(holding.holding_id, context.fund_path)
        if context.depth >= self._max_depth:
            raise FundDepthExceededError(holding.holding_id, self._max_depth)

        underlying = self._repository.list_underlying_holdings(holding.holding_id)
        if not underlying:
            return ZERO

        subtotal = self._valuer.value_holdings(
            underlying, context.child(holding.holding_id)
        )

        logger.debug(
            f"Fund {holding.holding_id}: ownership={ownership} "
            f"subtotal={subtotal} depth={context.depth + 1}"
        )
        return ownership * subtotal
