# backend/portfolio_calculator/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio valuation.

Entry points:
- value_portfolio(): Category breakdown, holding lines and failures for a date
- total_value(): Portfolio total only

Design Principles:
- Dependency Injection: repository and dispatcher injected via constructor
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Failure isolation: one broken holding never sinks the portfolio
- Fatal errors (FatalValuationError) always propagate

Usage:
    from portfolio_calculator.services.valuation import build_valuation_service

    service = build_valuation_service(SqlPortfolioRepository(db))
    result = service.value_portfolio("Investor0", date(2019, 12, 31))
    result.breakdown   # {"Equity": ..., "Real Estate": ..., "Fund": ...}
    result.total
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from portfolio_calculator.models import HoldingType
from portfolio_calculator.services.constants import ZERO, DEFAULT_MAX_FUND_DEPTH
from portfolio_calculator.services.exceptions import (
    DataAccessError,
    DataSourceUnavailableError,
    FatalValuationError,
    InvalidValuationRequestError,
)
from portfolio_calculator.services.valuation.dispatcher import StrategyDispatcher
from portfolio_calculator.services.valuation.strategies import (
    EquityStrategy,
    RealEstateStrategy,
    FundStrategy,
)
from portfolio_calculator.services.valuation.types import (
    HoldingFailure,
    HoldingLine,
    HoldingStatus,
    ValuationContext,
    ValuationResult,
)

if TYPE_CHECKING:
    from portfolio_calculator.models import Holding
    from portfolio_calculator.services.protocols import PortfolioRepositoryProtocol

logger = logging.getLogger(__name__)


# =============================================================================
# HOLDING SET VALUER
# =============================================================================

class HoldingSetValuer:
    """
    Values holdings one by one through the dispatcher, isolating failures.

    Used both for the investor's own holdings and, through FundStrategy, for
    the constituents of every fund.
    """

    def __init__(self, dispatcher: StrategyDispatcher) -> None:
        self._dispatcher = dispatcher

    def value_holding(self, holding: Holding, context: ValuationContext) -> HoldingLine:
        """
        Value a single holding.

        A non-fatal exception is logged, recorded on the context and turned
        into a FAILED line worth ZERO. A fund whose value is ZERO because its
        constituents failed is reported FAILED as well, not NO_DATA.

        Raises:
            FatalValuationError: Unsupported type, fund cycle, depth exceeded,
                or misconfiguration; never isolated
        """
        strategy = self._dispatcher.resolve(holding.holding_type)
        failures_before = len(context.failures)

        try:
            value = strategy.value(holding, context)
        except FatalValuationError:
            raise
        except Exception as e:
            logger.warning(
                f"Valuation of holding {holding.holding_id} "
                f"({holding.holding_type.value}) failed as of {context.as_of}, "
                f"contributing zero: {e}",
                exc_info=True,
            )
            context.record_failure(
                HoldingFailure.from_exception(
                    holding.holding_id, holding.holding_type, e, context.fund_path
                )
            )
            return HoldingLine(
                holding_id=holding.holding_id,
                holding_type=holding.holding_type,
                value=ZERO,
                status=HoldingStatus.FAILED,
            )

        if value != ZERO:
            status = HoldingStatus.VALUED
        elif len(context.failures) > failures_before:
            status = HoldingStatus.FAILED
        else:
            status = HoldingStatus.NO_DATA

        return HoldingLine(
            holding_id=holding.holding_id,
            holding_type=holding.holding_type,
            value=value,
            status=status,
        )

    def value_holdings(
            self,
            holdings: Sequence[Holding],
            context: ValuationContext,
    ) -> Decimal:
        """Sum of the values of all holdings; failed holdings contribute ZERO."""
        total = ZERO
        for holding in holdings:
            total += self.value_holding(holding, context).value
        return total


# =============================================================================
# PORTFOLIO VALUATION SERVICE
# =============================================================================

class PortfolioValuationService:
    """
    Values an investor's portfolio as of a date.

    Safe to share across requests as long as the repository is: all
    per-request state lives in a fresh ValuationContext.
    """

    def __init__(
            self,
            repository: PortfolioRepositoryProtocol,
            dispatcher: StrategyDispatcher,
            valuer: HoldingSetValuer,
    ) -> None:
        self._repository = repository
        self._dispatcher = dispatcher
        self._valuer = valuer

    @property
    def supported_types(self) -> tuple[HoldingType, ...]:
        return self._dispatcher.registered_types

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def value_portfolio(self, investor_id: str, as_of: date) -> ValuationResult:
        """
        Value every holding of an investor as of a date.

        Args:
            investor_id: The investor to value (unknown investors value to zero)
            as_of: Valuation date, inclusive

        Returns:
            ValuationResult with one subtotal per supported holding type

        Raises:
            InvalidValuationRequestError: Blank investor id
            DataSourceUnavailableError: The holdings could not be listed
            FatalValuationError: Any other request-level failure
        """
        if investor_id is None or not investor_id.strip():
            raise InvalidValuationRequestError("investor id must not be blank")

        try:
            holdings = self._repository.list_holdings(investor_id)
        except DataAccessError as e:
            raise DataSourceUnavailableError(investor_id, as_of, str(e)) from e

        context = ValuationContext(as_of=as_of)
        breakdown: dict[str, Decimal] = {
            holding_type.category_label: ZERO
            for holding_type in self._dispatcher.registered_types
        }
        lines: list[HoldingLine] = []

        for holding in holdings:
            line = self._valuer.value_holding(holding, context)
            lines.append(line)
            breakdown[holding.holding_type.category_label] += line.value

        result = ValuationResult(
            investor_id=investor_id,
            as_of=as_of,
            breakdown=breakdown,
            holdings=lines,
            failures=list(context.failures),
        )

        logger.info(
            f"Valued investor {investor_id} as of {as_of}: "
            f"{len(lines)} holdings, total={result.total}, "
            f"failures={len(result.failures)}"
        )
        return result

    def total_value(self, investor_id: str, as_of: date) -> Decimal:
        """Portfolio total only; same rules as value_portfolio()."""
        return self.value_portfolio(investor_id, as_of).total


# =============================================================================
# ASSEMBLY
# =============================================================================

def build_valuation_service(
        repository: PortfolioRepositoryProtocol,
        max_fund_depth: int = DEFAULT_MAX_FUND_DEPTH,
) -> PortfolioValuationService:
    """
    Wire strategies, dispatcher and valuer around a repository.

    The fund strategy and the holding-set valuer depend on each other; the
    valuer is bound into the fund strategy once both exist.
    """
    fund_strategy = FundStrategy(repository, max_depth=max_fund_depth)
    dispatcher = StrategyDispatcher({
        HoldingType.EQUITY: EquityStrategy(repository),
        HoldingType.REAL_ESTATE: RealEstateStrategy(repository),
        HoldingType.FUND: fund_strategy,
    })
    valuer = HoldingSetValuer(dispatcher)
    fund_strategy.bind_valuer(valuer)

    return PortfolioValuationService(repository, dispatcher, valuer)
