# backend/portfolio_calculator/services/valuation/__init__.py
"""
Valuation Service Package.

This package values an investor's portfolio as of a date:
- Direct equity positions (units × price)
- Real-estate parcels (land + building appraisals)
- Fund stakes (ownership × recursive value of the fund's holdings)

Usage:
    from portfolio_calculator.services.valuation import build_valuation_service

    service = build_valuation_service(repository, max_fund_depth=32)
    result = service.value_portfolio("Investor0", date(2019, 12, 31))

Architecture:
    valuation/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Context and result dataclasses
    ├── strategies.py     # Equity / RealEstate / Fund strategies
    ├── dispatcher.py     # HoldingType → strategy table
    └── service.py        # HoldingSetValuer, PortfolioValuationService, assembly

Data Flow:
    PortfolioValuationService → repository.list_holdings
    → HoldingSetValuer → StrategyDispatcher → Strategy.value
    → (FundStrategy) repository → HoldingSetValuer (recursive)
    → ValuationResult
"""

from portfolio_calculator.services.valuation.dispatcher import StrategyDispatcher
from portfolio_calculator.services.valuation.service import (
    HoldingSetValuer,
    PortfolioValuationService,
    build_valuation_service,
)
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

__all__ = [
    # Main service
    "PortfolioValuationService",
    "build_valuation_service",
    "HoldingSetValuer",
    "StrategyDispatcher",

    # Strategies
    "EquityStrategy",
    "RealEstateStrategy",
    "FundStrategy",

    # Data types
    "HoldingFailure",
    "HoldingLine",
    "HoldingStatus",
    "ValuationContext",
    "ValuationResult",
]
