# backend/portfolio_calculator/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- SqlPortfolioRepository satisfies PortfolioRepositoryProtocol without inheriting it
- Test fakes work without explicit inheritance
- The valuation core depends on these interfaces, never on SQLAlchemy
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_calculator.models import Holding, LedgerKind
    from portfolio_calculator.services.valuation.types import ValuationContext


class PortfolioRepositoryProtocol(Protocol):
    """
    Point-in-time read access to holdings, ledger entries and prices.

    Every query sees only facts dated on or before ``as_of``. Missing data is
    answered with zero or an empty list, never with an exception.
    """

    def list_holdings(self, investor_id: str) -> list[Holding]:
        ...

    def latest_price(self, security_id: str, as_of: date) -> Decimal:
        ...

    def units_held(self, holding_id: str, as_of: date) -> Decimal:
        ...

    def property_component_value(
        self,
        holding_id: str,
        kind: LedgerKind,
        as_of: date,
    ) -> Decimal:
        ...

    def ownership_fraction(
        self,
        investor_id: str,
        fund_holding_id: str,
        as_of: date,
    ) -> Decimal:
        ...

    def list_underlying_holdings(self, fund_holding_id: str) -> list[Holding]:
        ...


class ValuationStrategy(Protocol):
    """Values one holding of a single type as of the context's date."""

    def value(self, holding: Holding, context: ValuationContext) -> Decimal:
        ...


class HoldingValuer(Protocol):
    """
    Values a set of holdings with per-holding failure isolation.

    This is the capability the fund strategy recurses through.
    """

    def value_holdings(
        self,
        holdings: Sequence[Holding],
        context: ValuationContext,
    ) -> Decimal:
        ...
