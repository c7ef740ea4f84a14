# backend/portfolio_calculator/services/valuation/types.py
"""
Internal data types for the Valuation Service.

These dataclasses are used internally by the valuation engine and strategies.
They are NOT Pydantic schemas - those are defined in
portfolio_calculator/schemas/valuation.py for API serialization.

Design Principles:
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for valuation dates
- No rounding here; quantization happens at the presentation boundary
- Per-request state lives in ValuationContext, never on the strategies

Type Hierarchy:
    ValuationContext    - Per-request state threaded through recursion
    HoldingFailure      - A holding whose value could not be computed
    HoldingStatus       - VALUED / NO_DATA / FAILED
    HoldingLine         - Value of one top-level holding
    ValuationResult     - Complete portfolio valuation
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from portfolio_calculator.models import HoldingType
from portfolio_calculator.services.constants import ZERO


# =============================================================================
# FAILURES
# =============================================================================

@dataclass(frozen=True)
class HoldingFailure:
    """
    A holding whose valuation raised a non-fatal error.

    Attributes:
        holding_id: The holding that failed
        holding_type: Its type
        error_type: Exception class name
        message: Exception message
        fund_path: Fund holding ids enclosing the holding (empty at top level)
    """

    holding_id: str
    holding_type: HoldingType
    error_type: str
    message: str
    fund_path: tuple[str, ...] = ()

    @classmethod
    def from_exception(
            cls,
            holding_id: str,
            holding_type: HoldingType,
            exc: Exception,
            fund_path: tuple[str, ...],
    ) -> HoldingFailure:
        return cls(
            holding_id=holding_id,
            holding_type=holding_type,
            error_type=type(exc).__name__,
            message=str(exc),
            fund_path=fund_path,
        )


# =============================================================================
# CONTEXT
# =============================================================================

@dataclass
class ValuationContext:
    """
    Per-request valuation state.

    Attributes:
        as_of: Valuation date; every query is made as of this date
        fund_path: Fund holding ids currently being expanded, outermost first
        failures: Failures recorded anywhere in this request (shared by children)

    A child context (one fund level deeper) shares the failures list with its
    parent so nested failures surface on the top-level result.
    """

    as_of: date
    fund_path: tuple[str, ...] = ()
    failures: list[HoldingFailure] = field(default_factory=list)

    @property
    def depth(self) -> int:
        """Number of funds currently being expanded."""
        return len(self.fund_path)

    def is_expanding(self, holding_id: str) -> bool:
        """True if the fund holding is already on the current path."""
        return holding_id in self.fund_path

    def child(self, fund_holding_id: str) -> ValuationContext:
        """Context for valuing the constituents of a fund holding."""
        return ValuationContext(
            as_of=self.as_of,
            fund_path=(*self.fund_path, fund_holding_id),
            failures=self.failures,
        )

    def record_failure(self, failure: HoldingFailure) -> None:
        self.failures.append(failure)


# =============================================================================
# RESULTS
# =============================================================================

class HoldingStatus(str, enum.Enum):
    """
    Outcome of valuing one holding.

    NO_DATA and FAILED both contribute zero; they are kept apart so a missing
    price is never mistaken for a crash.
    """
    VALUED = "VALUED"
    NO_DATA = "NO_DATA"
    FAILED = "FAILED"


@dataclass(frozen=True)
class HoldingLine:
    """
    Value of one of the investor's own holdings.

    Attributes:
        holding_id: The holding
        holding_type: Its type
        value: Contribution to the portfolio total (ZERO when failed)
        status: VALUED, NO_DATA or FAILED
    """

    holding_id: str
    holding_type: HoldingType
    value: Decimal
    status: HoldingStatus


@dataclass
class ValuationResult:
    """
    Complete valuation of an investor's portfolio as of a date.

    Attributes:
        investor_id: The investor valued
        as_of: Valuation date
        breakdown: Category label -> subtotal, one entry per supported type
        holdings: One line per top-level holding
        failures: Every non-fatal failure, including those inside funds

    Note:
        total is derived from breakdown, so total == sum of subtotals always
        holds. Failed holdings contribute zero to both.
    """

    investor_id: str
    as_of: date
    breakdown: dict[str, Decimal]
    holdings: list[HoldingLine] = field(default_factory=list)
    failures: list[HoldingFailure] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum(self.breakdown.values(), ZERO)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
