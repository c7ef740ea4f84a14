# backend/portfolio_calculator/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Portfolio valuation (category breakdown, holding lines, failures)
- Portfolio total
- Holdings listing

Monetary values are quantized to two decimals when the response is built
(see from_result); the valuation core itself never rounds.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel, ConfigDict, Field

from portfolio_calculator.models import HoldingType
from portfolio_calculator.services.constants import CURRENCY_PRECISION
from portfolio_calculator.services.valuation.types import (
    HoldingStatus,
    ValuationResult,
)


def to_money(value: Decimal) -> Decimal:
    """Quantize a monetary amount for presentation."""
    return value.quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)


# =============================================================================
# HOLDING SCHEMAS
# =============================================================================

class HoldingResponse(BaseModel):
    """A holding as stored."""

    model_config = ConfigDict(from_attributes=True)

    holding_id: str = Field(..., description="Unique holding id")
    investor_id: str = Field(..., description="Owner (investor or fund entity)")
    holding_type: HoldingType = Field(..., description="EQUITY, REAL_ESTATE or FUND")
    security_id: str | None = Field(default=None, description="ISIN (equities)")
    fund_id: str | None = Field(
        default=None,
        description="Fund entity this holding is a stake in (funds)"
    )
    location_tag: str | None = Field(default=None, description="City (real estate)")


class HoldingListResponse(BaseModel):
    """All holdings of an investor."""

    investor_id: str
    count: int = Field(..., description="Number of holdings")
    holdings: list[HoldingResponse] = Field(default_factory=list)


# =============================================================================
# VALUATION SCHEMAS
# =============================================================================

class HoldingLineResponse(BaseModel):
    """Value of one of the investor's own holdings."""

    holding_id: str
    holding_type: HoldingType
    category: str = Field(..., description="Breakdown category the value is counted in")
    value: Decimal = Field(..., description="Contribution to the total (0.00 when failed)")
    status: HoldingStatus = Field(
        ...,
        description="VALUED, NO_DATA (no contributing facts) or FAILED (computation error)"
    )


class HoldingFailureResponse(BaseModel):
    """A holding whose value could not be computed and was counted as zero."""

    holding_id: str
    holding_type: HoldingType
    error_type: str = Field(..., description="Exception class name")
    message: str
    fund_path: list[str] = Field(
        default_factory=list,
        description="Fund holdings enclosing the failed holding, outermost first"
    )


class PortfolioValuationResponse(BaseModel):
    """
    Complete portfolio valuation as of a date.

    total always equals the sum of the breakdown subtotals.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "investor_id": "Investor0",
                "valuation_date": "2019-12-31",
                "total": "200.00",
                "breakdown": {"Equity": "100.00", "Real Estate": "100.00", "Fund": "0.00"},
                "holdings": [],
                "failures": [],
                "has_failures": False,
            }
        }
    )

    investor_id: str
    valuation_date: date
    total: Decimal = Field(..., description="Portfolio value")
    breakdown: dict[str, Decimal] = Field(
        ...,
        description="Subtotal per holding category; every category is present"
    )
    holdings: list[HoldingLineResponse] = Field(default_factory=list)
    failures: list[HoldingFailureResponse] = Field(default_factory=list)
    has_failures: bool = Field(
        default=False,
        description="True if any holding (including inside funds) counted as zero after an error"
    )

    @classmethod
    def from_result(cls, result: ValuationResult) -> "PortfolioValuationResponse":
        return cls(
            investor_id=result.investor_id,
            valuation_date=result.as_of,
            total=to_money(result.total),
            breakdown={
                category: to_money(subtotal)
                for category, subtotal in result.breakdown.items()
            },
            holdings=[
                HoldingLineResponse(
                    holding_id=line.holding_id,
                    holding_type=line.holding_type,
                    category=line.holding_type.category_label,
                    value=to_money(line.value),
                    status=line.status,
                )
                for line in result.holdings
            ],
            failures=[
                HoldingFailureResponse(
                    holding_id=failure.holding_id,
                    holding_type=failure.holding_type,
                    error_type=failure.error_type,
                    message=failure.message,
                    fund_path=list(failure.fund_path),
                )
                for failure in result.failures
            ],
            has_failures=result.has_failures,
        )


class PortfolioTotalResponse(BaseModel):
    """Portfolio value only."""

    investor_id: str
    valuation_date: date
    total: Decimal = Field(..., description="Portfolio value")
