# backend/portfolio_calculator/schemas/__init__.py
"""
Pydantic schemas for API responses.

- errors: Error response formats
- valuation: Portfolio valuation, totals and holdings listing
- upload: Dataset upload results

Usage:
    from portfolio_calculator.schemas import PortfolioValuationResponse, ErrorDetail
"""

from portfolio_calculator.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_calculator.schemas.upload import (
    ImportIssueResponse,
    ImportResponse,
    SupportedFormatsResponse,
)
from portfolio_calculator.schemas.valuation import (
    HoldingResponse,
    HoldingListResponse,
    HoldingLineResponse,
    HoldingFailureResponse,
    PortfolioValuationResponse,
    PortfolioTotalResponse,
    to_money,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Upload
    "ImportIssueResponse",
    "ImportResponse",
    "SupportedFormatsResponse",
    # Valuation
    "HoldingResponse",
    "HoldingListResponse",
    "HoldingLineResponse",
    "HoldingFailureResponse",
    "PortfolioValuationResponse",
    "PortfolioTotalResponse",
    "to_money",
]
