# backend/portfolio_calculator/routers/valuation.py
"""
Portfolio valuation endpoints.

- GET /investors/{investor_id}/valuation - Breakdown, holding lines, failures
- GET /investors/{investor_id}/valuation/total - Total only
- GET /investors/{investor_id}/holdings - Holdings as stored

Domain exceptions (InvalidValuationRequestError, FundCycleError,
DataSourceUnavailableError, ...) propagate to the global handlers in main.py.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Path, Query

from portfolio_calculator.dependencies import (
    get_portfolio_valuation_service,
    get_repository,
)
from portfolio_calculator.schemas.errors import ErrorDetail
from portfolio_calculator.schemas.valuation import (
    HoldingListResponse,
    HoldingResponse,
    PortfolioTotalResponse,
    PortfolioValuationResponse,
    to_money,
)
from portfolio_calculator.services.protocols import PortfolioRepositoryProtocol
from portfolio_calculator.services.valuation import PortfolioValuationService

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/investors",
    tags=["Valuation"],
)

_ERROR_RESPONSES = {
    400: {"model": ErrorDetail, "description": "Invalid valuation request"},
    422: {"model": ErrorDetail, "description": "Unsupported holding type, fund cycle or nesting too deep"},
    503: {"model": ErrorDetail, "description": "Holdings could not be loaded"},
}


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/{investor_id}/valuation",
    response_model=PortfolioValuationResponse,
    summary="Get portfolio valuation",
    response_description="Category breakdown, per-holding values and failures",
    responses=_ERROR_RESPONSES,
)
def get_portfolio_valuation(
        investor_id: str = Path(..., description="Investor id (e.g. Investor0)"),
        valuation_date: date | None = Query(
            default=None,
            description="Valuation date, inclusive (default: today)",
            alias="date",
        ),
        service: PortfolioValuationService = Depends(get_portfolio_valuation_service),
) -> PortfolioValuationResponse:
    """
    Value an investor's portfolio as of a date.

    Returns:
    - **total**: Portfolio value
    - **breakdown**: Subtotal per category (Equity, Real Estate, Fund)
    - **holdings**: One line per holding with status VALUED, NO_DATA or FAILED
    - **failures**: Holdings (including inside funds) that failed and counted as zero

    Only facts dated on or before the valuation date are used.
    """
    result = service.value_portfolio(investor_id, valuation_date or date.today())
    return PortfolioValuationResponse.from_result(result)


@router.get(
    "/{investor_id}/valuation/total",
    response_model=PortfolioTotalResponse,
    summary="Get portfolio total",
    responses=_ERROR_RESPONSES,
)
def get_portfolio_total(
        investor_id: str = Path(..., description="Investor id (e.g. Investor0)"),
        valuation_date: date | None = Query(
            default=None,
            description="Valuation date, inclusive (default: today)",
            alias="date",
        ),
        service: PortfolioValuationService = Depends(get_portfolio_valuation_service),
) -> PortfolioTotalResponse:
    """Portfolio value only, same rules as /valuation."""
    as_of = valuation_date or date.today()
    total = service.total_value(investor_id, as_of)
    return PortfolioTotalResponse(
        investor_id=investor_id,
        valuation_date=as_of,
        total=to_money(total),
    )


@router.get(
    "/{investor_id}/holdings",
    response_model=HoldingListResponse,
    summary="List an investor's holdings",
)
def list_investor_holdings(
        investor_id: str = Path(..., description="Investor or fund entity id"),
        repository: PortfolioRepositoryProtocol = Depends(get_repository),
) -> HoldingListResponse:
    """
    Holdings owned by an investor. Passing a fund entity id (the
    FondsInvestor column) lists the fund's constituents.
    """
    holdings = repository.list_holdings(investor_id)
    return HoldingListResponse(
        investor_id=investor_id,
        count=len(holdings),
        holdings=[HoldingResponse.model_validate(h) for h in holdings],
    )
