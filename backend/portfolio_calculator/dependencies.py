# backend/portfolio_calculator/dependencies.py
"""
Dependency injection module for FastAPI services.

Stateless services shared by all requests are lazily created singletons
(@lru_cache). Anything that holds a database session is created per request.

Usage in routers:
    from portfolio_calculator.dependencies import get_portfolio_valuation_service

    @router.get("/{investor_id}/valuation")
    def get_valuation(
        service: PortfolioValuationService = Depends(get_portfolio_valuation_service),
    ):
        ...

Tests swap the data source with:
    app.dependency_overrides[get_repository] = lambda: fake_repository
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from portfolio_calculator.config import settings
from portfolio_calculator.database import get_db
from portfolio_calculator.services.constants import MAX_UPLOAD_ROWS
from portfolio_calculator.services.ingestion import IngestionService
from portfolio_calculator.services.protocols import PortfolioRepositoryProtocol
from portfolio_calculator.services.repository import SqlPortfolioRepository
from portfolio_calculator.services.valuation import (
    PortfolioValuationService,
    build_valuation_service,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================

@lru_cache(maxsize=1)
def get_ingestion_service() -> IngestionService:
    """
    Get the singleton IngestionService instance.

    Configured with the CSV delimiter from settings and the upload row limit.
    """
    logger.debug("Initializing singleton IngestionService")
    return IngestionService(delimiter=settings.csv_delimiter, max_rows=MAX_UPLOAD_ROWS)


# =============================================================================
# PER-REQUEST DEPENDENCIES
# =============================================================================

def get_repository(
    db: Annotated[Session, Depends(get_db)],
) -> PortfolioRepositoryProtocol:
    """Repository bound to the request's database session."""
    return SqlPortfolioRepository(db)


def get_portfolio_valuation_service(
    repository: Annotated[PortfolioRepositoryProtocol, Depends(get_repository)],
) -> PortfolioValuationService:
    """
    Valuation service wired around the request's repository.

    Assembly only builds three strategies and a lookup table, so doing it per
    request keeps the session out of any shared object.
    """
    return build_valuation_service(repository, max_fund_depth=settings.max_fund_depth)
