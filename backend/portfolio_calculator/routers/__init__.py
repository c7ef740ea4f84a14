# backend/portfolio_calculator/routers/__init__.py
"""
API routers for the Portfolio Calculator.

- valuation: Portfolio valuation, totals and holdings per investor
- upload: CSV dataset import (investments, transactions, quotes)
"""

from portfolio_calculator.routers.upload import router as upload_router
from portfolio_calculator.routers.valuation import router as valuation_router

__all__ = [
    "upload_router",
    "valuation_router",
]
