# backend/portfolio_calculator/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive their data access through constructor injection
- Are easily testable with in-memory fakes

Architecture:
    services/
    ├── __init__.py          # This file
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Business constants and limits
    ├── protocols.py         # Repository / strategy / valuer interfaces
    ├── repository.py        # SQLAlchemy point-in-time queries
    ├── valuation/           # Recursive valuation engine
    └── ingestion/           # CSV dataset import
"""
