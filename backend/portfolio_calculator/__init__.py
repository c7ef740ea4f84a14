# backend/portfolio_calculator/__init__.py
"""Portfolio Calculator: point-in-time portfolio valuation with fund look-through."""
