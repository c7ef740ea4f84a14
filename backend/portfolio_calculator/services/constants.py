# backend/portfolio_calculator/services/constants.py
"""
Centralized constants for the Portfolio Calculator services.

Usage:
    from portfolio_calculator.services.constants import (
        ZERO,
        CURRENCY_PRECISION,
        RATE_LIMIT_DEFAULT,
    )
"""

from decimal import Decimal


# =============================================================================
# DECIMAL PRECISION CONSTANTS
# =============================================================================
# The valuation core never rounds; these are applied at presentation time only

# Currency amounts: 2 decimal places (e.g., 1234.56)
# Used for: API responses and console output of portfolio values
CURRENCY_PRECISION: Decimal = Decimal("0.01")


# =============================================================================
# UTILITY CONSTANTS
# =============================================================================

# Type-safe zero for Decimal comparisons
ZERO: Decimal = Decimal("0")


# =============================================================================
# VALUATION CONSTANTS
# =============================================================================

# Default maximum fund-of-fund nesting depth (overridable via MAX_FUND_DEPTH)
DEFAULT_MAX_FUND_DEPTH: int = 32


# =============================================================================
# DATASET FILE NAMES
# =============================================================================
# File names looked up in DATA_DIR by init_db.py and the console

INVESTMENTS_FILENAME: str = "Investments.csv"
TRANSACTIONS_FILENAME: str = "Transactions.csv"
QUOTES_FILENAME: str = "Quotes.csv"


# =============================================================================
# RATE LIMITING CONSTANTS
# =============================================================================
# Limits are expressed as "X per Y" where Y is the time window
# Format follows slowapi/limits syntax: "100/minute", "10/hour", etc.

# Default rate limit for read endpoints (GET requests)
RATE_LIMIT_DEFAULT: str = "100/minute"

# Rate limit for file upload endpoints
# Imports replace whole datasets, limit to prevent abuse
RATE_LIMIT_UPLOAD: str = "5/minute"

# Rate limit for health check endpoints
# Higher limit for monitoring tools that poll frequently
RATE_LIMIT_HEALTH: str = "300/minute"


# =============================================================================
# RESOURCE LIMIT CONSTANTS
# =============================================================================

# Maximum file upload size in bytes (25 MB)
MAX_UPLOAD_FILE_SIZE_BYTES: int = 25 * 1024 * 1024

# Maximum number of data rows in a single uploaded file
MAX_UPLOAD_ROWS: int = 500_000
