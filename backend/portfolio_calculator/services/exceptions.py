# backend/portfolio_calculator/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidValuationRequestError
    ├── DataAccessError
    ├── IngestionError
    │   └── UnsupportedFileTypeError
    └── ValuationError
        └── FatalValuationError
            ├── UnsupportedHoldingTypeError
            ├── FundCycleError
            ├── FundDepthExceededError
            ├── ValuationConfigurationError
            └── DataSourceUnavailableError

Isolation rule used by the valuation engine:
    A FatalValuationError always propagates to the caller. Every other
    exception raised while valuing a single holding is recorded as a
    HoldingFailure and that holding contributes zero.
"""

from datetime import date


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    This is for programmatic validation errors (invalid parameters, missing
    required fields, etc.), NOT for user input validation which is handled
    by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidValuationRequestError(ValidationError):
    """Raised when a valuation request cannot be evaluated (e.g. blank investor id)."""

    def __init__(self, reason: str, field: str | None = "investor_id") -> None:
        self.reason = reason
        super().__init__(f"Invalid valuation request: {reason}", field=field)


# =============================================================================
# DATA ACCESS ERRORS
# =============================================================================


class DataAccessError(ServiceError):
    """
    Raised when the backing store fails to answer a query.

    Absence of data is NOT an error (queries return zero or an empty list);
    this is reserved for storage faults.

    Attributes:
        operation: Name of the repository operation that failed
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Data access failed in {operation}: {reason}")


# =============================================================================
# INGESTION ERRORS
# =============================================================================


class IngestionError(ServiceError):
    """
    Raised when a dataset cannot be imported.

    Attributes:
        dataset: Name of the dataset being imported (investments, transactions, quotes)
    """

    def __init__(self, message: str, dataset: str | None = None) -> None:
        self.dataset = dataset
        super().__init__(message)


class UnsupportedFileTypeError(IngestionError):
    """Raised when no parser exists for the uploaded file."""

    def __init__(self, filename: str, supported: list[str]) -> None:
        self.filename = filename
        self.supported = supported
        super().__init__(
            f"Unsupported file type: '{filename}'. Supported: {', '.join(supported)}"
        )


# =============================================================================
# VALUATION ERRORS
# =============================================================================


class ValuationError(ServiceError):
    """Base exception for valuation failures."""
    pass


class FatalValuationError(ValuationError):
    """
    Valuation error that aborts the whole request.

    Never recorded as a per-holding failure, including inside fund recursion.
    """
    pass


class UnsupportedHoldingTypeError(FatalValuationError):
    """
    Raised when no valuation strategy is registered for a holding type.

    Attributes:
        holding_type: The unresolvable type
    """

    def __init__(self, holding_type: object) -> None:
        self.holding_type = holding_type
        label = getattr(holding_type, "value", holding_type)
        super().__init__(f"No valuation strategy registered for holding type '{label}'")


class FundCycleError(FatalValuationError):
    """
    Raised when a fund (transitively) contains itself.

    Attributes:
        holding_id: The fund holding that closed the cycle
        fund_path: Fund holding ids from the top-level holding down to the repeat
    """

    def __init__(self, holding_id: str, fund_path: tuple[str, ...]) -> None:
        self.holding_id = holding_id
        self.fund_path = fund_path
        chain = " -> ".join((*fund_path, holding_id))
        super().__init__(f"Fund cycle detected: {chain}")


class FundDepthExceededError(FatalValuationError):
    """
    Raised when fund-of-fund nesting goes deeper than the configured limit.

    Attributes:
        holding_id: The fund holding that would exceed the limit
        max_depth: Configured maximum nesting depth
    """

    def __init__(self, holding_id: str, max_depth: int) -> None:
        self.holding_id = holding_id
        self.max_depth = max_depth
        super().__init__(
            f"Fund nesting deeper than {max_depth} levels at holding '{holding_id}'"
        )


class ValuationConfigurationError(FatalValuationError):
    """Raised when the valuation components were assembled incorrectly."""
    pass


class DataSourceUnavailableError(FatalValuationError):
    """
    Raised when the investor's holdings cannot be listed at all.

    Attributes:
        investor_id: The investor whose portfolio was requested
        as_of: The requested valuation date
    """

    def __init__(self, investor_id: str, as_of: date, reason: str) -> None:
        self.investor_id = investor_id
        self.as_of = as_of
        self.reason = reason
        super().__init__(
            f"Holdings for investor '{investor_id}' unavailable as of {as_of}: {reason}"
        )


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidValuationRequestError",
    # Data access
    "DataAccessError",
    # Ingestion
    "IngestionError",
    "UnsupportedFileTypeError",
    # Valuation
    "ValuationError",
    "FatalValuationError",
    "UnsupportedHoldingTypeError",
    "FundCycleError",
    "FundDepthExceededError",
    "ValuationConfigurationError",
    "DataSourceUnavailableError",
]
