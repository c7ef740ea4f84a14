# backend/portfolio_calculator/services/ingestion/parsers/base.py
"""
Abstract interface for dataset file parsers.

This module defines the contract that all dataset parsers must follow.
Every dataset (investments, transactions, quotes) has its own parser that
turns a file into typed rows ready to be persisted.

Design Principles:
- Single Responsibility: Parsers only parse, they don't touch the database
- Consistent output structure regardless of dataset
- Row-level problems are collected, never raised
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Any, Generic, TypeVar

from portfolio_calculator.models import HoldingType, LedgerKind


# =============================================================================
# ENUMS
# =============================================================================

class Dataset(str, Enum):
    """
    The three source datasets.

    Usage:
        POST /upload/investments
        POST /upload/transactions
        POST /upload/quotes
    """

    INVESTMENTS = "investments"
    TRANSACTIONS = "transactions"
    QUOTES = "quotes"


# =============================================================================
# PARSED ROWS
# =============================================================================

@dataclass(frozen=True)
class ParsedHoldingRow:
    """
    One row of Investments.csv.

    Attributes:
        row_number: 1-based row number in source file (header is row 1)
        investor_id: Owner of the holding (an investor or a fund entity)
        holding_id: Unique holding id
        holding_type: Normalized holding type
        security_id: ISIN (equities)
        location_tag: City (real estate)
        fund_id: Fund entity this holding is a stake in (funds)
    """

    row_number: int
    investor_id: str
    holding_id: str
    holding_type: HoldingType
    security_id: str | None = None
    location_tag: str | None = None
    fund_id: str | None = None


@dataclass(frozen=True)
class ParsedLedgerRow:
    """One row of Transactions.csv."""

    row_number: int
    holding_id: str
    kind: LedgerKind
    entry_date: date
    amount: Decimal


@dataclass(frozen=True)
class ParsedPriceRow:
    """One row of Quotes.csv."""

    row_number: int
    security_id: str
    price_date: date
    price_per_unit: Decimal


RowT = TypeVar("RowT")


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ParseError:
    """
    Represents a parsing error for a specific row.

    Attributes:
        row_number: 1-based row number where error occurred (0 for file-level)
        error_type: Category of error (e.g., "missing_value", "invalid_date")
        message: Human-readable error description
        field: Specific field that caused the error (if applicable)
        raw_data: Original row data for context
    """

    row_number: int
    error_type: str
    message: str
    field: str | None = None
    raw_data: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclass
class ParseResult(Generic[RowT]):
    """
    Result of parsing a file.

    Contains both successfully parsed rows and any errors encountered.

    Attributes:
        rows: Successfully parsed rows
        errors: Parsing errors (malformed rows, missing fields, etc.)
        total_rows: Total number of data rows attempted
    """

    rows: list[RowT] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    total_rows: int = 0

    @property
    def success_count(self) -> int:
        return len(self.rows)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def all_successful(self) -> bool:
        """True if all rows were parsed successfully."""
        return self.error_count == 0 and self.success_count > 0

    @property
    def has_data(self) -> bool:
        return self.success_count > 0


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class DatasetParser(ABC, Generic[RowT]):
    """
    Abstract base class for dataset parsers.

    A parser is ONLY responsible for:
    - Reading the file format
    - Mapping columns to the dataset's fields
    - Normalizing type tags, dates and amounts
    - Reporting row-level errors

    It does NOT create database records (IngestionService does this).
    """

    @property
    @abstractmethod
    def dataset(self) -> Dataset:
        """The dataset this parser reads."""
        pass

    @property
    @abstractmethod
    def supported_extensions(self) -> set[str]:
        """File extensions this parser handles (lowercase, leading dot)."""
        pass

    @property
    @abstractmethod
    def supported_content_types(self) -> set[str]:
        """MIME types this parser handles; fallback when the extension is unknown."""
        pass

    @abstractmethod
    def parse(
            self,
            file: BinaryIO,
            filename: str,
            max_rows: int | None = None,
    ) -> ParseResult[RowT]:
        """
        Parse file contents into typed rows.

        Args:
            file: File-like object (binary mode) to read from
            filename: Original filename (for error messages)
            max_rows: Reject the file when it has more data rows than this

        Returns:
            ParseResult containing parsed rows and any errors

        Note:
            This method should NOT raise exceptions for individual row errors.
            Instead, capture them in ParseResult.errors and continue processing.
        """
        pass

    def supports_file(self, filename: str, content_type: str | None = None) -> bool:
        """Check if this parser can handle the given file."""
        extension = Path(filename).suffix.lower()

        if extension in self.supported_extensions:
            return True

        if content_type and content_type.lower() in self.supported_content_types:
            return True

        return False
