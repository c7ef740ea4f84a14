# backend/portfolio_calculator/services/ingestion/parsers/__init__.py
"""
Dataset file parsers package.

One parser per dataset (investments, transactions, quotes); CSV is the only
file format.

Usage:
    from portfolio_calculator.services.ingestion.parsers import get_parser, Dataset

    parser = get_parser(Dataset.QUOTES, "Quotes.csv", delimiter=";")

    with open("Quotes.csv", "rb") as f:
        result = parser.parse(f, "Quotes.csv")
"""

import logging
from pathlib import Path

from portfolio_calculator.services.exceptions import UnsupportedFileTypeError
from portfolio_calculator.services.ingestion.parsers.base import (
    Dataset,
    DatasetParser,
    ParsedHoldingRow,
    ParsedLedgerRow,
    ParsedPriceRow,
    ParseError,
    ParseResult,
)
from portfolio_calculator.services.ingestion.parsers.csv_parser import (
    CSVDatasetParser,
    InvestmentsCSVParser,
    TransactionsCSVParser,
    QuotesCSVParser,
)

logger = logging.getLogger(__name__)

# =============================================================================
# PARSER REGISTRY
# =============================================================================

# Parser classes per dataset - add new formats here
_PARSERS: dict[Dataset, list[type[CSVDatasetParser]]] = {
    Dataset.INVESTMENTS: [InvestmentsCSVParser],
    Dataset.TRANSACTIONS: [TransactionsCSVParser],
    Dataset.QUOTES: [QuotesCSVParser],
}


# =============================================================================
# FACTORY FUNCTION
# =============================================================================

def get_parser(
        dataset: Dataset,
        filename: str,
        content_type: str | None = None,
        delimiter: str = ";",
) -> DatasetParser:
    """
    Get the appropriate parser for a dataset file.

    Selects parser based on file extension first, then content type.

    Raises:
        UnsupportedFileTypeError: If no parser supports this file type
    """
    extension = Path(filename).suffix.lower()

    logger.debug(
        f"Finding {dataset.value} parser for: {filename} "
        f"(extension={extension}, content_type={content_type})"
    )

    for parser_cls in _PARSERS[dataset]:
        parser = parser_cls(delimiter=delimiter)
        if parser.supports_file(filename, content_type):
            return parser

    raise UnsupportedFileTypeError(
        filename=filename,
        supported=get_supported_extensions(),
    )


def get_supported_extensions() -> list[str]:
    """Sorted list of supported file extensions (e.g., [".csv"])."""
    extensions: set[str] = set()
    for parser_classes in _PARSERS.values():
        for parser_cls in parser_classes:
            extensions.update(parser_cls().supported_extensions)
    return sorted(extensions)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Enums
    "Dataset",
    # Factory
    "get_parser",
    "get_supported_extensions",
    # Base classes
    "DatasetParser",
    "ParsedHoldingRow",
    "ParsedLedgerRow",
    "ParsedPriceRow",
    "ParseError",
    "ParseResult",
    # Concrete parsers
    "CSVDatasetParser",
    "InvestmentsCSVParser",
    "TransactionsCSVParser",
    "QuotesCSVParser",
    # Exceptions
    "UnsupportedFileTypeError",
]
