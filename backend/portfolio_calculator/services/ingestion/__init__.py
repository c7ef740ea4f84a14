# backend/portfolio_calculator/services/ingestion/__init__.py
"""
Dataset ingestion package.

Loads the three source datasets (investments, transactions, quotes) from
CSV files into the database, atomically per import.

Usage:
    from portfolio_calculator.services.ingestion import IngestionService

    IngestionService(delimiter=";").load_directory(db, Path("data"))
"""

from portfolio_calculator.services.ingestion.parsers import (
    Dataset,
    get_parser,
    get_supported_extensions,
)
from portfolio_calculator.services.ingestion.service import (
    DATASET_FILES,
    ImportIssue,
    ImportResult,
    IngestionService,
)

__all__ = [
    "Dataset",
    "DATASET_FILES",
    "ImportIssue",
    "ImportResult",
    "IngestionService",
    "get_parser",
    "get_supported_extensions",
]
