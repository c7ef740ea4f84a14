# backend/portfolio_calculator/services/ingestion/service.py
"""
Ingestion service for loading the source datasets.

This service orchestrates the import flow:
1. Select the parser for the dataset and file type
2. Parse the file, collecting row-level errors
3. Persist all rows atomically (all or nothing)

Design Principles:
- Atomic commits: every row saved or none
- Detailed error reporting: every failure is explained
- No HTTP knowledge: raises domain exceptions

Usage:
    from portfolio_calculator.services.ingestion import IngestionService, Dataset

    service = IngestionService(delimiter=";")

    with open("Investments.csv", "rb") as f:
        result = service.import_file(db, Dataset.INVESTMENTS, f, "Investments.csv")

    if not result.success:
        for error in result.errors:
            print(f"Row {error.row_number}: {error.message}")
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Any

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio_calculator.models import Holding, LedgerEntry, PricePoint
from portfolio_calculator.services.constants import (
    INVESTMENTS_FILENAME,
    TRANSACTIONS_FILENAME,
    QUOTES_FILENAME,
)
from portfolio_calculator.services.exceptions import IngestionError
from portfolio_calculator.services.ingestion.parsers import (
    Dataset,
    ParsedHoldingRow,
    ParsedLedgerRow,
    ParsedPriceRow,
    get_parser,
)

logger = logging.getLogger(__name__)

# Import order for a data directory: holdings before the facts about them
DATASET_FILES: dict[Dataset, str] = {
    Dataset.INVESTMENTS: INVESTMENTS_FILENAME,
    Dataset.TRANSACTIONS: TRANSACTIONS_FILENAME,
    Dataset.QUOTES: QUOTES_FILENAME,
}

_DATASET_MODELS: dict[Dataset, type] = {
    Dataset.INVESTMENTS: Holding,
    Dataset.TRANSACTIONS: LedgerEntry,
    Dataset.QUOTES: PricePoint,
}


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================

@dataclass
class ImportIssue:
    """
    Represents an error during import processing.

    Attributes:
        row_number: 1-based row number (0 for file-level errors)
        stage: Processing stage where error occurred ("parsing", "persistence")
        error_type: Category of error
        message: Human-readable error description
        field: Specific field that caused the error (if applicable)
        raw_data: Original row data for context
    """

    row_number: int
    stage: str
    error_type: str
    message: str
    field: str | None = None
    raw_data: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclass
class ImportResult:
    """
    Result of importing one dataset file.

    Attributes:
        dataset: The dataset imported
        filename: Original filename
        success: True if every row was persisted
        total_rows: Data rows in file
        imported_count: Rows persisted (0 unless success)
        replaced_count: Existing rows removed before the import
        errors: Detailed error information
    """

    dataset: Dataset
    filename: str
    success: bool = False
    total_rows: int = 0
    imported_count: int = 0
    replaced_count: int = 0
    errors: list[ImportIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(
            self,
            row_number: int,
            stage: str,
            error_type: str,
            message: str,
            field: str | None = None,
            raw_data: dict[str, Any] | None = None,
    ) -> None:
        """Add an error to the result."""
        self.errors.append(ImportIssue(
            row_number=row_number,
            stage=stage,
            error_type=error_type,
            message=message,
            field=field,
            raw_data=raw_data or {},
        ))


# =============================================================================
# INGESTION SERVICE
# =============================================================================

class IngestionService:
    """
    Imports investments, transactions and quotes into the database.

    The service guarantees atomic behavior per call:
    - If ANY row fails parsing -> NOTHING is written
    - If the database write fails -> rollback, NOTHING is written

    With replace=True (the default) the dataset's existing rows are deleted in
    the same transaction, so re-importing a file never double-counts units.
    With replace=False holdings are upserted by holding id and ledger/price
    rows are appended.
    """

    def __init__(self, delimiter: str = ";", max_rows: int | None = None) -> None:
        self._delimiter = delimiter
        self._max_rows = max_rows

    def import_file(
            self,
            db: Session,
            dataset: Dataset,
            file: BinaryIO,
            filename: str,
            content_type: str | None = None,
            replace: bool = True,
            commit: bool = True,
    ) -> ImportResult:
        """
        Import one dataset file.

        Args:
            db: Database session
            dataset: Which dataset the file holds
            file: File object to process
            filename: Original filename
            content_type: Optional MIME type
            replace: Delete the dataset's existing rows first
            commit: Commit on success (False lets a caller group several imports)

        Returns:
            ImportResult with success status and details

        Raises:
            UnsupportedFileTypeError: No parser handles the file type
        """
        result = ImportResult(dataset=dataset, filename=filename)
        logger.info(f"Importing {dataset.value} from {filename} (replace={replace})")

        parser = get_parser(dataset, filename, content_type, delimiter=self._delimiter)
        parse_result = parser.parse(file, filename, max_rows=self._max_rows)

        result.total_rows = parse_result.total_rows
        for error in parse_result.errors:
            result.add_error(
                error.row_number, "parsing", error.error_type, error.message,
                error.field, error.raw_data,
            )

        if not result.errors and not parse_result.has_data:
            result.add_error(0, "parsing", "empty_file", "No data rows found")

        if result.errors:
            logger.warning(f"Import of {filename} rejected: {result.error_count} errors")
            return result

        if dataset == Dataset.INVESTMENTS:
            self._check_duplicate_holdings(parse_result.rows, result)
            if result.errors:
                return result

        try:
            if replace:
                result.replaced_count = self._delete_existing(db, dataset)
            result.imported_count = self._persist(db, dataset, parse_result.rows, replace)
            if commit:
                db.commit()
            else:
                db.flush()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Saving {filename} failed: {e}", exc_info=True)
            result.imported_count = 0
            result.add_error(0, "persistence", "database_error", str(e))
            return result

        result.success = True
        logger.info(
            f"Import of {filename} complete: {result.imported_count} rows"
            f" (replaced {result.replaced_count})"
        )
        return result

    def load_directory(
            self,
            db: Session,
            data_dir: Path,
            replace: bool = True,
    ) -> list[ImportResult]:
        """
        Import Investments.csv, Transactions.csv and Quotes.csv from a directory.

        Missing files are skipped with a warning. All present files are
        imported in one transaction.

        Raises:
            IngestionError: A file failed to import (nothing was committed)
        """
        data_dir = Path(data_dir)
        if not data_dir.is_dir():
            raise IngestionError(f"Data directory not found: {data_dir}")

        results: list[ImportResult] = []
        for dataset, filename in DATASET_FILES.items():
            path = data_dir / filename
            if not path.is_file():
                logger.warning(f"{dataset.value} file not found: {path}")
                continue

            with path.open("rb") as f:
                result = self.import_file(
                    db, dataset, f, filename, replace=replace, commit=False
                )

            if not result.success:
                db.rollback()
                first = result.errors[0]
                raise IngestionError(
                    f"Import of {path} failed with {result.error_count} error(s); "
                    f"first at row {first.row_number}: {first.message}",
                    dataset=dataset.value,
                )
            results.append(result)

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise IngestionError(f"Saving {data_dir} failed: {e}") from e

        logger.info(
            f"Loaded {data_dir}: "
            + ", ".join(f"{r.dataset.value}={r.imported_count}" for r in results)
        )
        return results

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _check_duplicate_holdings(
            self,
            rows: list[ParsedHoldingRow],
            result: ImportResult,
    ) -> None:
        seen: dict[str, int] = {}
        for row in rows:
            if row.holding_id in seen:
                result.add_error(
                    row.row_number,
                    "validation",
                    "duplicate_holding",
                    f"Duplicate investment id '{row.holding_id}' "
                    f"(first seen on row {seen[row.holding_id]})",
                    field="holding_id",
                )
            else:
                seen[row.holding_id] = row.row_number

    def _delete_existing(self, db: Session, dataset: Dataset) -> int:
        model = _DATASET_MODELS[dataset]
        outcome = db.execute(delete(model))
        return outcome.rowcount or 0

    def _persist(
            self,
            db: Session,
            dataset: Dataset,
            rows: list,
            replace: bool,
    ) -> int:
        if dataset == Dataset.INVESTMENTS:
            holdings = [self._to_holding(row) for row in rows]
            if replace:
                db.add_all(holdings)
            else:
                for holding in holdings:
                    db.merge(holding)
        elif dataset == Dataset.TRANSACTIONS:
            db.add_all(self._to_ledger_entry(row) for row in rows)
        else:
            db.add_all(self._to_price_point(row) for row in rows)

        db.flush()
        return len(rows)

    @staticmethod
    def _to_holding(row: ParsedHoldingRow) -> Holding:
        return Holding(
            holding_id=row.holding_id,
            investor_id=row.investor_id,
            holding_type=row.holding_type,
            security_id=row.security_id,
            fund_id=row.fund_id,
            location_tag=row.location_tag,
        )

    @staticmethod
    def _to_ledger_entry(row: ParsedLedgerRow) -> LedgerEntry:
        return LedgerEntry(
            holding_id=row.holding_id,
            kind=row.kind,
            entry_date=row.entry_date,
            amount=row.amount,
        )

    @staticmethod
    def _to_price_point(row: ParsedPriceRow) -> PricePoint:
        return PricePoint(
            security_id=row.security_id,
            price_date=row.price_date,
            price_per_unit=row.price_per_unit,
        )
