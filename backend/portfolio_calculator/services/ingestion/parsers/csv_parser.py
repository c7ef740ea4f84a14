# backend/portfolio_calculator/services/ingestion/parsers/csv_parser.py
"""
CSV dataset parsers.

Parses the three semicolon-delimited source datasets into typed rows.

Expected CSV Formats:
    Investments.csv
        InvestorId;InvestmentId;InvestmentType;ISIN;City;FondsInvestor
        Investor0;Investment0;Stock;ISIN00;;
        Investor0;Investment1;RealEstate;;Berlin;
        Investor0;Investment2;Fonds;;;Fonds3

    Transactions.csv
        InvestmentId;Type;Date;Value
        Investment0;Shares;2017-01-02;100
        Investment1;Estate;2017-01-02;250000
        Investment2;Percentage;2017-01-02;0.25

    Quotes.csv
        ISIN;Date;PricePerShare
        ISIN00;2017-01-02;12.5

Type tags are matched case-insensitively:
    InvestmentType  Stock|Shares|Equity -> EQUITY
                    RealEstate|Estate|Real Estate -> REAL_ESTATE
                    Fonds|Fund -> FUND
    Transaction     Shares|Units -> UNITS
                    Percentage|Ownership -> OWNERSHIP
                    Estate|Land -> LAND
                    Building -> BUILDING

Dates are ISO (YYYY-MM-DD). Amounts accept '.' or ',' as decimal separator.
"""

import csv
import io
import logging
from abc import abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import BinaryIO, Any

from portfolio_calculator.models import HoldingType, LedgerKind
from portfolio_calculator.services.ingestion.parsers.base import (
    Dataset,
    DatasetParser,
    ParsedHoldingRow,
    ParsedLedgerRow,
    ParsedPriceRow,
    ParseError,
    ParseResult,
    RowT,
)

logger = logging.getLogger(__name__)


class RowValidationError(Exception):
    """Raised by _parse_row for a single invalid row; collected as a ParseError."""

    def __init__(self, error_type: str, message: str, field: str | None = None) -> None:
        self.error_type = error_type
        self.field = field
        super().__init__(message)


class CSVDatasetParser(DatasetParser[RowT]):
    """
    Shared CSV handling for all datasets.

    Features:
    - Flexible column mapping (header names matched case-insensitively)
    - Configurable delimiter (';' by default)
    - Graceful error handling per row
    - Encoding detection (UTF-8, UTF-8 with BOM, Latin-1)

    Subclasses declare COLUMN_MAPPING / REQUIRED_FIELDS and implement _parse_row().
    """

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    # Column name mapping: internal field name -> accepted CSV headers
    COLUMN_MAPPING: dict[str, list[str]] = {}

    # Required fields (must be present and non-empty)
    REQUIRED_FIELDS: set[str] = set()

    DATE_PATTERNS: list[str] = [
        "%Y-%m-%d",  # 2017-01-02
        "%Y/%m/%d",  # 2017/01/02
    ]

    def __init__(self, delimiter: str = ";") -> None:
        self._delimiter = delimiter

    # =========================================================================
    # INTERFACE IMPLEMENTATION
    # =========================================================================

    @property
    def supported_extensions(self) -> set[str]:
        return {".csv"}

    @property
    def supported_content_types(self) -> set[str]:
        return {"text/csv", "application/csv", "text/plain"}

    def parse(
            self,
            file: BinaryIO,
            filename: str,
            max_rows: int | None = None,
    ) -> ParseResult[RowT]:
        """
        Parse a CSV file into typed rows.

        Args:
            file: Binary file object containing CSV data
            filename: Original filename for error messages
            max_rows: Optional upper bound on the number of data rows

        Returns:
            ParseResult with parsed rows and errors
        """
        logger.info(f"Parsing {self.dataset.value} CSV file: {filename}")

        result: ParseResult[RowT] = ParseResult()

        try:
            content = self._read_file_content(file)
        except OSError as e:
            logger.error(f"Failed to read file {filename}: {e}", exc_info=True)
            result.errors.append(ParseError(
                row_number=0,
                error_type="file_read_error",
                message=f"Could not read file: {e}",
            ))
            return result

        try:
            reader = csv.DictReader(io.StringIO(content), delimiter=self._delimiter)

            if not reader.fieldnames:
                result.errors.append(ParseError(
                    row_number=0,
                    error_type="missing_headers",
                    message="CSV file has no headers",
                ))
                return result

            column_map = self._build_column_map(reader.fieldnames)

            missing_columns = self._get_missing_columns(column_map)
            if missing_columns:
                result.errors.append(ParseError(
                    row_number=0,
                    error_type="missing_columns",
                    message=(
                        f"Missing required columns: {', '.join(missing_columns)} "
                        f"(delimiter '{self._delimiter}')"
                    ),
                ))
                return result

            # Start at 2 (header is row 1)
            for row_num, row in enumerate(reader, start=2):
                result.total_rows += 1

                if max_rows is not None and result.total_rows > max_rows:
                    result.errors.append(ParseError(
                        row_number=row_num,
                        error_type="too_many_rows",
                        message=f"File exceeds the limit of {max_rows} data rows",
                    ))
                    break

                parsed_row, error = self._parse_csv_row(row_num, row, column_map)
                if error:
                    result.errors.append(error)
                elif parsed_row is not None:
                    result.rows.append(parsed_row)

        except csv.Error as e:
            logger.error(f"CSV parsing error in {filename}: {e}")
            result.errors.append(ParseError(
                row_number=0,
                error_type="csv_format_error",
                message=f"Invalid CSV format: {e}",
            ))

        logger.info(
            f"Parsed {filename}: {result.success_count} rows OK, "
            f"{result.error_count} errors"
        )

        return result

    # =========================================================================
    # ROW PARSING
    # =========================================================================

    @abstractmethod
    def _parse_row(self, row_number: int, values: dict[str, str]) -> RowT:
        """
        Convert the extracted string values of one row into a typed row.

        Raises:
            RowValidationError: The row is invalid
        """
        pass

    def _parse_csv_row(
            self,
            row_number: int,
            row: dict[str, Any],
            column_map: dict[str, str],
    ) -> tuple[RowT | None, ParseError | None]:
        """Returns (parsed_row, error); exactly one is None."""
        raw_data = {k: v for k, v in row.items() if k is not None}

        values: dict[str, str] = {}
        for internal_field, csv_column in column_map.items():
            values[internal_field] = (row.get(csv_column) or "").strip()

        for field in sorted(self.REQUIRED_FIELDS):
            if not values.get(field):
                return None, ParseError(
                    row_number=row_number,
                    error_type="missing_value",
                    message=f"Missing required value for '{field}'",
                    field=field,
                    raw_data=raw_data,
                )

        try:
            return self._parse_row(row_number, values), None
        except RowValidationError as e:
            return None, ParseError(
                row_number=row_number,
                error_type=e.error_type,
                message=str(e),
                field=e.field,
                raw_data=raw_data,
            )

    # =========================================================================
    # VALUE CONVERSION
    # =========================================================================

    def _parse_date(self, value: str, field: str) -> date:
        for fmt in self.DATE_PATTERNS:
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue

        raise RowValidationError(
            "invalid_date",
            f"Invalid date: '{value}'. Expected format: YYYY-MM-DD (e.g., 2017-01-02)",
            field=field,
        )

    def _parse_decimal(self, value: str, field: str) -> Decimal:
        candidate = value.replace(" ", "")
        if "," in candidate and "." not in candidate:
            candidate = candidate.replace(",", ".")

        try:
            amount = Decimal(candidate)
        except InvalidOperation:
            raise RowValidationError(
                "invalid_number",
                f"Invalid number for '{field}': '{value}'",
                field=field,
            ) from None

        if not amount.is_finite():
            raise RowValidationError(
                "invalid_number",
                f"Invalid number for '{field}': '{value}'",
                field=field,
            )
        return amount

    @staticmethod
    def _optional(value: str | None) -> str | None:
        return value or None

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _read_file_content(self, file: BinaryIO) -> str:
        """
        Read and decode file content, handling different encodings.

        Tries UTF-8 with BOM first (strips the BOM so the first header still
        matches), falls back to Latin-1.
        """
        raw_content = file.read()
        if isinstance(raw_content, str):
            return raw_content

        try:
            return raw_content.decode("utf-8-sig")
        except UnicodeDecodeError:
            pass

        # Latin-1 never fails, but may produce garbage
        logger.warning("File is not UTF-8, falling back to Latin-1 encoding")
        return raw_content.decode("latin-1")

    def _build_column_map(self, headers: list[str]) -> dict[str, str]:
        """
        Build mapping from internal field names to actual CSV column names.

        Returns:
            Dict mapping internal field -> CSV column name
        """
        column_map: dict[str, str] = {}
        normalized_headers = {
            h.lower().strip(): h for h in headers if h is not None
        }

        for internal_field, possible_names in self.COLUMN_MAPPING.items():
            for name in possible_names:
                if name.lower() in normalized_headers:
                    column_map[internal_field] = normalized_headers[name.lower()]
                    break

        return column_map

    def _get_missing_columns(self, column_map: dict[str, str]) -> list[str]:
        return sorted(f for f in self.REQUIRED_FIELDS if f not in column_map)


# =============================================================================
# INVESTMENTS
# =============================================================================

class InvestmentsCSVParser(CSVDatasetParser[ParsedHoldingRow]):
    """Parser for Investments.csv."""

    COLUMN_MAPPING: dict[str, list[str]] = {
        "investor_id": ["investorid", "investor_id", "investor"],
        "holding_id": ["investmentid", "investment_id", "holding_id", "holdingid"],
        "holding_type": ["investmenttype", "investment_type", "holding_type", "type"],
        "security_id": ["isin", "security_id", "security"],
        "location_tag": ["city", "location", "location_tag"],
        "fund_id": ["fondsinvestor", "fonds_investor", "fund_id", "fund"],
    }

    REQUIRED_FIELDS: set[str] = {"investor_id", "holding_id", "holding_type"}

    # Holding type normalization (keys are lowercase)
    TYPE_MAPPING: dict[str, HoldingType] = {
        "stock": HoldingType.EQUITY,
        "shares": HoldingType.EQUITY,
        "equity": HoldingType.EQUITY,
        "realestate": HoldingType.REAL_ESTATE,
        "real estate": HoldingType.REAL_ESTATE,
        "real_estate": HoldingType.REAL_ESTATE,
        "estate": HoldingType.REAL_ESTATE,
        "fonds": HoldingType.FUND,
        "fund": HoldingType.FUND,
    }

    @property
    def dataset(self) -> Dataset:
        return Dataset.INVESTMENTS

    def _parse_row(self, row_number: int, values: dict[str, str]) -> ParsedHoldingRow:
        holding_type = self.TYPE_MAPPING.get(values["holding_type"].lower())
        if holding_type is None:
            raise RowValidationError(
                "invalid_holding_type",
                f"Invalid investment type: '{values['holding_type']}'. "
                f"Expected: Stock, RealEstate or Fonds",
                field="holding_type",
            )

        return ParsedHoldingRow(
            row_number=row_number,
            investor_id=values["investor_id"],
            holding_id=values["holding_id"],
            holding_type=holding_type,
            security_id=self._optional(values.get("security_id")),
            location_tag=self._optional(values.get("location_tag")),
            fund_id=self._optional(values.get("fund_id")),
        )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionsCSVParser(CSVDatasetParser[ParsedLedgerRow]):
    """Parser for Transactions.csv."""

    COLUMN_MAPPING: dict[str, list[str]] = {
        "holding_id": ["investmentid", "investment_id", "holding_id", "holdingid"],
        "kind": ["type", "kind", "transaction_type"],
        "entry_date": ["date", "entry_date"],
        "amount": ["value", "amount"],
    }

    REQUIRED_FIELDS: set[str] = {"holding_id", "kind", "entry_date", "amount"}

    # Ledger kind normalization (keys are lowercase)
    KIND_MAPPING: dict[str, LedgerKind] = {
        "shares": LedgerKind.UNITS,
        "units": LedgerKind.UNITS,
        "percentage": LedgerKind.OWNERSHIP,
        "ownership": LedgerKind.OWNERSHIP,
        "estate": LedgerKind.LAND,
        "land": LedgerKind.LAND,
        "building": LedgerKind.BUILDING,
    }

    @property
    def dataset(self) -> Dataset:
        return Dataset.TRANSACTIONS

    def _parse_row(self, row_number: int, values: dict[str, str]) -> ParsedLedgerRow:
        kind = self.KIND_MAPPING.get(values["kind"].lower())
        if kind is None:
            raise RowValidationError(
                "invalid_transaction_type",
                f"Invalid transaction type: '{values['kind']}'. "
                f"Expected: Shares, Percentage, Estate or Building",
                field="kind",
            )

        return ParsedLedgerRow(
            row_number=row_number,
            holding_id=values["holding_id"],
            kind=kind,
            entry_date=self._parse_date(values["entry_date"], "entry_date"),
            amount=self._parse_decimal(values["amount"], "amount"),
        )


# =============================================================================
# QUOTES
# =============================================================================

class QuotesCSVParser(CSVDatasetParser[ParsedPriceRow]):
    """Parser for Quotes.csv."""

    COLUMN_MAPPING: dict[str, list[str]] = {
        "security_id": ["isin", "security_id", "security"],
        "price_date": ["date", "price_date"],
        "price_per_unit": ["pricepershare", "price_per_share", "price_per_unit", "price"],
    }

    REQUIRED_FIELDS: set[str] = {"security_id", "price_date", "price_per_unit"}

    @property
    def dataset(self) -> Dataset:
        return Dataset.QUOTES

    def _parse_row(self, row_number: int, values: dict[str, str]) -> ParsedPriceRow:
        price = self._parse_decimal(values["price_per_unit"], "price_per_unit")
        if price < 0:
            raise RowValidationError(
                "negative_price",
                f"Price must not be negative: '{values['price_per_unit']}'",
                field="price_per_unit",
            )

        return ParsedPriceRow(
            row_number=row_number,
            security_id=values["security_id"],
            price_date=self._parse_date(values["price_date"], "price_date"),
            price_per_unit=price,
        )
