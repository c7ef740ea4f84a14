# backend/tests/services/ingestion/test_csv_parser.py
"""
Tests for the dataset CSV parsers.

Test Coverage:
- Header recognition (original column names, aliases, BOM)
- Type / kind normalization
- Row-level errors with row numbers
- File-level errors (no headers, missing columns, too many rows)
- Parser selection by file type
"""

import io
from datetime import date
from decimal import Decimal

import pytest

from portfolio_calculator.models import HoldingType, LedgerKind
from portfolio_calculator.services.exceptions import UnsupportedFileTypeError
from portfolio_calculator.services.ingestion import (
    Dataset,
    get_parser,
    get_supported_extensions,
)
from portfolio_calculator.services.ingestion.parsers import (
    InvestmentsCSVParser,
    QuotesCSVParser,
    TransactionsCSVParser,
)


def _csv(text: str) -> io.BytesIO:
    return io.BytesIO(text.encode("utf-8"))


# =============================================================================
# INVESTMENTS
# =============================================================================

class TestInvestmentsParser:
    """Tests for InvestmentsCSVParser."""

    def test_parses_all_types(self):
        content = (
            "InvestorId;InvestmentId;InvestmentType;ISIN;City;FondsInvestor\n"
            "Investor0;Investment0;Stock;ISIN1;;\n"
            "Investor0;Investment1;RealEstate;;Berlin;\n"
            "Investor0;Investment2;Fonds;;;Fonds3\n"
        )

        result = InvestmentsCSVParser().parse(_csv(content), "Investments.csv")

        assert result.all_successful
        assert [r.holding_type for r in result.rows] == [
            HoldingType.EQUITY, HoldingType.REAL_ESTATE, HoldingType.FUND,
        ]
        equity, estate, fund = result.rows
        assert equity.security_id == "ISIN1"
        assert equity.fund_id is None
        assert estate.location_tag == "Berlin"
        assert fund.fund_id == "Fonds3"
        assert fund.row_number == 4

    @pytest.mark.parametrize("tag,expected", [
        ("stock", HoldingType.EQUITY),
        ("SHARES", HoldingType.EQUITY),
        ("Equity", HoldingType.EQUITY),
        ("Real Estate", HoldingType.REAL_ESTATE),
        ("estate", HoldingType.REAL_ESTATE),
        ("Fund", HoldingType.FUND),
    ])
    def test_type_aliases(self, tag, expected):
        content = (
            "InvestorId;InvestmentId;InvestmentType\n"
            f"Investor0;Investment0;{tag}\n"
        )

        result = InvestmentsCSVParser().parse(_csv(content), "Investments.csv")

        assert result.rows[0].holding_type == expected

    def test_unknown_type_is_row_error(self):
        content = (
            "InvestorId;InvestmentId;InvestmentType\n"
            "Investor0;Investment0;Crypto\n"
        )

        result = InvestmentsCSVParser().parse(_csv(content), "Investments.csv")

        assert result.rows == []
        assert result.errors[0].row_number == 2
        assert result.errors[0].error_type == "invalid_holding_type"
        assert result.errors[0].field == "holding_type"

    def test_missing_required_value(self):
        content = (
            "InvestorId;InvestmentId;InvestmentType\n"
            ";Investment0;Stock\n"
        )

        result = InvestmentsCSVParser().parse(_csv(content), "Investments.csv")

        assert result.errors[0].error_type == "missing_value"
        assert result.errors[0].field == "investor_id"

    def test_utf8_bom_header(self):
        content = "\ufeffInvestorId;InvestmentId;InvestmentType\nInvestor0;Investment0;Stock\n"

        result = InvestmentsCSVParser().parse(
            io.BytesIO(content.encode("utf-8")), "Investments.csv"
        )

        assert result.all_successful
        assert result.rows[0].investor_id == "Investor0"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TestTransactionsParser:
    """Tests for TransactionsCSVParser."""

    def test_parses_kinds_dates_and_amounts(self):
        content = (
            "InvestmentId;Type;Date;Value\n"
            "Investment0;Shares;2017-01-02;100\n"
            "Investment1;Estate;2018-03-04;250000,5\n"
            "Investment1;Building;2018-03-04;1000.25\n"
            "Investment2;Percentage;2019/12/31;0.25\n"
        )

        result = TransactionsCSVParser().parse(_csv(content), "Transactions.csv")

        assert result.all_successful
        assert [r.kind for r in result.rows] == [
            LedgerKind.UNITS, LedgerKind.LAND, LedgerKind.BUILDING, LedgerKind.OWNERSHIP,
        ]
        assert result.rows[0].entry_date == date(2017, 1, 2)
        assert result.rows[1].amount == Decimal("250000.5")
        assert result.rows[3].entry_date == date(2019, 12, 31)

    def test_negative_units_are_allowed(self):
        content = "InvestmentId;Type;Date;Value\nInvestment0;Shares;2017-01-02;-5\n"

        result = TransactionsCSVParser().parse(_csv(content), "Transactions.csv")

        assert result.rows[0].amount == Decimal("-5")

    def test_invalid_date(self):
        content = "InvestmentId;Type;Date;Value\nInvestment0;Shares;02.01.2017;5\n"

        result = TransactionsCSVParser().parse(_csv(content), "Transactions.csv")

        assert result.errors[0].error_type == "invalid_date"
        assert result.errors[0].field == "entry_date"

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_invalid_number(self, value):
        content = f"InvestmentId;Type;Date;Value\nInvestment0;Shares;2017-01-02;{value}\n"

        result = TransactionsCSVParser().parse(_csv(content), "Transactions.csv")

        assert result.errors[0].error_type == "invalid_number"

    def test_unknown_kind(self):
        content = "InvestmentId;Type;Date;Value\nInvestment0;Dividend;2017-01-02;5\n"

        result = TransactionsCSVParser().parse(_csv(content), "Transactions.csv")

        assert result.errors[0].error_type == "invalid_transaction_type"

    def test_errors_do_not_stop_parsing(self):
        content = (
            "InvestmentId;Type;Date;Value\n"
            "Investment0;Shares;bad;5\n"
            "Investment1;Shares;2017-01-02;5\n"
            "Investment2;Shares;2017-01-02;x\n"
        )

        result = TransactionsCSVParser().parse(_csv(content), "Transactions.csv")

        assert result.success_count == 1
        assert [e.row_number for e in result.errors] == [2, 4]
        assert result.total_rows == 3


# =============================================================================
# QUOTES
# =============================================================================

class TestQuotesParser:
    """Tests for QuotesCSVParser."""

    def test_parses_quotes(self):
        content = "ISIN;Date;PricePerShare\nISIN1;2019-12-31;12.34\n"

        result = QuotesCSVParser().parse(_csv(content), "Quotes.csv")

        row = result.rows[0]
        assert (row.security_id, row.price_date, row.price_per_unit) == (
            "ISIN1", date(2019, 12, 31), Decimal("12.34"),
        )

    def test_negative_price_rejected(self):
        content = "ISIN;Date;PricePerShare\nISIN1;2019-12-31;-1\n"

        result = QuotesCSVParser().parse(_csv(content), "Quotes.csv")

        assert result.errors[0].error_type == "negative_price"


# =============================================================================
# FILE-LEVEL ERRORS
# =============================================================================

class TestFileLevelErrors:
    """Errors that reject the whole file."""

    def test_empty_file(self):
        result = QuotesCSVParser().parse(_csv(""), "Quotes.csv")

        assert result.errors[0].error_type == "missing_headers"

    def test_missing_columns(self):
        result = QuotesCSVParser().parse(_csv("ISIN;Date\nISIN1;2019-12-31\n"), "Quotes.csv")

        assert result.errors[0].error_type == "missing_columns"
        assert "price_per_unit" in result.errors[0].message

    def test_wrong_delimiter_reports_missing_columns(self):
        content = "ISIN,Date,PricePerShare\nISIN1,2019-12-31,1\n"

        result = QuotesCSVParser().parse(_csv(content), "Quotes.csv")

        assert result.errors[0].error_type == "missing_columns"

    def test_configurable_delimiter(self):
        content = "ISIN,Date,PricePerShare\nISIN1,2019-12-31,1\n"

        result = QuotesCSVParser(delimiter=",").parse(_csv(content), "Quotes.csv")

        assert result.all_successful

    def test_too_many_rows(self):
        content = "ISIN;Date;PricePerShare\n" + "ISIN1;2019-12-31;1\n" * 3

        result = QuotesCSVParser().parse(_csv(content), "Quotes.csv", max_rows=2)

        assert result.errors[-1].error_type == "too_many_rows"


# =============================================================================
# PARSER SELECTION
# =============================================================================

class TestGetParser:
    """Tests for get_parser()."""

    def test_csv_extension(self):
        parser = get_parser(Dataset.TRANSACTIONS, "Transactions.csv")

        assert isinstance(parser, TransactionsCSVParser)

    def test_csv_content_type_without_extension(self):
        parser = get_parser(Dataset.QUOTES, "upload", content_type="text/csv")

        assert isinstance(parser, QuotesCSVParser)

    def test_unsupported_file(self):
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            get_parser(Dataset.QUOTES, "quotes.xlsx", content_type="application/vnd.ms-excel")

        assert exc_info.value.supported == [".csv"]

    def test_supported_extensions(self):
        assert get_supported_extensions() == [".csv"]
