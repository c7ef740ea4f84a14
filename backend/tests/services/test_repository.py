# backend/tests/services/test_repository.py
"""
Integration tests for SqlPortfolioRepository against in-memory SQLite.

Test Coverage:
- Point-in-time selection (entries after as_of excluded, on as_of included)
- UNITS summing, LAND/BUILDING and OWNERSHIP latest-value policy
- Ownership scoped to the investor holding the stake
- Fund constituents
- Storage faults wrapped as DataAccessError
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from portfolio_calculator.models import LedgerKind
from portfolio_calculator.services.exceptions import DataAccessError
from portfolio_calculator.services.repository import SqlPortfolioRepository
from tests.conftest import add_ledger, add_price, make_equity, make_fund, make_real_estate


@pytest.fixture
def repository(db) -> SqlPortfolioRepository:
    return SqlPortfolioRepository(db)


# =============================================================================
# PRICES
# =============================================================================

class TestLatestPrice:
    """Tests for latest_price()."""

    def test_latest_on_or_before_date(self, db, repository):
        add_price(db, "ISIN1", date(2019, 1, 1), "10")
        add_price(db, "ISIN1", date(2019, 6, 1), "12")
        add_price(db, "ISIN1", date(2019, 12, 1), "15")

        assert repository.latest_price("ISIN1", date(2019, 7, 1)) == Decimal("12")

    def test_price_on_as_of_is_included(self, db, repository):
        add_price(db, "ISIN1", date(2019, 1, 1), "10")
        add_price(db, "ISIN1", date(2019, 6, 1), "12")

        assert repository.latest_price("ISIN1", date(2019, 6, 1)) == Decimal("12")

    def test_no_price_before_date_is_zero(self, db, repository):
        add_price(db, "ISIN1", date(2020, 1, 1), "10")

        assert repository.latest_price("ISIN1", date(2019, 12, 31)) == Decimal("0")

    def test_unknown_security_is_zero(self, repository):
        assert repository.latest_price("NOPE", date(2019, 12, 31)) == Decimal("0")

    def test_other_securities_are_ignored(self, db, repository):
        add_price(db, "ISIN1", date(2019, 1, 1), "10")
        add_price(db, "ISIN2", date(2019, 2, 1), "99")

        assert repository.latest_price("ISIN1", date(2019, 3, 1)) == Decimal("10")


# =============================================================================
# LEDGER
# =============================================================================

class TestUnitsHeld:
    """Tests for units_held()."""

    def test_sums_deltas_up_to_date(self, db, repository):
        add_ledger(db, "EQ1", LedgerKind.UNITS, date(2019, 1, 1), "10")
        add_ledger(db, "EQ1", LedgerKind.UNITS, date(2019, 3, 1), "-4")
        add_ledger(db, "EQ1", LedgerKind.UNITS, date(2019, 5, 1), "7")

        assert repository.units_held("EQ1", date(2019, 3, 1)) == Decimal("6")
        assert repository.units_held("EQ1", date(2019, 12, 31)) == Decimal("13")

    def test_entry_after_date_is_excluded(self, db, repository):
        add_ledger(db, "EQ1", LedgerKind.UNITS, date(2019, 1, 2), "10")

        assert repository.units_held("EQ1", date(2019, 1, 1)) == Decimal("0")

    def test_other_kinds_are_ignored(self, db, repository):
        add_ledger(db, "EQ1", LedgerKind.UNITS, date(2019, 1, 1), "10")
        add_ledger(db, "EQ1", LedgerKind.OWNERSHIP, date(2019, 1, 1), "0.5")

        assert repository.units_held("EQ1", date(2019, 12, 31)) == Decimal("10")


class TestPropertyComponentValue:
    """Tests for property_component_value()."""

    def test_latest_appraisal_not_sum(self, db, repository):
        add_ledger(db, "RE1", LedgerKind.LAND, date(2018, 1, 1), "50")
        add_ledger(db, "RE1", LedgerKind.LAND, date(2019, 1, 1), "60")
        add_ledger(db, "RE1", LedgerKind.LAND, date(2020, 1, 1), "70")

        assert repository.property_component_value(
            "RE1", LedgerKind.LAND, date(2019, 6, 1)
        ) == Decimal("60")

    def test_land_and_building_are_separate(self, db, repository):
        add_ledger(db, "RE1", LedgerKind.LAND, date(2019, 1, 1), "60")
        add_ledger(db, "RE1", LedgerKind.BUILDING, date(2019, 1, 1), "40")

        assert repository.property_component_value(
            "RE1", LedgerKind.BUILDING, date(2019, 6, 1)
        ) == Decimal("40")

    def test_non_property_kind_is_rejected(self, repository):
        with pytest.raises(ValueError):
            repository.property_component_value("RE1", LedgerKind.UNITS, date(2019, 6, 1))


class TestOwnershipFraction:
    """Tests for ownership_fraction()."""

    def test_latest_stake(self, db, repository):
        db.add(make_fund("FD1", "INV1", "FUND_A"))
        add_ledger(db, "FD1", LedgerKind.OWNERSHIP, date(2019, 1, 1), "0.2")
        add_ledger(db, "FD1", LedgerKind.OWNERSHIP, date(2019, 6, 1), "0.5")

        assert repository.ownership_fraction("INV1", "FD1", date(2019, 5, 31)) == Decimal("0.2")
        assert repository.ownership_fraction("INV1", "FD1", date(2019, 6, 1)) == Decimal("0.5")

    def test_stake_of_other_investor_does_not_count(self, db, repository):
        db.add(make_fund("FD1", "INV1", "FUND_A"))
        add_ledger(db, "FD1", LedgerKind.OWNERSHIP, date(2019, 1, 1), "0.2")

        assert repository.ownership_fraction("INV2", "FD1", date(2019, 12, 31)) == Decimal("0")

    def test_no_stake_is_zero(self, db, repository):
        db.add(make_fund("FD1", "INV1", "FUND_A"))
        db.flush()

        assert repository.ownership_fraction("INV1", "FD1", date(2019, 12, 31)) == Decimal("0")


# =============================================================================
# HOLDINGS
# =============================================================================

class TestHoldings:
    """Tests for list_holdings() and list_underlying_holdings()."""

    def test_list_holdings_for_investor(self, db, repository):
        db.add_all([
            make_equity("EQ2", "INV1"),
            make_real_estate("RE1", "INV1"),
            make_equity("EQ1", "INV1"),
            make_equity("EQ9", "INV2"),
        ])
        db.flush()

        holdings = repository.list_holdings("INV1")

        assert [h.holding_id for h in holdings] == ["EQ1", "EQ2", "RE1"]

    def test_unknown_investor_has_no_holdings(self, repository):
        assert repository.list_holdings("NOBODY") == []

    def test_underlying_holdings_of_fund(self, db, repository):
        db.add_all([
            make_fund("FD1", "INV1", "FUND_A"),
            make_equity("EQA", "FUND_A"),
            make_real_estate("REA", "FUND_A"),
            make_equity("EQB", "FUND_B"),
        ])
        db.flush()

        underlying = repository.list_underlying_holdings("FD1")

        assert [h.holding_id for h in underlying] == ["EQA", "REA"]

    def test_fund_without_fund_id_has_no_constituents(self, db, repository):
        db.add(make_equity("EQ1", "INV1"))
        db.flush()

        assert repository.list_underlying_holdings("EQ1") == []
        assert repository.list_underlying_holdings("MISSING") == []


# =============================================================================
# STORAGE FAULTS
# =============================================================================

class TestStorageFaults:
    """SQLAlchemy errors surface as DataAccessError."""

    @pytest.mark.parametrize("call", [
        lambda r: r.list_holdings("INV1"),
        lambda r: r.latest_price("ISIN1", date(2019, 1, 1)),
        lambda r: r.units_held("EQ1", date(2019, 1, 1)),
        lambda r: r.property_component_value("RE1", LedgerKind.LAND, date(2019, 1, 1)),
        lambda r: r.ownership_fraction("INV1", "FD1", date(2019, 1, 1)),
        lambda r: r.list_underlying_holdings("FD1"),
    ])
    def test_wrapped(self, call):
        session = MagicMock()
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        session.scalars.side_effect = error
        session.scalar.side_effect = error

        with pytest.raises(DataAccessError):
            call(SqlPortfolioRepository(session))

        session.rollback.assert_called_once()

    def test_session_usable_after_fault(self, db):
        """A failed statement is rolled back so the next query still runs."""
        from portfolio_calculator.services.valuation import build_valuation_service

        db.add(make_equity("EQ1", "INV1", "ISIN1"))
        db.add(make_equity("EQ2", "INV1", "ISIN2"))
        add_ledger(db, "EQ2", LedgerKind.UNITS, date(2019, 1, 1), "4")
        add_price(db, "ISIN2", date(2019, 1, 1), "5")
        db.commit()

        repository = SqlPortfolioRepository(db)
        real_scalar = db.scalar
        failed = []

        def flaky_scalar(statement, *args, **kwargs):
            if not failed:
                failed.append(statement)
                raise OperationalError("SELECT", {}, Exception("statement timeout"))
            return real_scalar(statement, *args, **kwargs)

        with patch.object(db, "scalar", side_effect=flaky_scalar), \
                patch.object(db, "rollback", wraps=db.rollback) as rollback:
            result = build_valuation_service(repository).value_portfolio(
                "INV1", date(2019, 6, 1)
            )

        rollback.assert_called_once()
        assert [f.holding_id for f in result.failures] == ["EQ1"]
        assert result.total == Decimal("20")


# =============================================================================
# END TO END OVER SQL
# =============================================================================

class TestValuationOverSql:
    """The valuation service over the real repository."""

    def test_sample_portfolio(self, sample_portfolio):
        from portfolio_calculator.services.valuation import build_valuation_service

        service = build_valuation_service(SqlPortfolioRepository(sample_portfolio))
        result = service.value_portfolio("Investor0", date(2020, 1, 1))

        assert result.breakdown == {
            "Equity": Decimal("100"),
            "Real Estate": Decimal("100"),
            "Fund": Decimal("200"),
        }
        assert result.total == Decimal("400")

    def test_before_any_price(self, sample_portfolio):
        from portfolio_calculator.services.valuation import build_valuation_service

        service = build_valuation_service(SqlPortfolioRepository(sample_portfolio))
        result = service.value_portfolio("Investor0", date(2019, 12, 30))

        # Only the parcel has a value before the first quote
        assert result.total == Decimal("100")
