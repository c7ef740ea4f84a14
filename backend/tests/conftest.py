# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- API client fixtures (TestClient with dependency overrides)
- A fake portfolio repository with call counters and fault injection
- Sample data factories
"""

import os

# Must run before anything imports portfolio_calculator.config
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("DATA_DIR", None)

from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_calculator.models import (
    Base,
    Holding,
    HoldingType,
    LedgerEntry,
    LedgerKind,
    PricePoint,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# API CLIENT FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session) -> Iterator[TestClient]:
    """TestClient whose requests use the test database session."""
    from portfolio_calculator.database import get_db
    from portfolio_calculator.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def fake_client(fake_repository) -> Iterator[TestClient]:
    """TestClient whose valuation endpoints read from fake_repository."""
    from portfolio_calculator.dependencies import get_repository
    from portfolio_calculator.main import app

    app.dependency_overrides[get_repository] = lambda: fake_repository

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# FAKE REPOSITORY
# =============================================================================

class FakePortfolioRepository:
    """
    In-memory implementation of PortfolioRepositoryProtocol.

    Values are stored without dates: tests of point-in-time selection run
    against SqlPortfolioRepository instead. Every method call is counted in
    `calls`, and fail_on() makes a method raise for a given key.
    """

    def __init__(self):
        self.holdings: list[Holding] = []
        self.units: dict[str, Decimal] = {}
        self.prices: dict[str, Decimal] = {}
        self.components: dict[tuple[str, LedgerKind], Decimal] = {}
        self.ownership: dict[tuple[str, str], Decimal] = {}
        self.calls: Counter = Counter()
        self._faults: dict[tuple[str, str], Exception] = {}

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def add_holding(self, holding: Holding) -> Holding:
        self.holdings.append(holding)
        return holding

    def set_units(self, holding_id: str, units: str) -> None:
        self.units[holding_id] = Decimal(units)

    def set_price(self, security_id: str, price: str) -> None:
        self.prices[security_id] = Decimal(price)

    def set_component(self, holding_id: str, kind: LedgerKind, amount: str) -> None:
        self.components[(holding_id, kind)] = Decimal(amount)

    def set_ownership(self, investor_id: str, fund_holding_id: str, fraction: str) -> None:
        self.ownership[(investor_id, fund_holding_id)] = Decimal(fraction)

    def fail_on(self, method: str, key: str, error: Exception) -> None:
        """Make `method` raise `error` when called with `key` as first argument."""
        self._faults[(method, key)] = error

    def _record(self, method: str, key: str) -> None:
        self.calls[method] += 1
        fault = self._faults.get((method, key))
        if fault is not None:
            raise fault

    # -------------------------------------------------------------------------
    # PortfolioRepositoryProtocol
    # -------------------------------------------------------------------------

    def list_holdings(self, investor_id: str) -> list[Holding]:
        self._record("list_holdings", investor_id)
        return [h for h in self.holdings if h.investor_id == investor_id]

    def latest_price(self, security_id: str, as_of: date) -> Decimal:
        self._record("latest_price", security_id)
        return self.prices.get(security_id, Decimal("0"))

    def units_held(self, holding_id: str, as_of: date) -> Decimal:
        self._record("units_held", holding_id)
        return self.units.get(holding_id, Decimal("0"))

    def property_component_value(
            self, holding_id: str, kind: LedgerKind, as_of: date
    ) -> Decimal:
        self._record("property_component_value", holding_id)
        return self.components.get((holding_id, kind), Decimal("0"))

    def ownership_fraction(
            self, investor_id: str, fund_holding_id: str, as_of: date
    ) -> Decimal:
        self._record("ownership_fraction", fund_holding_id)
        return self.ownership.get((investor_id, fund_holding_id), Decimal("0"))

    def list_underlying_holdings(self, fund_holding_id: str) -> list[Holding]:
        self._record("list_underlying_holdings", fund_holding_id)
        fund = next((h for h in self.holdings if h.holding_id == fund_holding_id), None)
        if fund is None or not fund.fund_id:
            return []
        return sorted(
            (h for h in self.holdings if h.investor_id == fund.fund_id),
            key=lambda h: h.holding_id,
        )


@pytest.fixture
def fake_repository() -> FakePortfolioRepository:
    return FakePortfolioRepository()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def make_equity(holding_id: str, investor_id: str, security_id: str | None = "ISIN1") -> Holding:
    return Holding(
        holding_id=holding_id,
        investor_id=investor_id,
        holding_type=HoldingType.EQUITY,
        security_id=security_id,
    )


def make_real_estate(holding_id: str, investor_id: str, city: str = "Berlin") -> Holding:
    return Holding(
        holding_id=holding_id,
        investor_id=investor_id,
        holding_type=HoldingType.REAL_ESTATE,
        location_tag=city,
    )


def make_fund(holding_id: str, investor_id: str, fund_id: str) -> Holding:
    return Holding(
        holding_id=holding_id,
        investor_id=investor_id,
        holding_type=HoldingType.FUND,
        fund_id=fund_id,
    )


def add_ledger(
        db: Session,
        holding_id: str,
        kind: LedgerKind,
        entry_date: date,
        amount: str,
) -> LedgerEntry:
    entry = LedgerEntry(
        holding_id=holding_id,
        kind=kind,
        entry_date=entry_date,
        amount=Decimal(amount),
    )
    db.add(entry)
    db.flush()
    return entry


def add_price(db: Session, security_id: str, price_date: date, price: str) -> PricePoint:
    point = PricePoint(
        security_id=security_id,
        price_date=price_date,
        price_per_unit=Decimal(price),
    )
    db.add(point)
    db.flush()
    return point


@pytest.fixture
def sample_portfolio(db: Session) -> Session:
    """
    Investor0 with one equity, one parcel and half of a fund.

    As of 2020-01-01:
        EQ1: 10 units × 10.00 = 100.00
        RE1: land 60 + building 40 = 100.00
        FD1: 0.5 × (FUND_A's EQ2: 40 units × 10.00 = 400.00) = 200.00
    """
    db.add_all([
        make_equity("EQ1", "Investor0", "ISIN1"),
        make_real_estate("RE1", "Investor0"),
        make_fund("FD1", "Investor0", "FUND_A"),
        make_equity("EQ2", "FUND_A", "ISIN1"),
    ])
    db.flush()

    add_ledger(db, "EQ1", LedgerKind.UNITS, date(2019, 1, 1), "10")
    add_ledger(db, "RE1", LedgerKind.LAND, date(2019, 1, 1), "60")
    add_ledger(db, "RE1", LedgerKind.BUILDING, date(2019, 1, 1), "40")
    add_ledger(db, "FD1", LedgerKind.OWNERSHIP, date(2019, 1, 1), "0.5")
    add_ledger(db, "EQ2", LedgerKind.UNITS, date(2019, 1, 1), "40")
    add_price(db, "ISIN1", date(2019, 12, 31), "10")
    db.commit()
    return db
