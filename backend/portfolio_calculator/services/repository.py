# backend/portfolio_calculator/services/repository.py
"""
SQLAlchemy implementation of PortfolioRepositoryProtocol.

All reads are point-in-time: ledger entries and prices dated after ``as_of``
are invisible, entries dated exactly on ``as_of`` are included.

Ledger policy:
    UNITS      - sum of all deltas up to as_of
    LAND       - latest appraisal up to as_of
    BUILDING   - latest appraisal up to as_of
    OWNERSHIP  - latest stake up to as_of, for the investor that holds the stake

Storage faults (any SQLAlchemyError) are re-raised as DataAccessError naming
the failing operation; absence of data is answered with ZERO or [].
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio_calculator.models import Holding, LedgerEntry, LedgerKind, PricePoint
from portfolio_calculator.services.constants import ZERO
from portfolio_calculator.services.exceptions import DataAccessError

logger = logging.getLogger(__name__)


def _to_decimal(value: object) -> Decimal:
    """Normalize a scalar query result (None, float from SQLite, Decimal) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class SqlPortfolioRepository:
    """
    Read-only portfolio queries over a SQLAlchemy session.

    One instance per session; the session's lifetime is owned by the caller
    (get_db dependency, console, or tests).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def _data_access_error(self, operation: str, error: SQLAlchemyError) -> DataAccessError:
        """
        Roll the session back after a failed statement and wrap the error.

        PostgreSQL aborts the whole transaction on a failed statement; without
        the rollback every later query in the request would fail too.
        """
        logger.warning(f"Repository {operation} failed, rolling back: {error}")
        self._db.rollback()
        return DataAccessError(operation, str(error))

    # =========================================================================
    # HOLDINGS
    # =========================================================================

    def list_holdings(self, investor_id: str) -> list[Holding]:
        """All holdings owned by an investor, ordered by holding id."""
        query = (
            select(Holding)
            .where(Holding.investor_id == investor_id)
            .order_by(Holding.holding_id)
        )
        try:
            return list(self._db.scalars(query).all())
        except SQLAlchemyError as e:
            raise self._data_access_error("list_holdings", e) from e

    def list_underlying_holdings(self, fund_holding_id: str) -> list[Holding]:
        """
        Constituent holdings of the fund a FUND holding is a stake in.

        The fund entity is named by the holding's fund_id; its constituents are
        the holdings owned by that fund entity.
        """
        try:
            fund_id = self._db.scalar(
                select(Holding.fund_id).where(Holding.holding_id == fund_holding_id)
            )
            if not fund_id:
                return []

            query = (
                select(Holding)
                .where(Holding.investor_id == fund_id)
                .order_by(Holding.holding_id)
            )
            return list(self._db.scalars(query).all())
        except SQLAlchemyError as e:
            raise self._data_access_error("list_underlying_holdings", e) from e

    # =========================================================================
    # PRICES
    # =========================================================================

    def latest_price(self, security_id: str, as_of: date) -> Decimal:
        """Most recent price dated on or before as_of, ZERO when none exists."""
        query = (
            select(PricePoint.price_per_unit)
            .where(
                and_(
                    PricePoint.security_id == security_id,
                    PricePoint.price_date <= as_of,
                )
            )
            .order_by(PricePoint.price_date.desc(), PricePoint.id.desc())
            .limit(1)
        )
        try:
            return _to_decimal(self._db.scalar(query))
        except SQLAlchemyError as e:
            raise self._data_access_error("latest_price", e) from e

    # =========================================================================
    # LEDGER
    # =========================================================================

    def units_held(self, holding_id: str, as_of: date) -> Decimal:
        """Sum of UNITS deltas dated on or before as_of."""
        query = (
            select(func.sum(LedgerEntry.amount))
            .where(
                and_(
                    LedgerEntry.holding_id == holding_id,
                    LedgerEntry.kind == LedgerKind.UNITS,
                    LedgerEntry.entry_date <= as_of,
                )
            )
        )
        try:
            return _to_decimal(self._db.scalar(query))
        except SQLAlchemyError as e:
            raise self._data_access_error("units_held", e) from e

    def property_component_value(
            self,
            holding_id: str,
            kind: LedgerKind,
            as_of: date,
    ) -> Decimal:
        """Latest LAND or BUILDING appraisal dated on or before as_of."""
        if kind not in (LedgerKind.LAND, LedgerKind.BUILDING):
            raise ValueError(f"Not a property component: {kind}")

        query = (
            select(LedgerEntry.amount)
            .where(
                and_(
                    LedgerEntry.holding_id == holding_id,
                    LedgerEntry.kind == kind,
                    LedgerEntry.entry_date <= as_of,
                )
            )
            .order_by(LedgerEntry.entry_date.desc(), LedgerEntry.id.desc())
            .limit(1)
        )
        try:
            return _to_decimal(self._db.scalar(query))
        except SQLAlchemyError as e:
            raise self._data_access_error("property_component_value", e) from e

    def ownership_fraction(
            self,
            investor_id: str,
            fund_holding_id: str,
            as_of: date,
    ) -> Decimal:
        """
        Latest OWNERSHIP stake dated on or before as_of.

        Only stakes recorded against a holding owned by ``investor_id`` count.
        """
        query = (
            select(LedgerEntry.amount)
            .join(Holding, Holding.holding_id == LedgerEntry.holding_id)
            .where(
                and_(
                    LedgerEntry.holding_id == fund_holding_id,
                    Holding.investor_id == investor_id,
                    LedgerEntry.kind == LedgerKind.OWNERSHIP,
                    LedgerEntry.entry_date <= as_of,
                )
            )
            .order_by(LedgerEntry.entry_date.desc(), LedgerEntry.id.desc())
            .limit(1)
        )
        try:
            return _to_decimal(self._db.scalar(query))
        except SQLAlchemyError as e:
            raise self._data_access_error("ownership_fraction", e) from e
