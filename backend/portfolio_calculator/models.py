# backend/portfolio_calculator/models.py
import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import String, Date, Enum, Numeric, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class HoldingType(str, enum.Enum):
    """Closed set of holding kinds; each one maps to exactly one valuation strategy."""
    EQUITY = "EQUITY"
    REAL_ESTATE = "REAL_ESTATE"
    FUND = "FUND"

    @property
    def category_label(self) -> str:
        """Label used for this type in the portfolio category breakdown."""
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS: dict[HoldingType, str] = {
    HoldingType.EQUITY: "Equity",
    HoldingType.REAL_ESTATE: "Real Estate",
    HoldingType.FUND: "Fund",
}


class LedgerKind(str, enum.Enum):
    """
    Kinds of time-stamped facts recorded against a holding.

    UNITS deltas are summed up to the as-of date; OWNERSHIP, LAND and
    BUILDING are point values where the latest entry wins.
    """
    UNITS = "UNITS"
    OWNERSHIP = "OWNERSHIP"
    LAND = "LAND"
    BUILDING = "BUILDING"


class Holding(Base):
    """
    One line-item investment owned by an investor.

    A FUND holding names the fund entity it is a stake in (fund_id). That fund
    entity appears as an investor in its own right: its constituent holdings
    are the rows whose investor_id equals the fund_id.
    """
    __tablename__ = "holdings"

    holding_id: Mapped[str] = mapped_column(String, primary_key=True)
    investor_id: Mapped[str] = mapped_column(String, index=True)
    holding_type: Mapped[HoldingType] = mapped_column(Enum(HoldingType))

    # ISIN for equities
    security_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    # Fund entity this holding is a stake in (FUND holdings only)
    fund_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    # City of a real-estate parcel; informational only
    location_tag: Mapped[str | None] = mapped_column(String, nullable=True)

    def __repr__(self) -> str:
        return (
            f"Holding(holding_id={self.holding_id!r}, investor_id={self.investor_id!r}, "
            f"holding_type={self.holding_type.value if self.holding_type else None!r})"
        )


class LedgerEntry(Base):
    """
    A dated fact about a holding: units bought/sold, ownership stake, appraisal.

    Not foreign-keyed to holdings: the source datasets may carry entries for
    holdings that are not (yet) loaded, and those simply never get queried.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_holding_kind_date", "holding_id", "kind", "entry_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    holding_id: Mapped[str] = mapped_column(String)
    kind: Mapped[LedgerKind] = mapped_column(Enum(LedgerKind))
    entry_date: Mapped[date] = mapped_column(Date)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8))


class PricePoint(Base):
    """Closing price of a security on a date."""
    __tablename__ = "price_points"
    __table_args__ = (
        Index("ix_price_security_date", "security_id", "price_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    security_id: Mapped[str] = mapped_column(String)
    price_date: Mapped[date] = mapped_column(Date)
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8))
