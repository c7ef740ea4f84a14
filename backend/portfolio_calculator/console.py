# backend/portfolio_calculator/console.py
"""
Interactive console for ad-hoc portfolio queries.

Usage:
    portfolio-calculator --data-dir ./data
    > 2019-12-31;Investor0
    Investor: Investor0, Date: 2019-12-31, Portfolio Value: 1234.56
      Equity: 1000.00
      Real Estate: 234.56
      Fund: 0.00

Reads one `yyyy-MM-dd;InvestorId` query per line until a blank line or EOF.
Logging goes to stderr so stdout only carries answers.
"""

import argparse
import logging
import sys
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import TextIO

from portfolio_calculator.config import settings
from portfolio_calculator.database import SessionLocal, engine
from portfolio_calculator.models import Base
from portfolio_calculator.schemas.valuation import to_money
from portfolio_calculator.services.exceptions import ServiceError
from portfolio_calculator.services.ingestion import IngestionService
from portfolio_calculator.services.repository import SqlPortfolioRepository
from portfolio_calculator.services.valuation import (
    PortfolioValuationService,
    ValuationResult,
    build_valuation_service,
)
from portfolio_calculator.utils import correlation_scope, setup_logging

logger = logging.getLogger(__name__)

PROMPT = "Enter date (yyyy-MM-dd) and Investor ID separated by ';'"
INVALID_INPUT_MESSAGE = "Invalid input format. Please enter in yyyy-MM-dd;InvestorID format."


def parse_query(line: str) -> tuple[date, str]:
    """
    Split a `yyyy-MM-dd;InvestorId` line.

    Raises:
        ValueError: Wrong number of fields, bad date or empty investor id
    """
    parts = line.strip().split(";")
    if len(parts) != 2:
        raise ValueError(f"Expected 2 fields, got {len(parts)}")

    raw_date, investor_id = parts[0].strip(), parts[1].strip()
    as_of = datetime.strptime(raw_date, "%Y-%m-%d").date()
    if not investor_id:
        raise ValueError("Investor id is empty")
    return as_of, investor_id


def format_result(result: ValuationResult) -> str:
    lines = [
        f"Investor: {result.investor_id}, "
        f"Date: {result.as_of.isoformat()}, "
        f"Portfolio Value: {to_money(result.total)}"
    ]
    for category, subtotal in result.breakdown.items():
        lines.append(f"  {category}: {to_money(subtotal)}")
    for failure in result.failures:
        lines.append(
            f"  ! {failure.holding_id} not valued ({failure.error_type}): {failure.message}"
        )
    return "\n".join(lines)


def run(
        lines: Iterable[str],
        out: TextIO,
        service: PortfolioValuationService,
) -> int:
    """
    Answer queries until a blank line or the input ends.

    Returns:
        Number of queries answered
    """
    answered = 0
    print(PROMPT, file=out)

    for line in lines:
        if not line.strip():
            break

        try:
            as_of, investor_id = parse_query(line)
        except ValueError:
            print(INVALID_INPUT_MESSAGE, file=out)
            continue

        with correlation_scope():
            try:
                result = service.value_portfolio(investor_id, as_of)
            except ServiceError as e:
                logger.error(f"Query for {investor_id} on {as_of} failed: {e}")
                print(f"An error occurred: {e.message}", file=out)
                continue

        print(format_result(result), file=out)
        answered += 1

    return answered


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portfolio-calculator",
        description="Value investor portfolios as of a date",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=settings.data_dir,
        help="Directory with Investments.csv, Transactions.csv and Quotes.csv "
             "(default: DATA_DIR)",
    )
    parser.add_argument(
        "--no-replace",
        action="store_true",
        help="Append to the stored datasets instead of replacing them",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(stream=sys.stderr)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.data_dir is not None:
            try:
                IngestionService(delimiter=settings.csv_delimiter).load_directory(
                    db, args.data_dir, replace=not args.no_replace
                )
            except ServiceError as e:
                print(f"Error loading data: {e.message}", file=sys.stderr)
                return 1

        service = build_valuation_service(
            SqlPortfolioRepository(db),
            max_fund_depth=settings.max_fund_depth,
        )
        run(sys.stdin, sys.stdout, service)
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
