#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

This script can be run from any directory:
    python backend/init_db.py
    python backend/init_db.py --data-dir ./data
"""
import argparse
import sys
from pathlib import Path

# Add the backend directory to Python path so 'portfolio_calculator' is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from portfolio_calculator.config import settings
from portfolio_calculator.database import SessionLocal, engine
from portfolio_calculator.models import Base
from portfolio_calculator.services.ingestion import IngestionService


def init_db(data_dir: Path | None = None) -> None:
    """Create all tables, then import the CSV datasets from data_dir if given."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")

    if data_dir is None:
        return

    db = SessionLocal()
    try:
        results = IngestionService(delimiter=settings.csv_delimiter).load_directory(db, data_dir)
    finally:
        db.close()

    for result in results:
        print(f"Imported {result.imported_count} {result.dataset.value} rows from {result.filename}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create tables and optionally import datasets")
    parser.add_argument("--data-dir", type=Path, default=settings.data_dir)
    args = parser.parse_args()
    init_db(args.data_dir)
