#!/usr/bin/env python3
"""
Initialize the Library Loans database.

This script:
1. Creates all database tables
2. Optionally loads sample data through the services
3. Verifies the expected tables exist

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys
from datetime import date, timedelta

from sqlalchemy import inspect

from library_loans.config import get_config
from library_loans.database import DatabaseManager, get_db_manager
from library_loans.models import Book, Loan
from library_loans.observability import configure_logging
from library_loans.services import BookCatalog, LoanLedger

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"books", "loans"}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Library Loans database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )

    args = parser.parse_args(argv)
    configure_logging(get_config())

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        return 1

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample data...")
            load_sample_data(db_manager)

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Created tables: %s", ", ".join(sorted(tables)))

        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", missing_tables)
            return 1

        logger.info("Database initialization complete")
        return 0
    finally:
        db_manager.close()


def load_sample_data(db_manager: DatabaseManager, today: date | None = None) -> None:
    """
    Load sample data.

    This creates three books, one open loan, one late loan and one returned
    loan, all through the services so the business rules apply.
    """
    today = today or date.today()

    with db_manager.session_scope() as session:
        catalog = BookCatalog(session)
        ledger = LoanLedger(session)

        gatsby = catalog.save(
            Book(title="The Great Gatsby", author="F. Scott Fitzgerald", isbn="9780743273565")
        )
        mockingbird = catalog.save(
            Book(title="To Kill a Mockingbird", author="Harper Lee", isbn="9780061120084")
        )
        nineteen = catalog.save(Book(title="1984", author="George Orwell", isbn="9780452284234"))

        ledger.save(Loan.for_book(gatsby, "jane.smith@example.com", today))
        ledger.save(Loan.for_book(mockingbird, "john.doe@example.com", today - timedelta(days=7)))

        returned = ledger.save(
            Loan.for_book(nineteen, "jane.smith@example.com", today - timedelta(days=20))
        )
        ledger.return_book(returned.id)

    logger.info("Sample data loaded")


if __name__ == "__main__":
    sys.exit(main())
