"""Test configuration and fixtures for the Library Loans service.

Every test that touches the store gets its own in-memory SQLite database with
foreign keys enforced, so tests never see each other's books or loans.
"""

from collections.abc import Generator
from datetime import date, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from library_loans.config import LibraryConfig, reset_config
from library_loans.database import Base, reset_db_manager
from library_loans.database.session import enable_sqlite_foreign_keys
from library_loans.models import Book, Loan
from library_loans.observability import configure_observability
from library_loans.services import BookCatalog, LoanLedger

TODAY = date(2024, 6, 20)


@pytest.fixture(scope="session", autouse=True)
def observability() -> None:
    """Configure logging and a local-only Logfire once per test session."""
    configure_observability(LibraryConfig(logfire_send=False, logfire_console=False))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the global configuration and database manager per-test."""
    monkeypatch.chdir(tmp_path)
    reset_config()
    reset_db_manager()
    yield
    reset_db_manager()
    reset_config()


# === Test Database Fixtures ===


@pytest.fixture
def test_engine():
    """Provide an in-memory SQLite engine with the schema created."""
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_session(test_engine) -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session bound to the test engine."""
    session_local = sessionmaker(
        bind=test_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_config() -> LibraryConfig:
    """Provide a test-specific configuration."""
    return LibraryConfig(
        service_name="test-library-loans",
        database_url="sqlite:///:memory:",
        late_loan_days=4,
        late_loan_message="Please return your book.",
        default_page_size=10,
        log_level="DEBUG",
    )


# === Service Fixtures ===


@pytest.fixture
def catalog(test_session: Session) -> BookCatalog:
    """Provide a BookCatalog over the test database."""
    return BookCatalog(test_session)


@pytest.fixture
def ledger(test_session: Session, test_config: LibraryConfig) -> LoanLedger:
    """Provide a LoanLedger over the test database."""
    return LoanLedger(test_session, config=test_config)


# === Sample Data Fixtures ===


@pytest.fixture
def today() -> date:
    """A fixed 'today' so date arithmetic is deterministic."""
    return TODAY


@pytest.fixture
def sample_book(catalog: BookCatalog) -> Book:
    """A persisted book with ISBN 123."""
    return catalog.save(Book(title="As aventuras", author="Fulano", isbn="123"))


@pytest.fixture
def sample_books(catalog: BookCatalog) -> list[Book]:
    """Three persisted books with distinct ISBNs, titles and authors."""
    return [
        catalog.save(Book(title="The Great Gatsby", author="F. Scott Fitzgerald", isbn="111")),
        catalog.save(Book(title="Tender Is the Night", author="F. Scott Fitzgerald", isbn="222")),
        catalog.save(Book(title="To Kill a Mockingbird", author="Harper Lee", isbn="333")),
    ]


@pytest.fixture
def make_loan(ledger: LoanLedger, today: date):
    """Factory persisting a loan of ``book`` that started ``days_ago`` days ago."""

    def _make_loan(book: Book, customer: str = "Fulano", days_ago: int = 0, **kwargs) -> Loan:
        loan = Loan.for_book(book, customer, today - timedelta(days=days_ago))
        if kwargs:
            loan = loan.model_copy(update=kwargs)
        return ledger.save(loan)

    return _make_loan
