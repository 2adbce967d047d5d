"""
Library Loans package.

A library backend that tracks books and loans, guarantees that a book is
never out on two loans at once and offers paginated search over both.

Key Components:
- models: Pydantic models for books, loans and search filters
- database: SQLAlchemy schema, session management and repositories
- services: BookCatalog and LoanLedger, the business operations
- notifications: late-loan reminders built on the ledger
- config: configuration with pydantic-settings

Typical use:

    from library_loans import LateLoanNotifier, LoanLedger
    from library_loans.database import session_scope

    with session_scope() as session:
        LateLoanNotifier(LoanLedger(session), sender=send_email).run()
"""

__version__ = "0.1.0"

from . import database
from .errors import (
    BookAlreadyLoanedError,
    BookHasLoansError,
    BusinessRuleViolation,
    DuplicateIsbnError,
    ErrorReport,
    InvalidArgumentError,
    LibraryError,
)
from .models import Book, BookFilter, Loan, LoanFilter
from .notifications import LateLoanNotice, LateLoanNotifier, NotificationRun
from .services import BookCatalog, LoanLedger

__all__ = [
    "Book",
    "BookAlreadyLoanedError",
    "BookCatalog",
    "BookFilter",
    "BookHasLoansError",
    "BusinessRuleViolation",
    "DuplicateIsbnError",
    "ErrorReport",
    "InvalidArgumentError",
    "LateLoanNotice",
    "LateLoanNotifier",
    "LibraryError",
    "Loan",
    "LoanFilter",
    "LoanLedger",
    "NotificationRun",
    "__version__",
    "database",
]
