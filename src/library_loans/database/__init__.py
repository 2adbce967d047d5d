"""
Database package for the Library Loans service.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories returning Pydantic models (repository.py and friends)
"""

from .book_repository import BookRepository
from .loan_repository import LoanRepository
from .repository import (
    BaseRepository,
    ConstraintViolationError,
    DuplicateError,
    PaginatedResponse,
    PaginationParams,
    ReferencedError,
    RepositoryException,
)
from .schema import Base, Book, Loan
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    safe_commit,
    safe_query,
    session_scope,
)

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookRepository",
    "ConstraintViolationError",
    "DatabaseManager",
    "DuplicateError",
    "Loan",
    "LoanRepository",
    "PaginatedResponse",
    "PaginationParams",
    "ReferencedError",
    "RepositoryException",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
    "session_scope",
]
