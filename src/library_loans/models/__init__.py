"""
Library Loans models.

Pydantic models for the two entities of the service and their search
criteria:
- Book / BookFilter: catalog entries
- Loan / LoanFilter: loans of catalog entries to customers
"""

from .book import Book, BookFilter
from .loan import Loan, LoanFilter

__all__ = [
    "Book",
    "BookFilter",
    "Loan",
    "LoanFilter",
]
