"""
Library Loans services.

- BookCatalog: book registration, lookup, update, deletion and search
- LoanLedger: loan creation under the one-open-loan-per-book rule, updates,
  search and late-loan queries
"""

from .book_catalog import BookCatalog
from .loan_ledger import LoanLedger

__all__ = [
    "BookCatalog",
    "LoanLedger",
]
