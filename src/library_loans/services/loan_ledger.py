"""
Loan ledger service.

Owns the lifecycle of Loan records and the one consistency rule of the
domain: a book may have at most one loan that is not returned.

The rule is checked before inserting, and the store backs it with a partial
unique index over open loans. When two callers race to loan the same book,
the one whose insert loses on the index gets the same BookAlreadyLoanedError
as a caller rejected by the up-front check.
"""

import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from ..config import LibraryConfig, get_config
from ..database.loan_repository import LoanRepository
from ..database.repository import (
    DuplicateError,
    PaginatedResponse,
    PaginationParams,
    ReferencedError,
)
from ..errors import BookAlreadyLoanedError, InvalidArgumentError
from ..models.book import Book
from ..models.loan import Loan, LoanFilter
from ..observability import traced

logger = logging.getLogger(__name__)


class LoanLedger:
    """Business operations over loans."""

    def __init__(
        self,
        session: Session,
        repository: LoanRepository | None = None,
        config: LibraryConfig | None = None,
    ):
        self.session = session
        self.repository = repository or LoanRepository(session)
        self.config = config or get_config()

    @traced("loan.save")
    def save(self, loan: Loan) -> Loan:
        """
        Open a new loan.

        Raises:
            BookAlreadyLoanedError: If the book has a loan that was not returned
            InvalidArgumentError: If the referenced book does not exist
        """
        # Rejections roll back, releasing the book row lock
        if not self.repository.lock_book(loan.book_id):
            self.session.rollback()
            raise InvalidArgumentError(f"Book {loan.book_id} does not exist.")

        if self.repository.exists_open_for_book(loan.book_id):
            self.session.rollback()
            logger.info("Rejected loan of book %s: already loaned", loan.book_id)
            raise BookAlreadyLoanedError(loan.book_id)

        try:
            saved = self.repository.create(loan)
        except DuplicateError as e:
            logger.info("Concurrent loan of book %s rejected by the store", loan.book_id)
            raise BookAlreadyLoanedError(loan.book_id) from e
        except ReferencedError as e:
            logger.info("Book %s was removed before its loan was stored", loan.book_id)
            raise InvalidArgumentError(f"Book {loan.book_id} does not exist.") from e

        logger.info("Opened loan %s of book %s to %s", saved.id, saved.book_id, saved.customer)
        return saved

    @traced("loan.get_by_id")
    def get_by_id(self, id: int) -> Loan | None:
        return self.repository.get_by_id(id)

    @traced("loan.update")
    def update(self, loan: Loan) -> Loan:
        """
        Replace the stored state of a loan.

        The caller decides the transition (typically setting ``returned``);
        no business rule is re-checked here. The store still refuses to
        reopen a loan on a book that is out again.

        Raises:
            InvalidArgumentError: If the loan has no id or points at a missing book
            BookAlreadyLoanedError: If reopening would give the book two open loans
        """
        if loan is None or loan.id is None:
            raise InvalidArgumentError("Loan id cannot be null.")

        try:
            updated = self.repository.replace(loan)
        except DuplicateError as e:
            raise BookAlreadyLoanedError(loan.book_id) from e
        except ReferencedError as e:
            raise InvalidArgumentError(f"Book {loan.book_id} does not exist.") from e

        logger.info("Updated loan %s (returned=%s)", updated.id, updated.returned)
        return updated

    @traced("loan.return_book")
    def return_book(self, loan_id: int) -> Loan | None:
        """
        Mark a loan as returned.

        Returning a loan that is already returned leaves it unchanged.

        Returns:
            The updated loan, or None if no loan has that id
        """
        loan = self.repository.get_by_id(loan_id)
        if loan is None:
            return None
        if loan.is_returned:
            return loan

        loan.mark_returned()
        return self.update(loan)

    @traced("loan.find")
    def find(
        self,
        loan_filter: LoanFilter,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Loan]:
        """
        Search loans by the book's ISBN **or** the customer.

        Either condition alone qualifies a loan.
        """
        if loan_filter.is_empty:
            logger.debug("Loan search without criteria matches every loan")
        return self.repository.find_by_isbn_or_customer(loan_filter, pagination)

    @traced("loan.get_loans_by_book")
    def get_loans_by_book(
        self,
        book: Book,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Loan]:
        """
        Get the loan history of a book, most recent first.

        Raises:
            InvalidArgumentError: If the book has no id
        """
        if book is None or not book.is_persisted:
            raise InvalidArgumentError("Book id cannot be null.")
        return self.repository.find_by_book(book.id, pagination)

    def late_loan_cutoff(self, today: date | None = None) -> date:
        """Loans that started strictly before this date are late."""
        return (today or date.today()) - timedelta(days=self.config.late_loan_days)

    @traced("loan.get_all_late_loans")
    def get_all_late_loans(self, today: date | None = None) -> list[Loan]:
        """
        Get every loan that is not returned and started more than
        ``late_loan_days`` days before ``today``.
        """
        cutoff = self.late_loan_cutoff(today)
        late_loans = self.repository.find_not_returned_before(cutoff)
        logger.debug("Found %d late loans before %s", len(late_loans), cutoff)
        return late_loans
