"""
Loan repository implementation for the Library Loans service.

Provides the loan queries the LoanLedger service relies on:

1. **Availability**: does an open (not returned) loan exist for a book
2. **Search**: loans by the book's ISBN *or* by customer, paginated
3. **History**: all loans of one book, paginated
4. **Late loans**: open loans that started before a cutoff date

"Open" always means ``returned IS NULL OR returned = false``; a NULL flag was
never set and therefore counts as not returned.
"""

from datetime import date

from sqlalchemy import desc, false, func, or_, select
from sqlalchemy.orm import joinedload

from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.session import safe_query
from ..models.loan import Loan as LoanModel
from ..models.loan import LoanFilter
from .repository import BaseRepository, PaginatedResponse, PaginationParams


def not_returned():
    """SQL condition selecting loans whose book is still out."""
    return or_(LoanDB.returned.is_(None), LoanDB.returned == false())


class LoanRepository(BaseRepository[LoanDB, LoanModel]):
    """Repository for loan data access."""

    @property
    def model_class(self):
        return LoanDB

    @property
    def response_schema(self):
        return LoanModel

    def _apply(self, db_obj: LoanDB, data: LoanModel) -> None:
        db_obj.book_id = data.book_id
        db_obj.customer = data.customer
        db_obj.loan_date = data.loan_date
        db_obj.returned = data.returned

    def exists_open_for_book(self, book_id: int) -> bool:
        """Check if the book has a loan that was not returned yet."""
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.book_id == book_id)
            .where(not_returned())
        )
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check open loans"
        )
        return count > 0

    def lock_book(self, book_id: int) -> bool:
        """
        Take a row lock on the book about to be loaned.

        Serialises concurrent loan attempts for the same book on stores that
        support ``SELECT ... FOR UPDATE``; SQLite ignores the clause and relies
        on the open-loan unique index instead.

        Returns:
            True if the book exists
        """
        query = select(BookDB.id).where(BookDB.id == book_id).with_for_update()
        result = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to lock book for loan",
        )
        return result is not None

    def find_by_isbn_or_customer(
        self,
        loan_filter: LoanFilter,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanModel]:
        """
        Search loans by the book's ISBN or by customer.

        A loan matches when *either* given field matches exactly. With no
        criteria every loan matches.

        Args:
            loan_filter: ISBN and/or customer to match
            pagination: Pagination parameters

        Returns:
            Paginated response with matching loans, ordered by id
        """
        query = select(LoanDB).join(BookDB, LoanDB.book_id == BookDB.id)

        conditions = []
        if loan_filter.isbn:
            conditions.append(BookDB.isbn == loan_filter.isbn)
        if loan_filter.customer:
            conditions.append(LoanDB.customer == loan_filter.customer)

        if conditions:
            query = query.where(or_(*conditions))

        query = query.options(joinedload(LoanDB.book)).order_by(LoanDB.id)
        return self._paginate_query(query, pagination)

    def find_by_book(
        self,
        book_id: int,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanModel]:
        """
        Get the loan history of one book, most recent first.

        Args:
            book_id: Book ID
            pagination: Pagination parameters
        """
        query = (
            select(LoanDB)
            .where(LoanDB.book_id == book_id)
            .options(joinedload(LoanDB.book))
            .order_by(desc(LoanDB.loan_date), desc(LoanDB.id))
        )
        return self._paginate_query(query, pagination)

    def find_not_returned_before(self, cutoff: date) -> list[LoanModel]:
        """
        Get every open loan that started strictly before ``cutoff``.

        Args:
            cutoff: Loans with ``loan_date < cutoff`` qualify

        Returns:
            Matching loans, oldest first
        """
        query = (
            select(LoanDB)
            .where(LoanDB.loan_date < cutoff)
            .where(not_returned())
            .options(joinedload(LoanDB.book))
            .order_by(LoanDB.loan_date, LoanDB.id)
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to get late loans",
        )
        return [self._to_response_model(loan) for loan in results]
