"""
Book repository implementation for the Library Loans service.

Provides the catalog queries the BookCatalog service relies on: lookup by id
or ISBN, ISBN existence checks and example-based paginated search.
"""

from sqlalchemy import and_, func, select

from ..database.schema import Book as BookDB
from ..database.session import safe_query
from ..models.book import Book as BookModel
from ..models.book import BookFilter
from .repository import BaseRepository, PaginatedResponse, PaginationParams


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Repository for book data access."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _apply(self, db_obj: BookDB, data: BookModel) -> None:
        db_obj.title = data.title
        db_obj.author = data.author
        db_obj.isbn = data.isbn

    def get_by_isbn(self, isbn: str) -> BookModel | None:
        """
        Get book by ISBN.

        Returns:
            Book model or None if not found
        """
        query = select(BookDB).where(BookDB.isbn == isbn)
        result = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by ISBN",
        )

        if result is None:
            return None

        return self._to_response_model(result)

    def exists_by_isbn(self, isbn: str) -> bool:
        """Check if any book is registered under ``isbn``."""
        query = select(func.count()).select_from(BookDB).where(BookDB.isbn == isbn)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check ISBN existence"
        )
        return count > 0

    def find_by_example(
        self,
        example: BookFilter,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[BookModel]:
        """
        Search for books matching the non-empty fields of ``example``.

        Each given field must be contained in the corresponding column,
        ignoring case; the conditions are combined with AND. ``%`` and ``_``
        in a value match literally. An empty example matches every book.

        Args:
            example: Fields to match
            pagination: Pagination parameters

        Returns:
            Paginated response with matching books, ordered by id
        """
        columns = {"isbn": BookDB.isbn, "title": BookDB.title, "author": BookDB.author}
        filters = [
            columns[field].icontains(value, autoescape=True)
            for field, value in example.criteria().items()
        ]

        query = select(BookDB)
        if filters:
            query = query.where(and_(*filters))
        query = query.order_by(BookDB.id)

        return self._paginate_query(query, pagination)
