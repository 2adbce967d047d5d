"""
Book catalog service.

Owns the lifecycle of Book records: registration with unique-ISBN
enforcement, lookup, full-replacement updates, deletion and example-based
search. Lookups that find nothing return ``None``.
"""

import logging

from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.repository import (
    DuplicateError,
    PaginatedResponse,
    PaginationParams,
    ReferencedError,
)
from ..errors import BookHasLoansError, DuplicateIsbnError, InvalidArgumentError
from ..models.book import Book, BookFilter
from ..observability import traced

logger = logging.getLogger(__name__)


class BookCatalog:
    """Business operations over the library catalog."""

    def __init__(self, session: Session, repository: BookRepository | None = None):
        self.session = session
        self.repository = repository or BookRepository(session)

    @traced("book.save")
    def save(self, book: Book) -> Book:
        """
        Register a new book.

        Raises:
            DuplicateIsbnError: If a book with the same ISBN is already registered
        """
        if self.repository.exists_by_isbn(book.isbn):
            logger.info("Rejected book with duplicate ISBN %s", book.isbn)
            raise DuplicateIsbnError(book.isbn)

        try:
            saved = self.repository.create(book)
        except DuplicateError as e:
            # Lost a race with a concurrent registration of the same ISBN
            raise DuplicateIsbnError(book.isbn) from e

        logger.info("Registered book %s (isbn=%s)", saved.id, saved.isbn)
        return saved

    @traced("book.get_by_id")
    def get_by_id(self, id: int) -> Book | None:
        return self.repository.get_by_id(id)

    @traced("book.get_by_isbn")
    def get_by_isbn(self, isbn: str) -> Book | None:
        return self.repository.get_by_isbn(isbn)

    @traced("book.update")
    def update(self, book: Book) -> Book:
        """
        Replace the stored state of a book.

        Raises:
            InvalidArgumentError: If the book has no id
            DuplicateIsbnError: If the new ISBN belongs to another book
        """
        if book is None or not book.is_persisted:
            raise InvalidArgumentError("Book id cannot be null.")

        try:
            updated = self.repository.replace(book)
        except DuplicateError as e:
            raise DuplicateIsbnError(book.isbn) from e

        logger.info("Updated book %s", updated.id)
        return updated

    @traced("book.delete")
    def delete(self, book: Book) -> None:
        """
        Remove a book from the catalog.

        Deleting a book that is not stored is a no-op.

        Raises:
            InvalidArgumentError: If the book has no id
            BookHasLoansError: If loans still reference the book
        """
        if book is None or not book.is_persisted:
            raise InvalidArgumentError("Book id cannot be null.")

        try:
            deleted = self.repository.delete(book.id)
        except ReferencedError as e:
            raise BookHasLoansError(book.id) from e

        if deleted:
            logger.info("Deleted book %s", book.id)
        else:
            logger.debug("Book %s was already absent", book.id)

    @traced("book.find")
    def find(
        self,
        book_filter: BookFilter | Book,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Book]:
        """
        Search books by example.

        ``book_filter`` may be a ``BookFilter`` or a ``Book`` used as the
        example; its non-empty isbn/title/author fields must all match.
        """
        if isinstance(book_filter, Book):
            book_filter = BookFilter.from_book(book_filter)
        return self.repository.find_by_example(book_filter, pagination)
