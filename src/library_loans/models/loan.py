"""
Loan models for the Library Loans service.

A loan records that a customer took a book on a given date. The ``returned``
flag is deliberately tri-state:

- ``None``: never set
- ``False``: explicitly marked as not returned
- ``True``: the book was given back

Both ``None`` and ``False`` count as "not returned" for availability checks,
late-loan queries and searches. The flag only ever moves to ``True``.
"""

from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .book import Book


class Loan(BaseModel):
    """
    Represents a loan of one book to one customer.

    The loan refers to its book by ``book_id``; ``book`` carries the resolved
    catalog entry when it has been loaded alongside the loan.
    """

    id: int | None = Field(
        None,
        description="System-assigned identifier, set once the loan is persisted",
        ge=1,
    )

    book_id: int = Field(
        ...,
        description="Id of the loaned book",
        ge=1,
    )

    book: Book | None = Field(
        None,
        description="The loaned book, when resolved",
        exclude=True,
    )

    customer: str = Field(
        ...,
        description="Free-text identifier of the borrower",
        min_length=1,
        max_length=200,
        examples=["Fulano", "customer@example.com"],
    )

    loan_date: date = Field(
        default_factory=date.today,
        description="Calendar date the loan began",
    )

    returned: bool | None = Field(
        None,
        description="Whether the book was given back (None means never set)",
    )

    @model_validator(mode="before")
    @classmethod
    def book_id_from_book(cls, data):
        """Allow constructing a loan from a resolved book only."""
        if isinstance(data, dict) and data.get("book_id") is None:
            book = data.get("book")
            book_id = book.get("id") if isinstance(book, dict) else getattr(book, "id", None)
            if book_id is not None:
                data = {**data, "book_id": book_id}
        return data

    @model_validator(mode="after")
    def validate_book_reference(self) -> "Loan":
        """Ensure a resolved book matches the referenced id."""
        if self.book is not None and self.book.id is not None and self.book.id != self.book_id:
            raise ValueError("book.id does not match book_id")
        return self

    @classmethod
    def for_book(cls, book: Book, customer: str, loan_date: date | None = None) -> "Loan":
        """
        Start a new loan for a persisted book.

        Raises:
            ValueError: If the book has no id yet
        """
        if book.id is None:
            raise ValueError("Cannot loan a book that has not been saved")
        return cls(
            book_id=book.id,
            book=book,
            customer=customer,
            loan_date=loan_date or date.today(),
        )

    @property
    def is_returned(self) -> bool:
        """Check if the book was given back."""
        return self.returned is True

    @property
    def isbn(self) -> str | None:
        """ISBN of the loaned book, when resolved."""
        return self.book.isbn if self.book is not None else None

    def is_late(self, today: date | None = None, late_after_days: int = 4) -> bool:
        """
        Check if the loan is late.

        A loan is late when it is not returned and started strictly before
        ``today - late_after_days``.
        """
        if self.is_returned:
            return False
        today = today or date.today()
        return self.loan_date < today - timedelta(days=late_after_days)

    def days_out(self, today: date | None = None) -> int:
        """Number of days since the loan began."""
        return ((today or date.today()) - self.loan_date).days

    def mark_returned(self) -> None:
        """
        Mark the book as given back.

        Raises:
            ValueError: If the loan was already returned
        """
        if self.is_returned:
            raise ValueError("Loan has already been returned")
        self.returned = True

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "book_id": 1,
                "customer": "Fulano",
                "loan_date": "2024-01-15",
                "returned": None,
            }
        },
    )


class LoanFilter(BaseModel):
    """
    Search criteria for loans.

    A loan matches when its book's ISBN equals ``isbn`` **or** its customer
    equals ``customer``. A field left as ``None`` adds no condition; with both
    absent every loan matches.
    """

    isbn: str | None = None
    customer: str | None = None

    @property
    def is_empty(self) -> bool:
        """Check if no criteria were given."""
        return not self.isbn and not self.customer
