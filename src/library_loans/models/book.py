"""
Book model for the Library Loans service.

A book is a catalog entry identified by a system-assigned ``id`` and a
business-unique ``isbn``. The id stays ``None`` until the book has been
persisted through the catalog.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Book(BaseModel):
    """
    Represents a book in the library catalog.

    Books are created without an id; ``BookCatalog.save`` assigns one.
    Updating or deleting requires the id to be present.
    """

    id: int | None = Field(
        None,
        description="System-assigned identifier, set once the book is persisted",
        ge=1,
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "As aventuras"],
    )

    author: str = Field(
        ...,
        description="Name of the book's author",
        min_length=1,
        max_length=200,
        examples=["F. Scott Fitzgerald", "Fulano"],
    )

    isbn: str = Field(
        ...,
        description="International Standard Book Number, unique across the catalog",
        min_length=1,
        max_length=20,
        examples=["9780134685479", "123"],
    )

    @field_validator("title", "author", "isbn")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Reject values that are empty once surrounding whitespace is removed."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @property
    def is_persisted(self) -> bool:
        """Check if the book has been assigned an id."""
        return self.id is not None

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "The Great Gatsby",
                "author": "F. Scott Fitzgerald",
                "isbn": "9780134685479",
            }
        },
    )


class BookFilter(BaseModel):
    """
    Example-style filter for book searches.

    Every non-empty field narrows the result (AND). Matching is
    case-insensitive and partial, so ``title="gats"`` finds "The Great Gatsby".
    """

    isbn: str | None = None
    title: str | None = None
    author: str | None = None

    @classmethod
    def from_book(cls, book: Book) -> "BookFilter":
        """Use an existing book as the search example."""
        return cls(isbn=book.isbn, title=book.title, author=book.author)

    def criteria(self) -> dict[str, str]:
        """Return the fields that actually constrain the search."""
        return {
            field: value.strip()
            for field, value in self.model_dump().items()
            if value is not None and value.strip()
        }
