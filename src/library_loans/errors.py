"""
Error taxonomy for the Library Loans service.

Three kinds of outcome leave the service layer besides a value:

1. **Business rule violations**: the caller asked for something the library
   rules forbid (duplicate ISBN, book already out). The caller must change
   the input; nothing is retried.
2. **Invalid arguments**: the caller broke the contract (update/delete without
   an id). These are defects, raised as ``ValueError`` subclasses.
3. **Absence**: lookups return ``None``. That is not an error and has no type
   here.

``ErrorReport`` turns any of these into a serialisable ``{"errors": [...]}``
body for whatever transport sits in front of the services.
"""

from pydantic import BaseModel, Field, ValidationError


class LibraryError(Exception):
    """Base exception for library service errors."""


class BusinessRuleViolation(LibraryError):
    """Raised when an operation breaks a library rule the caller can correct."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DuplicateIsbnError(BusinessRuleViolation):
    """Raised when a book is saved with an ISBN that is already registered."""

    def __init__(self, isbn: str | None = None):
        super().__init__("Isbn already registered.")
        self.isbn = isbn


class BookAlreadyLoanedError(BusinessRuleViolation):
    """Raised when a loan is opened for a book that is still out."""

    def __init__(self, book_id: int | None = None):
        super().__init__("Book already loaned")
        self.book_id = book_id


class BookHasLoansError(BusinessRuleViolation):
    """Raised when deleting a book that still has loan history."""

    def __init__(self, book_id: int | None = None):
        super().__init__("Book has registered loans")
        self.book_id = book_id


class InvalidArgumentError(ValueError):
    """Raised when a caller violates an operation's contract."""


class ErrorReport(BaseModel):
    """Serialisable list of error messages for a rejected operation."""

    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "ErrorReport":
        """One message per failed field, prefixed with the field location."""
        messages = []
        for detail in error.errors():
            location = ".".join(str(part) for part in detail["loc"])
            messages.append(f"{location}: {detail['msg']}" if location else detail["msg"])
        return cls(errors=messages)

    @classmethod
    def from_exception(cls, error: Exception) -> "ErrorReport":
        """Build a report from a service-layer exception."""
        if isinstance(error, ValidationError):
            return cls.from_validation_error(error)
        if isinstance(error, BusinessRuleViolation):
            return cls(errors=[error.message])
        return cls(errors=[str(error)])
