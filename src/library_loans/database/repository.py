"""
Repository pattern implementation for the Library Loans service.

Repositories are the only code that talks SQL. Services above them deal in
Pydantic models and domain errors, never in SQLAlchemy rows or sessions:

1. **Separation**: business rules live in the services, queries live here
2. **Testability**: services can be exercised against a mocked repository
3. **Consistency**: every read returns Pydantic models, every list is paginated
   the same way

The base repository provides the common record operations; the book and loan
repositories add the entity-specific queries the services need.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_config
from ..database.schema import Base
from ..database.session import RepositoryException, safe_commit, safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class ConstraintViolationError(RepositoryException):
    """Raised when a write is rejected by a constraint of the store."""


class DuplicateError(ConstraintViolationError):
    """Raised when a write would break a uniqueness rule of the store."""


class ReferencedError(ConstraintViolationError):
    """Raised when a write breaks a reference between records."""


# SQLSTATE reported by PostgreSQL drivers for foreign key violations
FOREIGN_KEY_VIOLATION = "23503"


def is_foreign_key_violation(error: IntegrityError) -> bool:
    """Check if an integrity error comes from a foreign key constraint."""
    code = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if code is not None:
        return code == FOREIGN_KEY_VIOLATION
    return "FOREIGN KEY" in str(error.orig).upper()


def constraint_error(error: IntegrityError, message: str) -> ConstraintViolationError:
    """Translate an integrity error into the matching repository exception."""
    if is_foreign_key_violation(error):
        return ReferencedError(f"{message}: {error.orig}")
    return DuplicateError(f"{message}: {error.orig}")


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations (1-based pages)."""

    page: int = 1
    page_size: int = Field(default_factory=lambda: get_config().default_page_size)

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        """Validate pagination parameters."""
        max_page_size = get_config().max_page_size
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > max_page_size:
            raise ValueError(f"Page size must be between 1 and {max_page_size}")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """
    Standard paginated response for list operations.

    ``total`` is the number of matching records across all pages.
    """

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Abstract base repository providing common record operations.

    Reads go through ``safe_query``; writes go through ``safe_commit``, which
    rolls back on failure and lets integrity errors surface for mapping.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @abstractmethod
    def _apply(self, db_obj: ModelType, data: ResponseSchemaType) -> None:
        """Copy the persistent fields of a Pydantic model onto a row."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_row(self, id: int) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == id)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found

        Raises:
            RepositoryException: On database errors
        """
        db_obj = self._get_row(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def create(self, data: ResponseSchemaType) -> ResponseSchemaType:
        """
        Insert a new entity; the store assigns its id.

        Raises:
            DuplicateError: If the row breaks a uniqueness constraint
            ReferencedError: If the row points at a record that does not exist
            RepositoryException: On other database errors
        """
        db_obj = self.model_class()
        self._apply(db_obj, data)
        self.session.add(db_obj)
        try:
            safe_commit(self.session, f"create {self.model_class.__name__}")
        except IntegrityError as e:
            raise constraint_error(e, f"Cannot create {self.model_class.__name__}") from e
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def replace(self, data: ResponseSchemaType) -> ResponseSchemaType:
        """
        Persist ``data`` as the full new state of the record with its id.

        A record that does not exist yet is inserted under that id.

        Raises:
            DuplicateError: If the new state breaks a uniqueness constraint
            ReferencedError: If the new state points at a record that does not exist
            RepositoryException: On other database errors
        """
        db_obj = self._get_row(data.id)
        if db_obj is None:
            db_obj = self.model_class(id=data.id)
            self.session.add(db_obj)
        self._apply(db_obj, data)
        try:
            safe_commit(self.session, f"update {self.model_class.__name__}")
        except IntegrityError as e:
            raise constraint_error(e, f"Cannot update {self.model_class.__name__}") from e
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def delete(self, id: int) -> bool:
        """
        Delete entity by ID.

        Returns:
            True if deleted, False if not found

        Raises:
            ReferencedError: If other records still reference the entity
        """
        db_obj = self._get_row(id)
        if db_obj is None:
            return False

        self.session.delete(db_obj)
        try:
            safe_commit(self.session, f"delete {self.model_class.__name__}")
        except IntegrityError as e:
            raise ReferencedError(f"{self.model_class.__name__} {id} is still referenced") from e
        return True

    def exists(self, id: int) -> bool:
        """Check if entity exists by ID."""
        query = select(func.count()).select_from(self.model_class).where(self.model_class.id == id)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return count > 0

    def count(self) -> int:
        """Count all records of this entity."""
        query = select(func.count()).select_from(self.model_class)
        return safe_query(self.session, lambda s: s.execute(query).scalar(), "Failed to count") or 0

    def _paginate_query(
        self, query: Select, pagination: PaginationParams | None
    ) -> PaginatedResponse[ResponseSchemaType]:
        """Run ``query`` for one page and count all of its matches."""
        if not pagination:
            pagination = PaginationParams()

        pagination.validate_params()

        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (
            safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to count in pagination",
            )
            or 0
        )

        query = query.offset(pagination.offset).limit(pagination.page_size)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to get paginated results",
        )

        items = [self._to_response_model(item) for item in results]

        return PaginatedResponse(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )


__all__ = [
    "BaseRepository",
    "ConstraintViolationError",
    "DuplicateError",
    "PaginatedResponse",
    "PaginationParams",
    "ReferencedError",
    "RepositoryException",
]
