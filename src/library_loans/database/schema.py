"""
SQLAlchemy database schema for the Library Loans service.

Two tables back the service:

1. ``books`` - the catalog, with a unique ISBN
2. ``loans`` - loan history, referencing books

The loan-exclusivity rule (at most one open loan per book) is enforced by the
store itself through a partial unique index over ``loans.book_id`` restricted
to rows whose ``returned`` flag is not true. The service still checks before
inserting, but two concurrent inserts cannot both commit.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Rows matching this predicate are "open" loans; NULL counts as not returned.
OPEN_LOAN_PREDICATE = "returned IS NULL OR returned = 0"


class Book(Base):
    """
    Books table - the library catalog.

    ``isbn`` is the business key; ``id`` is the surrogate key loans refer to.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False)
    author = Column(String(200), nullable=False)
    isbn = Column(String(20), nullable=False, unique=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Loans are history; they are never cascaded away with the book
    loans = relationship("Loan", back_populates="book", passive_deletes="all")

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_author", "author"),
    )


class Loan(Base):
    """
    Loans table - one row per loan, kept after the book is returned.

    ``returned`` is nullable on purpose: NULL means the flag was never set,
    which is distinct from an explicit false.
    """

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="RESTRICT"), nullable=False)
    customer = Column(String(200), nullable=False)
    loan_date = Column(Date, nullable=False)
    returned = Column(Boolean, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Resolved on access, not eagerly
    book = relationship("Book", back_populates="loans", lazy="select")

    __table_args__ = (
        Index("idx_loan_book", "book_id"),
        Index("idx_loan_customer", "customer"),
        Index("idx_loan_date", "loan_date"),
        Index(
            "uq_loan_open_per_book",
            "book_id",
            unique=True,
            sqlite_where=text(OPEN_LOAN_PREDICATE),
            postgresql_where=text("returned IS NOT TRUE"),
        ),
        CheckConstraint("length(customer) > 0", name="check_customer_not_empty"),
    )

    @property
    def is_open(self) -> bool:
        """Check if the book of this loan is still out."""
        return self.returned is not True
