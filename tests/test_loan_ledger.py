"""
Tests for the LoanLedger service.

Covers the loan-exclusivity rule, the tri-state returned flag, the OR search
contract and the late-loan boundary.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from library_loans.database import LoanRepository, PaginationParams
from library_loans.errors import BookAlreadyLoanedError, InvalidArgumentError
from library_loans.models import Book, Loan, LoanFilter
from library_loans.services import LoanLedger


class TestSave:
    """Opening loans."""

    def test_save_assigns_id(self, ledger, sample_book, today):
        loan = ledger.save(Loan.for_book(sample_book, "Fulano", today))

        assert loan.id is not None
        assert loan.book_id == sample_book.id
        assert loan.customer == "Fulano"
        assert loan.loan_date == today
        assert loan.returned is None

    def test_saved_loan_resolves_its_book(self, ledger, sample_book):
        loan = ledger.save(Loan(book_id=sample_book.id, customer="Fulano"))

        assert loan.book is not None
        assert loan.book.isbn == "123"
        assert loan.isbn == "123"

    def test_book_already_loaned_is_rejected(self, ledger, sample_book):
        ledger.save(Loan.for_book(sample_book, "Fulano"))

        with pytest.raises(BookAlreadyLoanedError) as exc_info:
            ledger.save(Loan.for_book(sample_book, "Ciclano"))

        assert exc_info.value.message == "Book already loaned"
        assert ledger.find(LoanFilter()).total == 1

    def test_explicitly_not_returned_loan_still_blocks(self, ledger, sample_book):
        ledger.save(Loan.for_book(sample_book, "Fulano").model_copy(update={"returned": False}))

        with pytest.raises(BookAlreadyLoanedError):
            ledger.save(Loan.for_book(sample_book, "Ciclano"))

    def test_book_already_loaned_performs_no_write(self, test_session, test_config):
        repository = MagicMock(spec=LoanRepository)
        repository.lock_book.return_value = True
        repository.exists_open_for_book.return_value = True
        ledger = LoanLedger(test_session, repository=repository, config=test_config)

        with pytest.raises(BookAlreadyLoanedError):
            ledger.save(Loan(book_id=1, customer="Fulano"))

        repository.create.assert_not_called()

    def test_store_rejects_racing_second_loan(self, test_session, test_config, sample_book):
        """A save that slips past the existence check is stopped by the store."""
        LoanLedger(test_session, config=test_config).save(Loan.for_book(sample_book, "Fulano"))

        repository = LoanRepository(test_session)
        repository.exists_open_for_book = MagicMock(return_value=False)
        racing_ledger = LoanLedger(test_session, repository=repository, config=test_config)

        with pytest.raises(BookAlreadyLoanedError):
            racing_ledger.save(Loan.for_book(sample_book, "Ciclano"))

        assert repository.find_by_book(sample_book.id).total == 1

    def test_loan_of_missing_book_is_invalid_argument(self, ledger):
        with pytest.raises(InvalidArgumentError):
            ledger.save(Loan(book_id=999, customer="Fulano"))

    def test_rejected_loan_ends_the_transaction(self, ledger, test_session, sample_book):
        ledger.save(Loan.for_book(sample_book, "Fulano"))

        with pytest.raises(BookAlreadyLoanedError):
            ledger.save(Loan.for_book(sample_book, "Ciclano"))

        assert not test_session.in_transaction()

    def test_missing_book_ends_the_transaction(self, ledger, test_session):
        with pytest.raises(InvalidArgumentError):
            ledger.save(Loan(book_id=999, customer="Fulano"))

        assert not test_session.in_transaction()

    def test_book_removed_before_insert_is_invalid_argument(self, test_session, test_config):
        """The store's foreign key catches a book that vanished after the lock."""
        repository = LoanRepository(test_session)
        repository.lock_book = MagicMock(return_value=True)
        ledger = LoanLedger(test_session, repository=repository, config=test_config)

        with pytest.raises(InvalidArgumentError, match="Book 999 does not exist."):
            ledger.save(Loan(book_id=999, customer="Fulano"))

        assert ledger.find(LoanFilter()).total == 0

    def test_other_books_are_unaffected(self, ledger, sample_books):
        for book in sample_books:
            ledger.save(Loan.for_book(book, "Fulano"))

        assert ledger.find(LoanFilter(customer="Fulano")).total == 3

    def test_returning_frees_the_book(self, catalog, ledger):
        book = catalog.save(Book(title="As aventuras", author="Fulano", isbn="123"))
        first = ledger.save(Loan.for_book(book, "Fulano"))

        with pytest.raises(BookAlreadyLoanedError):
            ledger.save(Loan.for_book(book, "Ciclano"))

        ledger.update(first.model_copy(update={"returned": True}))
        second = ledger.save(Loan.for_book(book, "Ciclano"))

        assert second.id != first.id
        assert len(ledger.get_loans_by_book(book).items) == 2


class TestLookupAndUpdate:
    def test_get_by_id(self, ledger, make_loan, sample_book):
        loan = make_loan(sample_book)

        found = ledger.get_by_id(loan.id)

        assert found is not None
        assert found.id == loan.id
        assert found.customer == loan.customer
        assert found.book_id == sample_book.id
        assert found.loan_date == loan.loan_date

    def test_get_by_id_missing_returns_none(self, ledger):
        assert ledger.get_by_id(999) is None

    def test_update_marks_returned(self, ledger, make_loan, sample_book):
        loan = make_loan(sample_book)

        updated = ledger.update(loan.model_copy(update={"returned": True}))

        assert updated.returned is True
        assert ledger.get_by_id(loan.id).is_returned

    def test_update_without_id_is_invalid_argument(self, test_session, test_config):
        repository = MagicMock(spec=LoanRepository)
        ledger = LoanLedger(test_session, repository=repository, config=test_config)

        with pytest.raises(InvalidArgumentError):
            ledger.update(Loan(book_id=1, customer="Fulano"))

        repository.replace.assert_not_called()

    def test_update_does_not_recheck_availability(self, test_session, test_config):
        repository = MagicMock(spec=LoanRepository)
        loan = Loan(id=1, book_id=1, customer="Fulano", returned=True)
        repository.replace.return_value = loan
        ledger = LoanLedger(test_session, repository=repository, config=test_config)

        assert ledger.update(loan) is loan
        repository.exists_open_for_book.assert_not_called()
        repository.replace.assert_called_once_with(loan)

    def test_reopening_a_loan_on_a_book_out_again_is_rejected(
        self, ledger, make_loan, sample_book
    ):
        first = make_loan(sample_book, days_ago=10)
        ledger.return_book(first.id)
        make_loan(sample_book, customer="Ciclano")

        with pytest.raises(BookAlreadyLoanedError):
            ledger.update(first.model_copy(update={"returned": None}))

    def test_return_book(self, ledger, make_loan, sample_book):
        loan = make_loan(sample_book)

        returned = ledger.return_book(loan.id)

        assert returned is not None
        assert returned.returned is True

    def test_return_twice_is_a_no_op(self, ledger, make_loan, sample_book):
        loan = make_loan(sample_book)
        ledger.return_book(loan.id)

        again = ledger.return_book(loan.id)

        assert again is not None
        assert again.returned is True

    def test_return_missing_loan_returns_none(self, ledger):
        assert ledger.return_book(999) is None


class TestFind:
    """Loan search matches the book's ISBN OR the customer."""

    @pytest.fixture
    def loans(self, make_loan, sample_books):
        gatsby, tender, mockingbird = sample_books
        return [
            make_loan(gatsby, customer="Fulano"),
            make_loan(tender, customer="Ciclano"),
            make_loan(mockingbird, customer="Beltrano"),
        ]

    def test_matches_by_isbn(self, ledger, loans):
        result = ledger.find(LoanFilter(isbn="111"))

        assert result.total == 1
        assert result.items[0].id == loans[0].id

    def test_matches_by_customer(self, ledger, loans):
        result = ledger.find(LoanFilter(customer="Ciclano"))

        assert [loan.id for loan in result.items] == [loans[1].id]

    def test_isbn_or_customer(self, ledger, loans):
        """A loan matching only one of the two fields is still returned."""
        result = ledger.find(LoanFilter(isbn="111", customer="Beltrano"))

        assert result.total == 2
        assert {loan.id for loan in result.items} == {loans[0].id, loans[2].id}

    def test_no_match(self, ledger, loans):
        result = ledger.find(LoanFilter(isbn="999", customer="Nobody"))

        assert result.total == 0
        assert result.items == []

    def test_empty_filter_matches_everything(self, ledger, loans):
        assert ledger.find(LoanFilter()).total == 3

    def test_page_metadata(self, ledger, loans):
        result = ledger.find(LoanFilter(), PaginationParams(page=1, page_size=2))

        assert result.total == 3
        assert result.page == 1
        assert result.page_size == 2
        assert len(result.items) == 2
        assert result.has_next is True

    def test_find_includes_returned_loans(self, ledger, loans):
        ledger.return_book(loans[0].id)

        result = ledger.find(LoanFilter(customer="Fulano"))

        assert result.total == 1
        assert result.items[0].returned is True


class TestLoansByBook:
    def test_history_most_recent_first(self, ledger, make_loan, sample_book):
        old = make_loan(sample_book, customer="Fulano", days_ago=30)
        ledger.return_book(old.id)
        recent = make_loan(sample_book, customer="Ciclano", days_ago=1)

        result = ledger.get_loans_by_book(sample_book)

        assert [loan.id for loan in result.items] == [recent.id, old.id]

    def test_requires_book_id(self, ledger):
        with pytest.raises(InvalidArgumentError):
            ledger.get_loans_by_book(Book(title="x", author="y", isbn="z"))


class TestLateLoans:
    """A loan is late when loan_date < today - 4 days and it is not returned."""

    def test_four_days_is_not_late(self, ledger, make_loan, sample_book, today):
        make_loan(sample_book, days_ago=4)

        assert ledger.get_all_late_loans(today=today) == []

    def test_five_days_is_late(self, ledger, make_loan, sample_book, today):
        loan = make_loan(sample_book, days_ago=5)

        late = ledger.get_all_late_loans(today=today)

        assert [item.id for item in late] == [loan.id]

    def test_returned_loans_are_never_late(self, ledger, make_loan, sample_book, today):
        loan = make_loan(sample_book, days_ago=30)
        ledger.return_book(loan.id)

        assert ledger.get_all_late_loans(today=today) == []

    def test_explicit_false_counts_as_not_returned(
        self, ledger, make_loan, sample_book, today
    ):
        loan = make_loan(sample_book, days_ago=10, returned=False)

        assert [item.id for item in ledger.get_all_late_loans(today=today)] == [loan.id]

    def test_late_loans_are_oldest_first(self, ledger, make_loan, sample_books, today):
        newer = make_loan(sample_books[0], days_ago=6)
        older = make_loan(sample_books[1], days_ago=12)
        make_loan(sample_books[2], days_ago=1)

        late = ledger.get_all_late_loans(today=today)

        assert [item.id for item in late] == [older.id, newer.id]

    def test_cutoff_follows_configuration(self, test_session, test_config, today):
        config = test_config.model_copy(update={"late_loan_days": 10})
        ledger = LoanLedger(test_session, config=config)

        assert ledger.late_loan_cutoff(today) == today - timedelta(days=10)

    def test_is_a_pure_read(self, ledger, make_loan, sample_book, today):
        loan = make_loan(sample_book, days_ago=9)

        ledger.get_all_late_loans(today=today)

        assert ledger.get_by_id(loan.id) == loan
