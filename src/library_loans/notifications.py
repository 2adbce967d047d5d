"""
Late-loan notifications.

A periodic job (cron, a scheduler, a management command) calls
``LateLoanNotifier.run()``. The notifier asks the ledger for late loans and
hands one notice per loan to a sender callable; delivery (email, SMS, a
queue) is up to the sender.
"""

import logging
from collections.abc import Callable
from datetime import date

import logfire
from pydantic import BaseModel

from .config import LibraryConfig, get_config
from .services.loan_ledger import LoanLedger

logger = logging.getLogger(__name__)


class LateLoanNotice(BaseModel):
    """One reminder for one late loan."""

    customer: str
    loan_id: int
    book_id: int
    isbn: str | None = None
    title: str | None = None
    loan_date: date
    days_out: int
    message: str


class NotificationRun(BaseModel):
    """Outcome of one notifier run."""

    notices: list[LateLoanNotice]
    sent: int
    failed: int

    @property
    def customers(self) -> list[str]:
        """Distinct customers that were notified, in notice order."""
        return list(dict.fromkeys(notice.customer for notice in self.notices))


Sender = Callable[[LateLoanNotice], None]


class LateLoanNotifier:
    """Sends a reminder for every loan the ledger reports as late."""

    def __init__(
        self,
        ledger: LoanLedger,
        sender: Sender,
        config: LibraryConfig | None = None,
    ):
        self.ledger = ledger
        self.sender = sender
        self.config = config or get_config()

    def build_notices(self, today: date | None = None) -> list[LateLoanNotice]:
        """Build, without sending, the notices for the current late loans."""
        today = today or date.today()
        return [
            LateLoanNotice(
                customer=loan.customer,
                loan_id=loan.id,
                book_id=loan.book_id,
                isbn=loan.isbn,
                title=loan.book.title if loan.book else None,
                loan_date=loan.loan_date,
                days_out=loan.days_out(today),
                message=self.config.late_loan_message,
            )
            for loan in self.ledger.get_all_late_loans(today=today)
        ]

    def run(self, today: date | None = None) -> NotificationRun:
        """
        Notify every customer holding a late loan.

        A notice whose delivery fails is logged and counted; the remaining
        notices are still sent.
        """
        with logfire.span("notifications.late_loans") as span:
            notices = self.build_notices(today)
            sent = failed = 0

            for notice in notices:
                try:
                    self.sender(notice)
                except Exception:
                    failed += 1
                    logger.exception(
                        "Failed to notify %s about loan %s", notice.customer, notice.loan_id
                    )
                else:
                    sent += 1

            span.set_attribute("notices.total", len(notices))
            span.set_attribute("notices.sent", sent)
            span.set_attribute("notices.failed", failed)

        logger.info("Late-loan notification run: %d sent, %d failed", sent, failed)
        return NotificationRun(notices=notices, sent=sent, failed=failed)
