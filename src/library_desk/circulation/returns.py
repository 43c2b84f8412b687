"""
Return workflow.

``ReturnOrchestrator`` closes a loan. In one transaction it:

1. assesses the late fee against the return time
2. records condition, fee and fee disposition on the loan
3. puts the copy back on the shelf (Needs Repair when it came back damaged)
4. logs a zero-value Return transaction linked to the loan

A non-zero fee must be paid or waived at the desk before the return goes
through, unless the orchestrator is built with
``enforce_fee_disposition=False``.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.loan_repository import LoanRepository
from ..database.repository import NotFoundError, atomic
from ..database.schema import BookStatusEnum, LoanStatusEnum, PaymentMethodEnum
from ..database.schema import Loan as LoanDB
from ..database.transaction_repository import TransactionRepository
from ..identity import StaffContext
from ..models.book import Book
from ..models.loan import Loan, ReturnCondition
from ..models.settings import LibraryPolicy
from ..models.transaction import Transaction
from .errors import FeeDispositionRequiredError, LoanNotActiveError
from .late_fees import calculate_late_fee, days_overdue, format_late_fee

logger = logging.getLogger(__name__)

REVIEW_CONDITIONS = frozenset({ReturnCondition.POOR, ReturnCondition.DAMAGED})


class FeeDisposition(str, Enum):
    """What happened to the late fee at the desk."""

    NONE = "none"
    PAID = "paid"
    WAIVED = "waived"


class ReturnRequest(BaseModel):
    loan_id: str = Field(..., min_length=1)
    book_id: str | None = Field(None, description="When given, must be the loan's book")
    condition: ReturnCondition = ReturnCondition.GOOD
    condition_notes: str | None = Field(None, max_length=2000)
    fee_disposition: FeeDisposition = FeeDisposition.NONE


class ReturnResult(BaseModel):
    loan: Loan
    book: Book
    transaction: Transaction
    late_fee: float
    flagged_for_review: bool


class FeePreview(BaseModel):
    """Fee a return at ``as_of`` would assess."""

    loan_id: str
    due_date: datetime
    as_of: datetime
    days_overdue: int
    late_fee: float
    formatted: str


class ReturnOrchestrator:
    """Processes returns for one staff context."""

    def __init__(
        self,
        session: Session,
        staff: StaffContext,
        policy: LibraryPolicy,
        clock: Callable[[], datetime] = datetime.now,
        enforce_fee_disposition: bool = True,
    ):
        self.session = session
        self.staff = staff
        self.policy = policy
        self.clock = clock
        self.enforce_fee_disposition = enforce_fee_disposition

        self.books = BookRepository(session, staff.owner_id)
        self.loans = LoanRepository(session, staff.owner_id)
        self.transactions = TransactionRepository(session, staff.owner_id)

    def _get_active_loan(self, loan_id: str) -> LoanDB:
        loan = self.loans.get_db_object(loan_id, for_update=True)
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        if loan.status != LoanStatusEnum.BORROWED:
            raise LoanNotActiveError(f"Loan {loan_id} has already been returned")
        return loan

    def preview_fee(self, loan_id: str) -> FeePreview:
        """Fee that returning ``loan_id`` right now would assess. Read-only."""
        now = self.clock()
        loan = self._get_active_loan(loan_id)
        fee = calculate_late_fee(loan.due_date, now, self.policy)
        return FeePreview(
            loan_id=loan.id,
            due_date=loan.due_date,
            as_of=now,
            days_overdue=days_overdue(loan.due_date, now),
            late_fee=fee,
            formatted=format_late_fee(fee),
        )

    def return_book(self, request: ReturnRequest) -> ReturnResult:
        """
        Return the copy lent out by ``request.loan_id``.

        Raises:
            NotFoundError: Unknown loan, or a book id that does not match it
            LoanNotActiveError: The loan was already returned
            FeeDispositionRequiredError: A late fee is due and was neither paid nor waived
            RepositoryException: The data store failed
        """
        now = self.clock()

        with atomic(self.session, "return book"):
            loan = self._get_active_loan(request.loan_id)
            if request.book_id is not None and request.book_id != loan.book_id:
                raise NotFoundError(f"Loan {loan.id} is not for book {request.book_id}")

            fee = calculate_late_fee(loan.due_date, now, self.policy)
            if (
                fee > 0
                and request.fee_disposition == FeeDisposition.NONE
                and self.enforce_fee_disposition
            ):
                raise FeeDispositionRequiredError(
                    f"Late fee of {format_late_fee(fee)} must be paid or waived"
                )

            flagged = request.condition in REVIEW_CONDITIONS
            title = loan.book.title

            loan.status = LoanStatusEnum.RETURNED
            loan.return_date = now
            loan.return_condition = request.condition
            loan.condition_notes = request.condition_notes
            loan.flagged_for_review = flagged
            loan.late_fee_amount = fee
            loan.fee_paid = request.fee_disposition == FeeDisposition.PAID
            loan.fee_waived = request.fee_disposition == FeeDisposition.WAIVED
            loan.notes = f"Returned: {title}"
            loan.updated_at = now
            self.session.flush()

            shelf_status = (
                BookStatusEnum.NEEDS_REPAIR
                if request.condition == ReturnCondition.DAMAGED
                else BookStatusEnum.AVAILABLE
            )
            book = self.books.return_copy(loan.book_id, shelf_status, now)
            if book is None:
                raise NotFoundError(f"Book {loan.book_id} not found")

            transaction = self.transactions.record(
                customer_id=loan.member_id,
                payment_method=PaymentMethodEnum.RETURN,
                book=book,
                price=0.0,
                date=now,
                loan_id=loan.id,
            )

            result = ReturnResult(
                loan=Loan.model_validate(loan),
                book=Book.model_validate(book),
                transaction=Transaction.model_validate(transaction),
                late_fee=fee,
                flagged_for_review=flagged,
            )

        logger.info(
            "Returned loan %s (%s, fee %s)", loan.id, request.condition.value, format_late_fee(fee)
        )
        return result
