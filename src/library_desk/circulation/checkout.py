"""
Checkout workflow.

``CheckoutOrchestrator`` lends (or sells) one or more books to a member. A
request is all-or-nothing: the borrowing checks, every loan, transaction and
stock movement happen inside a single database transaction, and any failure
rolls all of them back.

Per book, a borrow writes:

1. a Loan (Borrowed, due ``duration_days`` from now)
2. a zero-value Borrow / Rent transaction pointing at the loan
3. one copy off the shelf

A purchase writes a Cash transaction at the book price and takes a copy.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..database.repository import NotFoundError, atomic
from ..database.schema import Book as BookDB
from ..database.schema import BookStatusEnum, LoanStatusEnum, OverrideActionEnum, PaymentMethodEnum
from ..database.schema import CheckoutTransaction as TransactionDB
from ..database.schema import Loan as LoanDB
from ..database.schema import Member as MemberDB
from ..database.transaction_repository import TransactionRepository
from ..identity import StaffContext
from ..models.book import Book
from ..models.loan import Loan
from ..models.settings import LibraryPolicy
from ..models.transaction import Transaction
from .audit import record_override
from .errors import (
    AlreadyBorrowedError,
    BookUnavailableError,
    BorrowingLimitError,
    MemberNotActiveError,
    StockUnavailableError,
    TooManyBooksError,
    UnpaidLateFeesError,
)
from .limits import BorrowingLimitChecker

logger = logging.getLogger(__name__)

UNLENDABLE_STATUSES = (BookStatusEnum.NEEDS_REPAIR, BookStatusEnum.LOST)


class AssignmentType(str, Enum):
    BORROW = "borrow"
    PURCHASE = "purchase"


class CheckoutRequest(BaseModel):
    """Books to hand to one member."""

    member_id: str = Field(..., min_length=1)
    book_ids: list[str] = Field(..., min_length=1)
    assignment_type: AssignmentType = AssignmentType.BORROW
    duration_days: int | None = Field(
        None, ge=1, le=365, description="Loan length; defaults to the account's loan period"
    )
    override_limits: bool = Field(
        default=False, description="Skip the borrowing limit and unpaid fee checks"
    )
    override_reason: str | None = Field(None, max_length=500)

    @field_validator("book_ids")
    @classmethod
    def validate_unique_books(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("Each book can only appear once per checkout")
        return v


class CheckoutResult(BaseModel):
    loans: list[Loan] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    books: list[Book] = Field(default_factory=list)
    override_audit_id: str | None = None


class CheckoutOrchestrator:
    """Lends or sells books for one staff context."""

    def __init__(
        self,
        session: Session,
        staff: StaffContext,
        policy: LibraryPolicy,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session = session
        self.staff = staff
        self.policy = policy
        self.clock = clock

        self.members = MemberRepository(session, staff.owner_id)
        self.books = BookRepository(session, staff.owner_id)
        self.loans = LoanRepository(session, staff.owner_id)
        self.transactions = TransactionRepository(session, staff.owner_id)
        self.limits = BorrowingLimitChecker(session, staff.owner_id)

    def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        """
        Check out every book of ``request`` or none of them.

        Raises:
            NotFoundError: Unknown member or book
            CirculationError: A borrowing rule rejected the request
            RepositoryException: The data store failed
        """
        now = self.clock()
        borrowing = request.assignment_type == AssignmentType.BORROW

        with atomic(self.session, "check out books"):
            if len(request.book_ids) > self.policy.max_books_per_checkout:
                raise TooManyBooksError(
                    f"At most {self.policy.max_books_per_checkout} books can be checked out at once"
                )

            member = self._get_active_member(request.member_id)

            result = CheckoutResult()
            if borrowing:
                if request.override_limits:
                    audit = record_override(
                        self.session,
                        self.staff,
                        OverrideActionEnum.BORROWING_LIMIT,
                        request.override_reason,
                        now,
                        member_id=member.id,
                    )
                    result.override_audit_id = audit.id
                else:
                    self._enforce_limits(member.id, len(request.book_ids))

            due_date = now + timedelta(days=request.duration_days or self.policy.default_loan_days)
            for book_id in request.book_ids:
                book = self._get_lendable_book(book_id)
                if borrowing:
                    loan, transaction = self._lend(member, book, now, due_date)
                    result.loans.append(Loan.model_validate(loan))
                else:
                    transaction = self._sell(member, book, now)
                result.transactions.append(Transaction.model_validate(transaction))
                result.books.append(Book.model_validate(book))

        logger.info(
            "%s %d book(s) to member %s",
            self.staff.borrowed_text if borrowing else "Sold",
            len(request.book_ids),
            request.member_id,
        )
        return result

    def _get_active_member(self, member_id: str) -> MemberDB:
        member = self.members.get_db_object(member_id)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")
        if not member.is_active:
            raise MemberNotActiveError(f"Member {member.name} is {member.status.value}")
        return member

    def _enforce_limits(self, member_id: str, requested: int) -> None:
        borrowing = self.limits.can_member_borrow(
            member_id, self.policy.member_borrowing_limit, requested
        )
        if not borrowing.allowed:
            logger.info(
                "Checkout blocked for %s: %d active of %d", member_id, borrowing.current, borrowing.limit
            )
            raise BorrowingLimitError(
                f"{borrowing.reason} ({borrowing.current} of {borrowing.limit})"
            )

        fees = self.limits.check_unpaid_late_fees(member_id, self.policy.unpaid_fee_threshold)
        if not fees.allowed:
            logger.info("Checkout blocked for %s: %s", member_id, fees.reason)
            raise UnpaidLateFeesError(fees.reason)

    def _get_lendable_book(self, book_id: str) -> BookDB:
        book = self.books.get_db_object(book_id)
        if book is None:
            raise NotFoundError(f"Book {book_id} not found")
        if book.status in UNLENDABLE_STATUSES:
            raise BookUnavailableError(
                f'"{book.title}" is marked {book.status.value} and cannot be checked out'
            )
        return book

    def _take_copy(self, book: BookDB, now: datetime) -> BookDB:
        updated = self.books.take_copy(book.id, now)
        if updated is None:
            raise StockUnavailableError(f'No copies of "{book.title}" are available')
        return updated

    def _lend(
        self, member: MemberDB, book: BookDB, now: datetime, due_date: datetime
    ) -> tuple[LoanDB, TransactionDB]:
        if self.loans.has_active_loan(member.id, book.id):
            raise AlreadyBorrowedError(f"Book already {self.staff.borrowed_text.lower()}")

        book = self._take_copy(book, now)
        loan = self.loans.add(
            LoanDB(
                book_id=book.id,
                member_id=member.id,
                checkout_date=now,
                due_date=due_date,
                status=LoanStatusEnum.BORROWED,
                renewal_count=0,
            )
        )
        transaction = self.transactions.record(
            customer_id=member.id,
            payment_method=self.staff.borrow_method,
            book=book,
            price=0.0,
            date=now,
            loan_id=loan.id,
        )
        return loan, transaction

    def _sell(self, member: MemberDB, book: BookDB, now: datetime) -> TransactionDB:
        book = self._take_copy(book, now)
        return self.transactions.record(
            customer_id=member.id,
            payment_method=PaymentMethodEnum.CASH,
            book=book,
            price=book.price,
            date=now,
        )
