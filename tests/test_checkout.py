"""
Tests for the checkout workflow.

1. Stock and status move in the same statement as the checkout
2. A multi-book request is all-or-nothing
3. Borrowing limits, unpaid fees and overrides
4. Purchases and bookstore wording
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from library_desk.circulation.checkout import (
    AssignmentType,
    CheckoutOrchestrator,
    CheckoutRequest,
)
from library_desk.circulation.errors import (
    AlreadyBorrowedError,
    BookUnavailableError,
    BorrowingLimitError,
    MemberNotActiveError,
    OverrideReasonRequiredError,
    StockUnavailableError,
    TooManyBooksError,
    UnpaidLateFeesError,
)
from library_desk.database.repository import NotFoundError
from library_desk.database.schema import (
    BookStatusEnum,
    LoanStatusEnum,
    MemberStatusEnum,
    OverrideActionEnum,
    OverrideAudit,
    PaymentMethodEnum,
)
from library_desk.database.schema import CheckoutTransaction as TransactionDB
from library_desk.database.schema import Loan as LoanDB
from library_desk.models.settings import LibraryPolicy

from .conftest import NOW, OTHER_OWNER_ID


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar()


@pytest.fixture
def orchestrator(test_db_session, staff, policy, clock):
    return CheckoutOrchestrator(test_db_session, staff, policy, clock)


def _borrow(member, *books, **kwargs) -> CheckoutRequest:
    return CheckoutRequest(member_id=member.id, book_ids=[b.id for b in books], **kwargs)


class TestBorrow:
    def test_last_copy_marks_book_checked_out(self, orchestrator, test_db_session, member, book):
        result = orchestrator.checkout(_borrow(member, book))

        test_db_session.refresh(book)
        assert book.stock == 0
        assert book.status == BookStatusEnum.CHECKED_OUT
        assert result.books[0].stock == 0
        assert result.books[0].status == BookStatusEnum.CHECKED_OUT

    def test_remaining_copies_keep_book_available(self, orchestrator, test_db_session, member, make_book):
        book = make_book(stock=3)

        orchestrator.checkout(_borrow(member, book))

        test_db_session.refresh(book)
        assert book.stock == 2
        assert book.status == BookStatusEnum.AVAILABLE

    def test_creates_loan_and_linked_transaction(self, orchestrator, member, book, policy):
        result = orchestrator.checkout(_borrow(member, book))

        assert len(result.loans) == 1
        loan = result.loans[0]
        assert loan.member_id == member.id
        assert loan.book_id == book.id
        assert loan.status == LoanStatusEnum.BORROWED
        assert loan.renewal_count == 0
        assert loan.checkout_date == NOW
        assert loan.due_date == NOW + timedelta(days=policy.default_loan_days)

        transaction = result.transactions[0]
        assert transaction.loan_id == loan.id
        assert transaction.customer_id == member.id
        assert transaction.payment_method == PaymentMethodEnum.BORROW
        assert transaction.total_amount == 0.0
        assert transaction.items[0].book_id == book.id
        assert transaction.items[0].price == 0.0

    def test_custom_duration(self, orchestrator, member, book):
        result = orchestrator.checkout(_borrow(member, book, duration_days=7))

        assert result.loans[0].due_date == NOW + timedelta(days=7)

    def test_several_books_in_one_request(self, orchestrator, test_db_session, member, make_book):
        books = [make_book(title=f"Book {i}", stock=2) for i in range(3)]

        result = orchestrator.checkout(_borrow(member, *books))

        assert len(result.loans) == 3
        assert len({t.id for t in result.transactions}) == 3
        assert _count(test_db_session, LoanDB) == 3

    def test_bookstore_records_rentals(self, test_db_session, bookstore_staff, policy, clock, member, book):
        orchestrator = CheckoutOrchestrator(test_db_session, bookstore_staff, policy, clock)

        result = orchestrator.checkout(_borrow(member, book))

        assert result.transactions[0].payment_method == PaymentMethodEnum.RENT


class TestAllOrNothing:
    def test_failure_on_second_book_rolls_back_first(
        self, orchestrator, test_db_session, member, make_book
    ):
        first = make_book(title="On the shelf", stock=1)
        second = make_book(title="Gone", stock=0)

        with pytest.raises(StockUnavailableError):
            orchestrator.checkout(_borrow(member, first, second))

        test_db_session.refresh(first)
        assert first.stock == 1
        assert first.status == BookStatusEnum.AVAILABLE
        assert _count(test_db_session, LoanDB) == 0
        assert _count(test_db_session, TransactionDB) == 0

    def test_stale_snapshot_cannot_take_last_copy(
        self, test_db_session, session_factory, staff, policy, clock, make_member, book
    ):
        first = make_member(name="First Member")
        second = make_member(name="Second Member")
        # This session still sees one copy on the shelf
        assert book.stock == 1

        other_desk = session_factory()
        try:
            CheckoutOrchestrator(other_desk, staff, policy, clock).checkout(_borrow(second, book))
        finally:
            other_desk.close()

        with pytest.raises(StockUnavailableError) as exc_info:
            CheckoutOrchestrator(test_db_session, staff, policy, clock).checkout(
                _borrow(first, book)
            )

        assert exc_info.value.reason == "out_of_stock"
        test_db_session.refresh(book)
        assert book.stock == 0
        loans = test_db_session.execute(select(LoanDB)).scalars().all()
        assert [loan.member_id for loan in loans] == [second.id]


class TestBorrowingRules:
    def test_already_borrowed(self, orchestrator, test_db_session, member, make_book, make_loan):
        book = make_book(stock=2)
        make_loan(member, book)

        with pytest.raises(AlreadyBorrowedError, match="Book already borrowed"):
            orchestrator.checkout(_borrow(member, book))

        test_db_session.refresh(book)
        assert book.stock == 2

    def test_already_rented_wording(
        self, test_db_session, bookstore_staff, policy, clock, member, make_book, make_loan
    ):
        book = make_book(stock=2)
        make_loan(member, book)
        orchestrator = CheckoutOrchestrator(test_db_session, bookstore_staff, policy, clock)

        with pytest.raises(AlreadyBorrowedError, match="Book already rented"):
            orchestrator.checkout(_borrow(member, book))

    def test_borrowing_limit(self, test_db_session, staff, clock, member, make_book, make_loan):
        policy = LibraryPolicy(member_borrowing_limit=2)
        for i in range(2):
            make_loan(member, make_book(title=f"Held {i}", stock=0))
        book = make_book(title="Wanted")

        with pytest.raises(BorrowingLimitError) as exc_info:
            CheckoutOrchestrator(test_db_session, staff, policy, clock).checkout(
                _borrow(member, book)
            )

        assert str(exc_info.value) == "Member has reached borrowing limit (2 of 2)"
        test_db_session.refresh(book)
        assert book.stock == 1

    def test_limit_counts_every_requested_book(self, test_db_session, staff, clock, member, make_book):
        policy = LibraryPolicy(member_borrowing_limit=2)
        books = [make_book(title=f"Book {i}") for i in range(3)]

        with pytest.raises(BorrowingLimitError):
            CheckoutOrchestrator(test_db_session, staff, policy, clock).checkout(
                _borrow(member, *books)
            )

    def test_unpaid_late_fees(self, orchestrator, member, make_book, make_loan):
        make_loan(
            member,
            make_book(title="Late one"),
            status=LoanStatusEnum.RETURNED,
            return_date=NOW - timedelta(days=2),
            late_fee_amount=12.0,
        )

        with pytest.raises(UnpaidLateFeesError, match=r"\$12\.00"):
            orchestrator.checkout(_borrow(member, make_book(title="Next")))

    def test_override_bypasses_limits_and_is_audited(
        self, test_db_session, staff, clock, member, make_book, make_loan
    ):
        policy = LibraryPolicy(member_borrowing_limit=1)
        make_loan(member, make_book(title="Held", stock=0))
        book = make_book(title="Wanted")

        result = CheckoutOrchestrator(test_db_session, staff, policy, clock).checkout(
            _borrow(member, book, override_limits=True, override_reason="Class project")
        )

        assert len(result.loans) == 1
        audit = test_db_session.get(OverrideAudit, result.override_audit_id)
        assert audit.action == OverrideActionEnum.BORROWING_LIMIT
        assert audit.actor == staff.actor
        assert audit.member_id == member.id
        assert audit.reason == "Class project"
        assert audit.created_at == NOW

    def test_override_requires_reason(self, orchestrator, test_db_session, member, book):
        with pytest.raises(OverrideReasonRequiredError):
            orchestrator.checkout(_borrow(member, book, override_limits=True, override_reason="  "))

        assert _count(test_db_session, LoanDB) == 0
        assert _count(test_db_session, OverrideAudit) == 0

    def test_inactive_member(self, orchestrator, make_member, book):
        suspended = make_member(status=MemberStatusEnum.SUSPENDED)

        with pytest.raises(MemberNotActiveError):
            orchestrator.checkout(_borrow(suspended, book))

    def test_unknown_member(self, orchestrator, book):
        with pytest.raises(NotFoundError):
            orchestrator.checkout(CheckoutRequest(member_id="member_missing", book_ids=[book.id]))

    def test_unknown_book(self, orchestrator, member):
        with pytest.raises(NotFoundError):
            orchestrator.checkout(CheckoutRequest(member_id=member.id, book_ids=["book_missing"]))

    def test_other_accounts_book_is_not_found(self, orchestrator, member, make_book):
        foreign = make_book(owner_id=OTHER_OWNER_ID)

        with pytest.raises(NotFoundError):
            orchestrator.checkout(_borrow(member, foreign))

    def test_book_needing_repair(self, orchestrator, member, make_book):
        book = make_book(status=BookStatusEnum.NEEDS_REPAIR)

        with pytest.raises(BookUnavailableError):
            orchestrator.checkout(_borrow(member, book))

    def test_too_many_books(self, test_db_session, staff, clock, member, make_book):
        policy = LibraryPolicy(max_books_per_checkout=2)
        books = [make_book(title=f"Book {i}") for i in range(3)]

        with pytest.raises(TooManyBooksError):
            CheckoutOrchestrator(test_db_session, staff, policy, clock).checkout(
                _borrow(member, *books)
            )


class TestPurchase:
    def test_sale_records_cash_transaction(self, orchestrator, test_db_session, member, make_book):
        book = make_book(stock=2, price=18.99)

        result = orchestrator.checkout(_borrow(member, book, assignment_type=AssignmentType.PURCHASE))

        assert result.loans == []
        transaction = result.transactions[0]
        assert transaction.payment_method == PaymentMethodEnum.CASH
        assert transaction.total_amount == 18.99
        assert transaction.items[0].price == 18.99
        assert transaction.loan_id is None
        test_db_session.refresh(book)
        assert book.stock == 1

    def test_sale_ignores_borrowing_limit(self, test_db_session, staff, clock, member, make_book, make_loan):
        policy = LibraryPolicy(member_borrowing_limit=1)
        make_loan(member, make_book(title="Held", stock=0))

        result = CheckoutOrchestrator(test_db_session, staff, policy, clock).checkout(
            _borrow(member, make_book(title="For sale"), assignment_type=AssignmentType.PURCHASE)
        )

        assert len(result.transactions) == 1


class TestCheckoutRequest:
    def test_duplicate_book_ids_rejected(self):
        with pytest.raises(ValidationError, match="only appear once"):
            CheckoutRequest(member_id="member_1", book_ids=["book_1", "book_1"])

    def test_empty_book_list_rejected(self):
        with pytest.raises(ValidationError):
            CheckoutRequest(member_id="member_1", book_ids=[])
