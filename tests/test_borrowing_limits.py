"""Tests for BorrowingLimitChecker."""

from datetime import timedelta

from library_desk.circulation.limits import LIMIT_REACHED_REASON, BorrowingLimitChecker
from library_desk.database.schema import LoanStatusEnum
from library_desk.models.settings import LibraryPolicy

from .conftest import NOW, OTHER_OWNER_ID, OWNER_ID


def _returned(make_loan, member, book, fee=0.0, paid=False, waived=False):
    return make_loan(
        member,
        book,
        status=LoanStatusEnum.RETURNED,
        return_date=NOW - timedelta(days=1),
        late_fee_amount=fee,
        fee_paid=paid,
        fee_waived=waived,
    )


class TestCanMemberBorrow:
    def test_member_without_loans(self, test_db_session, member):
        check = BorrowingLimitChecker(test_db_session, OWNER_ID).can_member_borrow(member.id, 5)

        assert check.allowed
        assert check.current == 0
        assert check.limit == 5
        assert check.reason is None

    def test_member_at_limit(self, test_db_session, member, make_book, make_loan):
        for i in range(5):
            make_loan(member, make_book(title=f"Book {i}", stock=0))

        check = BorrowingLimitChecker(test_db_session, OWNER_ID).can_member_borrow(member.id, 5)

        assert not check.allowed
        assert check.current == 5
        assert check.reason == LIMIT_REACHED_REASON

    def test_requested_books_count_towards_limit(self, test_db_session, member, make_book, make_loan):
        for i in range(4):
            make_loan(member, make_book(title=f"Book {i}", stock=0))
        checker = BorrowingLimitChecker(test_db_session, OWNER_ID)

        assert checker.can_member_borrow(member.id, 5, requested=1).allowed
        assert not checker.can_member_borrow(member.id, 5, requested=2).allowed

    def test_returned_loans_do_not_count(self, test_db_session, member, book, make_loan):
        for _ in range(3):
            _returned(make_loan, member, book)

        check = BorrowingLimitChecker(test_db_session, OWNER_ID).can_member_borrow(member.id, 1)

        assert check.allowed
        assert check.current == 0

    def test_zero_limit_blocks_everyone(self, test_db_session, member):
        check = BorrowingLimitChecker(test_db_session, OWNER_ID).can_member_borrow(member.id, 0)

        assert not check.allowed

    def test_other_accounts_loans_are_ignored(self, test_db_session, member, book, make_loan):
        make_loan(member, book, owner_id=OTHER_OWNER_ID)

        check = BorrowingLimitChecker(test_db_session, OWNER_ID).can_member_borrow(member.id, 1)

        assert check.allowed


class TestUnpaidLateFees:
    def test_no_fees(self, test_db_session, member):
        check = BorrowingLimitChecker(test_db_session, OWNER_ID).check_unpaid_late_fees(
            member.id, 10.0
        )

        assert check.allowed
        assert check.total_unpaid == 0.0

    def test_fees_above_threshold_block(self, test_db_session, member, book, make_loan):
        _returned(make_loan, member, book, fee=6.0)
        _returned(make_loan, member, book, fee=5.0)

        check = BorrowingLimitChecker(test_db_session, OWNER_ID).check_unpaid_late_fees(
            member.id, 10.0
        )

        assert not check.allowed
        assert check.total_unpaid == 11.0
        assert check.reason == "Member has unpaid late fees: $11.00"

    def test_fees_at_threshold_are_allowed(self, test_db_session, member, book, make_loan):
        _returned(make_loan, member, book, fee=10.0)

        check = BorrowingLimitChecker(test_db_session, OWNER_ID).check_unpaid_late_fees(
            member.id, 10.0
        )

        assert check.allowed

    def test_paid_and_waived_fees_are_excluded(self, test_db_session, member, book, make_loan):
        _returned(make_loan, member, book, fee=20.0, paid=True)
        _returned(make_loan, member, book, fee=20.0, waived=True)
        _returned(make_loan, member, book, fee=2.5)

        check = BorrowingLimitChecker(test_db_session, OWNER_ID).check_unpaid_late_fees(
            member.id, 10.0
        )

        assert check.allowed
        assert check.total_unpaid == 2.5


class TestCheckAll:
    def test_report_combines_both_checks(self, test_db_session, member, make_book, make_loan):
        for i in range(2):
            make_loan(member, make_book(title=f"Book {i}", stock=0))
        _returned(make_loan, member, make_book(title="Late"), fee=15.0)
        policy = LibraryPolicy(member_borrowing_limit=2)

        report = BorrowingLimitChecker(test_db_session, OWNER_ID).check_all(member.id, policy)

        assert not report.allowed
        assert not report.borrowing.allowed
        assert not report.late_fees.allowed
        assert report.reasons == [
            LIMIT_REACHED_REASON,
            "Member has unpaid late fees: $15.00",
        ]

    def test_allowed_report(self, test_db_session, member):
        report = BorrowingLimitChecker(test_db_session, OWNER_ID).check_all(
            member.id, LibraryPolicy()
        )

        assert report.allowed
        assert report.reasons == []
