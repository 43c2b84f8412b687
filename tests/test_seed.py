"""Tests for sample data generation."""

from sqlalchemy import func, select

from library_desk.database.schema import Book as BookDB
from library_desk.database.schema import CheckoutTransaction as TransactionDB
from library_desk.database.schema import Loan as LoanDB
from library_desk.database.schema import LoanStatusEnum, PaymentMethodEnum
from library_desk.database.seed import seed_sample_data


def test_seed_replays_circulation(test_db_session, staff):
    counts = seed_sample_data(test_db_session, staff, num_books=12, num_members=5, num_loans=20)

    assert counts["books"] == 12
    assert counts["members"] == 5
    assert counts["loans"] + counts["rejected"] >= 20

    loans = test_db_session.execute(select(LoanDB)).scalars().all()
    assert len(loans) == counts["loans"]
    assert sum(1 for loan in loans if loan.status == LoanStatusEnum.RETURNED) == counts["returned"]

    negative = test_db_session.execute(
        select(func.count()).select_from(BookDB).where(BookDB.stock < 0)
    ).scalar()
    assert negative == 0

    borrow_entries = test_db_session.execute(
        select(func.count())
        .select_from(TransactionDB)
        .where(TransactionDB.payment_method == PaymentMethodEnum.BORROW)
    ).scalar()
    assert borrow_entries == counts["loans"]


def test_seed_rows_belong_to_staff_account(test_db_session, staff):
    seed_sample_data(test_db_session, staff, num_books=3, num_members=2, num_loans=2)

    owners = test_db_session.execute(select(BookDB.owner_id).distinct()).scalars().all()
    assert owners == [staff.owner_id]
