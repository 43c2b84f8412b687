"""
Loan repository implementation for the Library Desk MCP Server.

Supports both sides of circulation:

1. **Workflow queries**: active-loan counts, duplicate-loan checks and unpaid
   fee totals used by checkout, plus the optimistic renewal update
2. **Resource queries**: active, overdue and due-soon lists and member history

Write helpers only flush; the calling workflow commits.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import joinedload

from ..database.schema import Loan as LoanDB
from ..database.schema import LoanStatusEnum
from ..models.loan import Loan as LoanModel
from ..models.loan import LoanView
from ..models.settings import LibraryPolicy
from .repository import BaseRepository, PaginatedResponse, PaginationParams, paginate
from .session import mcp_safe_query

DUE_SOON_DAYS = 3


class LoanRepository(BaseRepository[LoanDB, BaseModel, LoanModel]):
    """Repository for loans of one account."""

    @property
    def model_class(self):
        return LoanDB

    @property
    def response_schema(self):
        return LoanModel

    def _active_query(self):
        return (
            self._scoped_query()
            .where(LoanDB.status == LoanStatusEnum.BORROWED)
            .options(joinedload(LoanDB.book), joinedload(LoanDB.member))
        )

    def count_active_for_member(self, member_id: str) -> int:
        """Number of loans the member currently holds."""
        query = select(func.count(LoanDB.id)).where(
            LoanDB.owner_id == self.owner_id,
            LoanDB.member_id == member_id,
            LoanDB.status == LoanStatusEnum.BORROWED,
        )
        return (
            mcp_safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                "Failed to count active loans",
            )
            or 0
        )

    def has_active_loan(self, member_id: str, book_id: str) -> bool:
        """Whether the member already holds a copy of this book."""
        query = select(LoanDB.id).where(
            LoanDB.owner_id == self.owner_id,
            LoanDB.member_id == member_id,
            LoanDB.book_id == book_id,
            LoanDB.status == LoanStatusEnum.BORROWED,
        )
        found = mcp_safe_query(
            self.session,
            lambda s: s.execute(query.limit(1)).scalar_one_or_none(),
            "Failed to check for an existing loan",
        )
        return found is not None

    def unpaid_fee_total(self, member_id: str) -> float:
        """Sum of assessed late fees that are neither paid nor waived."""
        query = select(func.coalesce(func.sum(LoanDB.late_fee_amount), 0.0)).where(
            LoanDB.owner_id == self.owner_id,
            LoanDB.member_id == member_id,
            LoanDB.fee_paid.is_(False),
            LoanDB.fee_waived.is_(False),
        )
        total = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar(),
            "Failed to total unpaid late fees",
        )
        return round(float(total or 0.0), 2)

    def add(self, loan: LoanDB) -> LoanDB:
        """Stage a new loan in the current transaction."""
        loan.owner_id = self.owner_id
        self.session.add(loan)
        self.session.flush()
        return loan

    def renew_if_unchanged(
        self,
        loan_id: str,
        seen_renewal_count: int,
        new_due_date: datetime,
        now: datetime,
    ) -> LoanDB | None:
        """
        Move the due date and bump the renewal count, unless someone else did first.

        The update only matches while ``renewal_count`` still equals the value
        the caller read.

        Returns:
            The updated loan, or None when the row changed underneath
        """
        stmt = (
            update(LoanDB)
            .where(
                LoanDB.id == loan_id,
                LoanDB.owner_id == self.owner_id,
                LoanDB.status == LoanStatusEnum.BORROWED,
                LoanDB.renewal_count == seen_renewal_count,
            )
            .values(
                due_date=new_due_date,
                renewal_count=LoanDB.renewal_count + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = mcp_safe_query(self.session, lambda s: s.execute(stmt), "Failed to renew loan")
        if result.rowcount != 1:
            return None

        query = (
            self._scoped_query()
            .where(LoanDB.id == loan_id)
            .execution_options(populate_existing=True)
        )
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one(),
            "Failed to reload loan",
        )

    def get_active(
        self,
        policy: LibraryPolicy,
        now: datetime,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanView]:
        """Loans currently out, soonest due first."""
        query = self._active_query().order_by(LoanDB.due_date)
        return paginate(self.session, query, pagination, lambda row: LoanView.build(row, policy, now))

    def get_overdue(
        self,
        policy: LibraryPolicy,
        now: datetime,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanView]:
        """Loans still out past their due date."""
        query = self._active_query().where(LoanDB.due_date < now).order_by(LoanDB.due_date)
        return paginate(self.session, query, pagination, lambda row: LoanView.build(row, policy, now))

    def get_due_soon(
        self,
        policy: LibraryPolicy,
        now: datetime,
        days: int = DUE_SOON_DAYS,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanView]:
        """Loans not yet overdue but due within ``days`` days."""
        query = (
            self._active_query()
            .where(LoanDB.due_date >= now, LoanDB.due_date <= now + timedelta(days=days))
            .order_by(LoanDB.due_date)
        )
        return paginate(self.session, query, pagination, lambda row: LoanView.build(row, policy, now))

    def get_view(self, loan_id: str, policy: LibraryPolicy, now: datetime) -> LoanView | None:
        """One loan with its derived fields, or None."""
        query = (
            self._scoped_query()
            .where(LoanDB.id == loan_id)
            .options(joinedload(LoanDB.book), joinedload(LoanDB.member))
        )
        loan = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get loan",
        )
        if loan is None:
            return None
        return LoanView.build(loan, policy, now)

    def get_member_history(self, member_id: str) -> list[LoanDB]:
        """Every loan of a member, newest first."""
        query = (
            self._scoped_query()
            .where(LoanDB.member_id == member_id)
            .options(joinedload(LoanDB.book))
            .order_by(desc(LoanDB.checkout_date))
        )
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to get member loan history",
        )
        return list(results)
