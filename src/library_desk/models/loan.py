"""
Loan models for the Library Desk MCP Server.

A loan is created by checkout, moved forward by renewal and closed by return.
``LoanView`` adds the values staff look at but that are never stored: days
until due, whether the loan is overdue, and the fee accrued so far.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..database.schema import LoanStatusEnum as LoanStatus
from ..database.schema import ReturnConditionEnum as ReturnCondition
from .settings import LibraryPolicy


class Loan(BaseModel):
    """A copy checked out to a member."""

    id: str = Field(..., description="Unique identifier for the loan", examples=["loan_3f9a0c1b2d4e5f60"])
    owner_id: str
    book_id: str = Field(..., description="Borrowed book")
    member_id: str = Field(..., description="Borrowing member")

    checkout_date: datetime
    due_date: datetime
    return_date: datetime | None = None

    status: LoanStatus = Field(default=LoanStatus.BORROWED)
    renewal_count: int = Field(default=0, ge=0)

    return_condition: ReturnCondition | None = None
    condition_notes: str | None = None
    flagged_for_review: bool = False

    late_fee_amount: float = Field(default=0.0, ge=0.0)
    fee_paid: bool = False
    fee_waived: bool = False
    notes: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_fee_flags(self) -> "Loan":
        if self.fee_paid and self.fee_waived:
            raise ValueError("A late fee cannot be both paid and waived")
        if self.status == LoanStatus.RETURNED and self.return_date is None:
            raise ValueError("Returned loans must have a return date")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.BORROWED

    @property
    def has_outstanding_fee(self) -> bool:
        return self.late_fee_amount > 0 and not (self.fee_paid or self.fee_waived)


class LoanView(Loan):
    """Loan with read-time derived fields."""

    book_title: str | None = None
    member_name: str | None = None
    days_until_due: int = 0
    is_overdue: bool = False
    accrued_fee: float = 0.0

    @classmethod
    def build(cls, db_loan, policy: LibraryPolicy, now: datetime) -> "LoanView":
        """Derive the view of ``db_loan`` at ``now`` under ``policy``."""
        # Deferred: circulation imports this module
        from ..circulation.late_fees import calculate_late_fee, days_until_due, is_overdue

        view = cls.model_validate(db_loan, from_attributes=True)
        if db_loan.book is not None:
            view.book_title = db_loan.book.title
        if db_loan.member is not None:
            view.member_name = db_loan.member.name

        if view.is_active:
            view.days_until_due = days_until_due(view.due_date, now)
            view.is_overdue = is_overdue(view.due_date, now)
            view.accrued_fee = calculate_late_fee(view.due_date, now, policy)
        else:
            view.accrued_fee = view.late_fee_amount
        return view
