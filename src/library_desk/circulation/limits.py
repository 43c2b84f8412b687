"""
Borrowing limit checks.

``BorrowingLimitChecker`` answers two questions about a member:

1. Are they below the active-loan cap?
2. Are their unpaid late fees at or below the blocking threshold?

Checkout runs both inside its own transaction before writing anything; the
``check_borrowing_eligibility`` tool runs them as an advisory report.
Data-store failures are raised, never reported as "not allowed".
"""

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database.loan_repository import LoanRepository
from ..models.settings import LibraryPolicy
from .late_fees import format_late_fee

LIMIT_REACHED_REASON = "Member has reached borrowing limit"


class LimitCheck(BaseModel):
    """Outcome of one borrowing check."""

    allowed: bool
    reason: str | None = None
    current: int | None = None
    limit: int | None = None
    total_unpaid: float | None = None


class EligibilityReport(BaseModel):
    """Both checks together, as shown to staff before a checkout."""

    member_id: str
    allowed: bool
    borrowing: LimitCheck
    late_fees: LimitCheck

    @property
    def reasons(self) -> list[str]:
        return [check.reason for check in (self.borrowing, self.late_fees) if check.reason]


class BorrowingLimitChecker:
    """Evaluates borrowing rules for members of one account."""

    def __init__(self, session: Session, owner_id: str):
        self.loans = LoanRepository(session, owner_id)

    def can_member_borrow(self, member_id: str, limit: int, requested: int = 1) -> LimitCheck:
        """
        Check the active-loan cap.

        Args:
            member_id: Member to check
            limit: Maximum number of simultaneous loans
            requested: Loans about to be added by the caller

        Returns:
            LimitCheck with the current count and the limit
        """
        current = self.loans.count_active_for_member(member_id)
        allowed = current + requested <= limit
        return LimitCheck(
            allowed=allowed,
            current=current,
            limit=limit,
            reason=None if allowed else LIMIT_REACHED_REASON,
        )

    def check_unpaid_late_fees(self, member_id: str, threshold: float) -> LimitCheck:
        """Block when unpaid, unwaived late fees exceed ``threshold``."""
        total = self.loans.unpaid_fee_total(member_id)
        if total > threshold:
            return LimitCheck(
                allowed=False,
                total_unpaid=total,
                reason=f"Member has unpaid late fees: {format_late_fee(total)}",
            )
        return LimitCheck(allowed=True, total_unpaid=total)

    def check_all(self, member_id: str, policy: LibraryPolicy, requested: int = 1) -> EligibilityReport:
        borrowing = self.can_member_borrow(member_id, policy.member_borrowing_limit, requested)
        late_fees = self.check_unpaid_late_fees(member_id, policy.unpaid_fee_threshold)
        return EligibilityReport(
            member_id=member_id,
            allowed=borrowing.allowed and late_fees.allowed,
            borrowing=borrowing,
            late_fees=late_fees,
        )
