"""
Renewal workflow.

A renewal pushes the due date of an active loan back and counts the
renewal. Once ``max_renewals_per_loan`` is reached only a staff override,
given with a reason and recorded in the audit trail, can renew again.

The update is conditional on the renewal count read at the start, so two
desks renewing the same loan at once cannot both succeed.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database.loan_repository import LoanRepository
from ..database.repository import NotFoundError, atomic
from ..database.schema import LoanStatusEnum, OverrideActionEnum
from ..identity import StaffContext
from ..models.loan import Loan
from ..models.settings import LibraryPolicy
from .audit import record_override
from .errors import ConcurrentUpdateError, LoanNotActiveError, RenewalLimitError

logger = logging.getLogger(__name__)


class RenewalRequest(BaseModel):
    loan_id: str = Field(..., min_length=1)
    extension_days: int | None = Field(
        None, ge=1, le=365, description="Days to add; defaults to the account's renewal period"
    )
    override: bool = Field(default=False, description="Renew past the renewal limit")
    override_reason: str | None = Field(None, max_length=500)


class RenewalHandler:
    """Renews loans for one staff context."""

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
        self.loans = LoanRepository(session, staff.owner_id)

    def renew(self, request: RenewalRequest) -> Loan:
        """
        Extend a loan's due date by ``extension_days``.

        Raises:
            NotFoundError: Unknown loan
            LoanNotActiveError: The loan was already returned
            RenewalLimitError: The limit is reached and no override was given
            OverrideReasonRequiredError: Override without a reason
            ConcurrentUpdateError: The loan changed while renewing
        """
        now = self.clock()
        limit = self.policy.max_renewals_per_loan

        with atomic(self.session, "renew loan"):
            loan = self.loans.get_db_object(request.loan_id)
            if loan is None:
                raise NotFoundError(f"Loan {request.loan_id} not found")
            if loan.status != LoanStatusEnum.BORROWED:
                raise LoanNotActiveError(f"Loan {loan.id} has already been returned")

            seen_count = loan.renewal_count
            if request.override:
                record_override(
                    self.session,
                    self.staff,
                    OverrideActionEnum.RENEWAL_LIMIT,
                    request.override_reason,
                    now,
                    member_id=loan.member_id,
                    loan_id=loan.id,
                )
            elif seen_count >= limit:
                logger.info("Renewal refused for %s: %d of %d used", loan.id, seen_count, limit)
                raise RenewalLimitError(f"Maximum renewals reached ({limit})")

            extension = timedelta(days=request.extension_days or self.policy.default_renewal_days)
            renewed = self.loans.renew_if_unchanged(
                loan.id, seen_count, loan.due_date + extension, now
            )
            if renewed is None:
                raise ConcurrentUpdateError(
                    f"Loan {loan.id} was changed by another request; reload and try again"
                )
            result = Loan.model_validate(renewed)

        logger.info(
            "Renewed loan %s until %s (renewal %d)",
            result.id,
            result.due_date.isoformat(),
            result.renewal_count,
        )
        return result
