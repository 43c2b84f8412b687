"""
Circulation tools for the Library Desk MCP Server.

Write tools:
1. checkout_books: lend or sell one or more books to a member
2. return_book: close a loan, assess the late fee, restock the copy
3. renew_loan: extend a due date, with audited override past the limit

Advisory tools (no writes):
4. check_borrowing_eligibility: borrowing limit and unpaid fee report
5. preview_late_fee: fee a return right now would assess

Each call opens one session. Workflows commit or roll back as a unit inside
their orchestrator; the handler only translates results and errors into MCP
responses. Successful writes clear the resource cache.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..circulation.checkout import AssignmentType, CheckoutOrchestrator, CheckoutRequest
from ..circulation.late_fees import format_late_fee
from ..circulation.limits import BorrowingLimitChecker
from ..circulation.renewals import RenewalHandler, RenewalRequest
from ..circulation.returns import ReturnOrchestrator, ReturnRequest
from ..database.member_repository import MemberRepository
from ..database.repository import NotFoundError
from ..database.session import session_scope
from ..database.settings_repository import SettingsRepository
from ..identity import get_staff_context
from ..observability import trace_tool
from ..resources.cache import resource_cache
from .responses import failure_response, invalid_parameters, success_response

logger = logging.getLogger(__name__)


# =============================================================================
# CHECKOUT
# =============================================================================


@trace_tool("checkout_books")
async def checkout_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the checkout_books tool.

    All books of the request are checked out together or not at all.

    Args:
        arguments: Raw arguments from the MCP tools/call request

    Returns:
        Loans, transactions and updated books, or an error with a reason code
    """
    try:
        request = CheckoutRequest.model_validate(arguments)
    except ValidationError as e:
        return invalid_parameters("checkout", e)

    staff = get_staff_context()
    try:
        with session_scope() as session:
            policy = SettingsRepository(session, staff.owner_id).get_policy()
            result = CheckoutOrchestrator(session, staff, policy).checkout(request)
    except Exception as e:
        return failure_response(e, "Checkout")

    resource_cache.invalidate()

    titles = ", ".join(f"'{book.title}'" for book in result.books)
    if request.assignment_type == AssignmentType.BORROW:
        due = result.loans[0].due_date
        message = (
            f"{staff.borrowed_text} {titles} to member {request.member_id}. "
            f"Due date: {due.strftime('%B %d, %Y')}"
        )
    else:
        total = sum(t.total_amount for t in result.transactions)
        message = f"Sold {titles} to member {request.member_id} for {format_late_fee(total)}"
    if result.override_audit_id:
        message += " (borrowing limits overridden)"

    return success_response(message, result.model_dump(mode="json"))


# =============================================================================
# RETURN
# =============================================================================


@trace_tool("return_book")
async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the return_book tool."""
    try:
        request = ReturnRequest.model_validate(arguments)
    except ValidationError as e:
        return invalid_parameters("return", e)

    staff = get_staff_context()
    try:
        with session_scope() as session:
            policy = SettingsRepository(session, staff.owner_id).get_policy()
            result = ReturnOrchestrator(session, staff, policy).return_book(request)
    except Exception as e:
        return failure_response(e, "Return")

    resource_cache.invalidate()

    message = f"Returned '{result.book.title}' in {result.loan.return_condition.value} condition."
    if result.late_fee > 0:
        disposition = "paid" if result.loan.fee_paid else "waived" if result.loan.fee_waived else "unpaid"
        message += f" Late fee: {format_late_fee(result.late_fee)} ({disposition})."
    if result.flagged_for_review:
        message += " Flagged for condition review."

    return success_response(message, result.model_dump(mode="json"))


# =============================================================================
# RENEWAL
# =============================================================================


@trace_tool("renew_loan")
async def renew_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the renew_loan tool."""
    try:
        request = RenewalRequest.model_validate(arguments)
    except ValidationError as e:
        return invalid_parameters("renewal", e)

    staff = get_staff_context()
    try:
        with session_scope() as session:
            policy = SettingsRepository(session, staff.owner_id).get_policy()
            loan = RenewalHandler(session, staff, policy).renew(request)
    except Exception as e:
        return failure_response(e, "Renewal")

    resource_cache.invalidate()

    message = (
        f"Renewed loan {loan.id}. New due date: {loan.due_date.strftime('%B %d, %Y')} "
        f"(renewal {loan.renewal_count} of {policy.max_renewals_per_loan})"
    )
    return success_response(message, {"loan": loan.model_dump(mode="json")})


# =============================================================================
# ADVISORY
# =============================================================================


class EligibilityInput(BaseModel):
    """Input schema for the check_borrowing_eligibility tool."""

    member_id: str = Field(..., min_length=1, description="Member about to borrow")
    requested: int = Field(default=1, ge=1, le=50, description="Books about to be borrowed")


@trace_tool("check_borrowing_eligibility")
async def check_borrowing_eligibility_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the check_borrowing_eligibility tool.

    Advisory only: checkout repeats both checks inside its own transaction.
    """
    try:
        params = EligibilityInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_parameters("eligibility", e)

    staff = get_staff_context()
    try:
        with session_scope() as session:
            member = MemberRepository(session, staff.owner_id).get_by_id(params.member_id)
            if member is None:
                raise NotFoundError(f"Member {params.member_id} not found")
            policy = SettingsRepository(session, staff.owner_id).get_policy()
            report = BorrowingLimitChecker(session, staff.owner_id).check_all(
                member.id, policy, params.requested
            )
    except Exception as e:
        return failure_response(e, "Eligibility check")

    if not member.is_active:
        message = f"{member.name} cannot borrow: membership is {member.status.value}"
        allowed = False
    elif report.allowed:
        message = (
            f"{member.name} can borrow {params.requested} book(s) "
            f"({report.borrowing.current} of {report.borrowing.limit} loans in use)"
        )
        allowed = True
    else:
        message = f"{member.name} cannot borrow: " + "; ".join(report.reasons)
        allowed = False

    data = report.model_dump(mode="json")
    data["allowed"] = allowed
    data["member_status"] = member.status.value
    return success_response(message, data)


class PreviewLateFeeInput(BaseModel):
    """Input schema for the preview_late_fee tool."""

    loan_id: str = Field(..., min_length=1, description="Active loan to price")


@trace_tool("preview_late_fee")
async def preview_late_fee_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the preview_late_fee tool."""
    try:
        params = PreviewLateFeeInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_parameters("late fee preview", e)

    staff = get_staff_context()
    try:
        with session_scope() as session:
            policy = SettingsRepository(session, staff.owner_id).get_policy()
            preview = ReturnOrchestrator(session, staff, policy).preview_fee(params.loan_id)
    except Exception as e:
        return failure_response(e, "Late fee preview")

    if preview.late_fee > 0:
        message = (
            f"Returning loan {preview.loan_id} now incurs a late fee of {preview.formatted} "
            f"({preview.days_overdue} day(s) overdue). It must be paid or waived at return."
        )
    else:
        message = f"Loan {preview.loan_id} has no late fee."
    return success_response(message, preview.model_dump(mode="json"))


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

checkout_books = {
    "name": "checkout_books",
    "description": (
        "Lend (borrow/rent) or sell one or more books to a member in a single transaction. "
        "Enforces the borrowing limit and unpaid late fee threshold unless overridden with a reason."
    ),
    "inputSchema": CheckoutRequest.model_json_schema(),
    "handler": checkout_books_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a borrowed book: records its condition, assesses the late fee "
        "(which must be marked paid or waived), and puts the copy back on the shelf."
    ),
    "inputSchema": ReturnRequest.model_json_schema(),
    "handler": return_book_handler,
}

renew_loan = {
    "name": "renew_loan",
    "description": (
        "Extend the due date of an active loan. Past the renewal limit a staff override "
        "with a reason is required and recorded."
    ),
    "inputSchema": RenewalRequest.model_json_schema(),
    "handler": renew_loan_handler,
}

check_borrowing_eligibility = {
    "name": "check_borrowing_eligibility",
    "description": "Report whether a member may borrow more books, and why not if blocked.",
    "inputSchema": EligibilityInput.model_json_schema(),
    "handler": check_borrowing_eligibility_handler,
}

preview_late_fee = {
    "name": "preview_late_fee",
    "description": "Show the late fee that returning a loan right now would assess.",
    "inputSchema": PreviewLateFeeInput.model_json_schema(),
    "handler": preview_late_fee_handler,
}
