"""
Member resources for the Library Desk MCP Server.

library://members/{member_id}/history lists a member's loans and the till
entries made for them. Borrow/Rent and Return entries are tied to their loan
(and through it, the book) by ``loan_id``.
"""

import logging
from datetime import datetime
from typing import Any

from fastmcp.exceptions import ResourceError

from ..circulation.late_fees import format_late_fee
from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..database.session import session_scope
from ..database.settings_repository import SettingsRepository
from ..database.transaction_repository import TransactionRepository
from ..identity import get_staff_context
from ..models.loan import LoanView
from ..observability import trace_resource
from .cache import resource_cache

logger = logging.getLogger(__name__)


def _load_history(owner_id: str, member_id: str) -> dict[str, Any]:
    now = datetime.now()
    with session_scope() as session:
        member = MemberRepository(session, owner_id).get_by_id(member_id)
        if member is None:
            raise ResourceError(f"Member not found: {member_id}")

        policy = SettingsRepository(session, owner_id).get_policy()
        loans = [
            LoanView.build(loan, policy, now)
            for loan in LoanRepository(session, owner_id).get_member_history(member_id)
        ]
        loans_by_id = {loan.id: loan for loan in loans}

        entries = []
        for transaction in TransactionRepository(session, owner_id).get_for_member(member_id):
            entry = transaction.model_dump(mode="json")
            loan = loans_by_id.get(transaction.loan_id) if transaction.loan_id else None
            if loan is not None:
                entry["loan"] = {
                    "id": loan.id,
                    "book_id": loan.book_id,
                    "book_title": loan.book_title,
                    "status": loan.status.value,
                }
            entries.append(entry)

        active = [loan for loan in loans if loan.is_active]
        unpaid = sum(loan.late_fee_amount for loan in loans if loan.has_outstanding_fee)

        return {
            "as_of": now.isoformat(),
            "member": member.model_dump(mode="json"),
            "summary": {
                "total_loans": len(loans),
                "active_loans": len(active),
                "overdue_loans": sum(1 for loan in active if loan.is_overdue),
                "unpaid_late_fees": round(unpaid, 2),
                "unpaid_late_fees_display": format_late_fee(unpaid),
            },
            "loans": [loan.model_dump(mode="json") for loan in loans],
            "transactions": entries,
        }


@trace_resource("members.history")
async def member_history_handler(member_id: str) -> dict[str, Any]:
    """
    Loans and transactions of one member, newest first.

    Raises:
        ResourceError: If the member does not exist in this account
    """
    uri = f"library://members/{member_id}/history"
    logger.debug("MCP Resource Request - %s", uri)
    staff = get_staff_context()
    try:
        return resource_cache.get_or_load(uri, lambda: _load_history(staff.owner_id, member_id))
    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in members/{member_id}/history resource")
        raise ResourceError(f"Failed to retrieve member history: {e!s}") from e


member_resources: list[dict[str, Any]] = [
    {
        "uri_template": "library://members/{member_id}/history",
        "name": "Member Borrowing History",
        "description": (
            "A member's loans (with due-date status and late fees) and every transaction "
            "made for them, with borrow and return entries linked to their loan."
        ),
        "mime_type": "application/json",
        "handler": member_history_handler,
    },
]
