"""
Loan resources for the Library Desk MCP Server.

Read-only views of what is out on loan:

- library://loans/active: every active loan, soonest due first
- library://loans/overdue: active loans past their due date
- library://loans/due-soon: active loans due within the next three days
- library://loans/{loan_id}: one loan with its transactions

Overdue status, days until due and the accrued fee are derived at read time
from the due date and the account's policy; none of them is stored.
"""

import logging
from datetime import datetime
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database.loan_repository import DUE_SOON_DAYS, LoanRepository
from ..database.repository import PaginatedResponse, PaginationParams
from ..database.session import session_scope
from ..database.settings_repository import SettingsRepository
from ..database.transaction_repository import TransactionRepository
from ..identity import get_staff_context
from ..observability import trace_resource
from .cache import resource_cache

logger = logging.getLogger(__name__)

LIST_PAGE = PaginationParams(page=1, page_size=100)


def _page_payload(page: PaginatedResponse, now: datetime) -> dict[str, Any]:
    return {
        "as_of": now.isoformat(),
        "total": page.total,
        "truncated": page.has_next,
        "loans": [item.model_dump(mode="json") for item in page.items],
    }


def _load_list(kind: str) -> dict[str, Any]:
    staff = get_staff_context()
    now = datetime.now()
    with session_scope() as session:
        policy = SettingsRepository(session, staff.owner_id).get_policy()
        loans = LoanRepository(session, staff.owner_id)
        if kind == "active":
            page = loans.get_active(policy, now, LIST_PAGE)
        elif kind == "overdue":
            page = loans.get_overdue(policy, now, LIST_PAGE)
        else:
            page = loans.get_due_soon(policy, now, DUE_SOON_DAYS, LIST_PAGE)
        return _page_payload(page, now)


def _read_list(kind: str) -> dict[str, Any]:
    uri = f"library://loans/{kind}"
    logger.debug("MCP Resource Request - %s", uri)
    try:
        return resource_cache.get_or_load(uri, lambda: _load_list(kind))
    except Exception as e:
        logger.exception("Error in %s resource", uri)
        raise ResourceError(f"Failed to retrieve {kind} loans: {e!s}") from e


@trace_resource("loans.active")
async def active_loans_handler() -> dict[str, Any]:
    """All active loans of the account."""
    return _read_list("active")


@trace_resource("loans.overdue")
async def overdue_loans_handler() -> dict[str, Any]:
    """Active loans past their due date, with the fee accrued so far."""
    return _read_list("overdue")


@trace_resource("loans.due_soon")
async def due_soon_loans_handler() -> dict[str, Any]:
    """Active loans due within the next few days."""
    return _read_list("due-soon")


@trace_resource("loans.detail")
async def loan_detail_handler(loan_id: str) -> dict[str, Any]:
    """
    One loan with derived fields and its Borrow/Rent and Return transactions.

    Raises:
        ResourceError: If the loan does not exist in this account
    """
    uri = f"library://loans/{loan_id}"
    staff = get_staff_context()

    def load() -> dict[str, Any]:
        now = datetime.now()
        with session_scope() as session:
            policy = SettingsRepository(session, staff.owner_id).get_policy()
            view = LoanRepository(session, staff.owner_id).get_view(loan_id, policy, now)
            if view is None:
                raise ResourceError(f"Loan not found: {loan_id}")
            transactions = TransactionRepository(session, staff.owner_id).get_for_loan(loan_id)
            return {
                "as_of": now.isoformat(),
                "loan": view.model_dump(mode="json"),
                "transactions": [t.model_dump(mode="json") for t in transactions],
            }

    try:
        return resource_cache.get_or_load(uri, load)
    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in loans/{loan_id} resource")
        raise ResourceError(f"Failed to retrieve loan: {e!s}") from e


loan_resources: list[dict[str, Any]] = [
    {
        "uri": "library://loans/active",
        "name": "Active Loans",
        "description": "Every book currently out on loan, soonest due first, with days until due and accrued late fee.",
        "mime_type": "application/json",
        "handler": active_loans_handler,
    },
    {
        "uri": "library://loans/overdue",
        "name": "Overdue Loans",
        "description": "Active loans past their due date, with the late fee a return now would assess.",
        "mime_type": "application/json",
        "handler": overdue_loans_handler,
    },
    {
        "uri": "library://loans/due-soon",
        "name": "Loans Due Soon",
        "description": f"Active loans due within the next {DUE_SOON_DAYS} days.",
        "mime_type": "application/json",
        "handler": due_soon_loans_handler,
    },
    {
        "uri_template": "library://loans/{loan_id}",
        "name": "Loan Details",
        "description": "One loan with its derived due-date view and linked transactions.",
        "mime_type": "application/json",
        "handler": loan_detail_handler,
    },
]
