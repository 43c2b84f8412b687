"""Audit trail for staff overrides of borrowing and renewal limits."""

import logging
from datetime import datetime

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..database.schema import OverrideActionEnum, OverrideAudit
from ..database.session import mcp_safe_query
from ..identity import StaffContext
from .errors import OverrideReasonRequiredError

logger = logging.getLogger(__name__)


def require_override_reason(reason: str | None) -> str:
    """Return the stripped reason, or raise when none was given."""
    if reason is None or not reason.strip():
        raise OverrideReasonRequiredError("An override requires a reason")
    return reason.strip()


def record_override(
    session: Session,
    staff: StaffContext,
    action: OverrideActionEnum,
    reason: str,
    now: datetime,
    member_id: str | None = None,
    loan_id: str | None = None,
) -> OverrideAudit:
    """Stage an audit row in the current transaction."""
    entry = OverrideAudit(
        owner_id=staff.owner_id,
        actor=staff.actor,
        action=action,
        member_id=member_id,
        loan_id=loan_id,
        reason=require_override_reason(reason),
        created_at=now,
    )
    session.add(entry)
    session.flush()
    logger.info(
        "Override %s by %s (member=%s loan=%s): %s",
        action.value,
        staff.actor,
        member_id,
        loan_id,
        entry.reason,
    )
    return entry


def list_overrides(session: Session, owner_id: str, limit: int = 50) -> list[OverrideAudit]:
    """Most recent overrides of an account."""
    query = (
        select(OverrideAudit)
        .where(OverrideAudit.owner_id == owner_id)
        .order_by(desc(OverrideAudit.created_at))
        .limit(limit)
    )
    results = mcp_safe_query(
        session,
        lambda s: s.execute(query).scalars().all(),
        "Failed to list overrides",
    )
    return list(results)
