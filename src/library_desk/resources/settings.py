"""Settings and audit resources for the Library Desk MCP Server."""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..circulation.audit import list_overrides
from ..database.session import session_scope
from ..database.settings_repository import SettingsRepository
from ..identity import get_staff_context
from ..observability import trace_resource
from .cache import resource_cache

logger = logging.getLogger(__name__)

SETTINGS_URI = "library://settings"
OVERRIDES_URI = "library://overrides/recent"


def _load_settings(owner_id: str) -> dict[str, Any]:
    with session_scope() as session:
        policy = SettingsRepository(session, owner_id).get_policy()
        return {"owner_id": owner_id, "settings": policy.model_dump(mode="json")}


def _load_overrides(owner_id: str) -> dict[str, Any]:
    with session_scope() as session:
        entries = list_overrides(session, owner_id)
        return {
            "overrides": [
                {
                    "id": entry.id,
                    "actor": entry.actor,
                    "action": entry.action.value,
                    "member_id": entry.member_id,
                    "loan_id": entry.loan_id,
                    "reason": entry.reason,
                    "created_at": entry.created_at.isoformat(),
                }
                for entry in entries
            ]
        }


@trace_resource("settings")
async def settings_handler() -> dict[str, Any]:
    """The account's effective circulation policy."""
    staff = get_staff_context()
    try:
        return resource_cache.get_or_load(SETTINGS_URI, lambda: _load_settings(staff.owner_id))
    except Exception as e:
        logger.exception("Error in settings resource")
        raise ResourceError(f"Failed to retrieve library settings: {e!s}") from e


@trace_resource("overrides.recent")
async def recent_overrides_handler() -> dict[str, Any]:
    """Most recent staff overrides of borrowing and renewal limits."""
    staff = get_staff_context()
    try:
        return resource_cache.get_or_load(OVERRIDES_URI, lambda: _load_overrides(staff.owner_id))
    except Exception as e:
        logger.exception("Error in overrides resource")
        raise ResourceError(f"Failed to retrieve overrides: {e!s}") from e


settings_resources: list[dict[str, Any]] = [
    {
        "uri": SETTINGS_URI,
        "name": "Library Settings",
        "description": (
            "Effective circulation policy: late fee rate, grace period, fee cap, "
            "renewal and borrowing limits, unpaid fee threshold and default periods."
        ),
        "mime_type": "application/json",
        "handler": settings_handler,
    },
    {
        "uri": OVERRIDES_URI,
        "name": "Recent Overrides",
        "description": "Audit trail of staff overrides of borrowing and renewal limits, newest first.",
        "mime_type": "application/json",
        "handler": recent_overrides_handler,
    },
]
