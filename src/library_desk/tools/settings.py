"""
Settings tool for the Library Desk MCP Server.

``update_library_settings`` changes the circulation policy of the staff
member's account. Fields left out keep their current value; the first update
creates the account's settings row from the defaults.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..database.repository import atomic
from ..database.session import session_scope
from ..database.settings_repository import SettingsRepository
from ..identity import get_staff_context
from ..models.settings import LibraryPolicyUpdate
from ..observability import trace_tool
from ..resources.cache import resource_cache
from .responses import failure_response, invalid_parameters, success_response

logger = logging.getLogger(__name__)


@trace_tool("update_library_settings")
async def update_library_settings_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the update_library_settings tool."""
    try:
        changes = LibraryPolicyUpdate.model_validate(arguments)
    except ValidationError as e:
        return invalid_parameters("settings", e)

    staff = get_staff_context()
    try:
        with session_scope() as session, atomic(session, "update library settings"):
            policy = SettingsRepository(session, staff.owner_id).upsert(changes)
    except Exception as e:
        return failure_response(e, "Settings update")

    resource_cache.invalidate()

    changed = ", ".join(
        f"{field}={value}" for field, value in changes.model_dump(exclude_none=True).items()
    )
    return success_response(
        f"Library settings updated: {changed}",
        {"settings": policy.model_dump(mode="json")},
    )


update_library_settings = {
    "name": "update_library_settings",
    "description": (
        "Change the account's circulation policy: daily late fee rate, grace period, "
        "fee cap (0 = no cap), renewal limit, borrowing limit, unpaid fee threshold "
        "and default loan / renewal periods."
    ),
    "inputSchema": LibraryPolicyUpdate.model_json_schema(),
    "handler": update_library_settings_handler,
}
