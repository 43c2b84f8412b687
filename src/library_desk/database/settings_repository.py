"""
Settings repository implementation for the Library Desk MCP Server.

Each account has at most one ``library_settings`` row. Reading a policy for
an account without one yields ``LibraryPolicy()`` defaults; nothing is
written until staff change a value.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database.schema import LibrarySettings as SettingsDB
from ..models.settings import LibraryPolicy, LibraryPolicyUpdate
from .session import mcp_safe_query

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Reads and writes the circulation policy of one account."""

    def __init__(self, session: Session, owner_id: str):
        self.session = session
        self.owner_id = owner_id

    def _get_row(self) -> SettingsDB | None:
        query = select(SettingsDB).where(SettingsDB.owner_id == self.owner_id)
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to load library settings",
        )

    def get_policy(self) -> LibraryPolicy:
        """The account's effective policy."""
        row = self._get_row()
        if row is None:
            return LibraryPolicy()
        return LibraryPolicy.model_validate(row, from_attributes=True)

    def upsert(self, changes: LibraryPolicyUpdate) -> LibraryPolicy:
        """
        Apply ``changes`` on top of the current policy and store the result.

        Flushes only; the caller commits.
        """
        merged = self.get_policy().model_copy(update=changes.model_dump(exclude_none=True))
        # Re-validate: model_copy skips field constraints
        policy = LibraryPolicy.model_validate(merged.model_dump())

        row = self._get_row()
        if row is None:
            row = SettingsDB(owner_id=self.owner_id)
            self.session.add(row)
        for field, value in policy.model_dump().items():
            setattr(row, field, value)
        row.updated_at = datetime.now()

        self.session.flush()
        logger.info("Library settings updated for %s", self.owner_id)
        return policy
