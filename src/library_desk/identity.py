"""
Staff identity for circulation operations.

Every circulation call runs on behalf of one account (the tenant that owns
books, members and loans) and one staff member at the desk. The account role
only changes wording: a bookstore "rents" where a library "borrows".
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .config import ServerConfig, get_config
from .database.schema import PaymentMethodEnum


class AccountRole(str, Enum):
    """Kind of account the staff member works for."""

    LIBRARY = "Library"
    BOOK_STORE = "Book Store"


class StaffContext(BaseModel):
    """Who is performing an operation, and for which account."""

    owner_id: str = Field(..., min_length=1, description="Tenant id all queries are scoped to")
    actor: str = Field(..., min_length=1, description="Staff member name for audit entries")
    role: AccountRole = Field(default=AccountRole.LIBRARY)

    model_config = ConfigDict(frozen=True)

    @property
    def is_book_store(self) -> bool:
        return self.role == AccountRole.BOOK_STORE

    @property
    def borrow_method(self) -> PaymentMethodEnum:
        """Payment method recorded on a zero-value lending transaction."""
        return PaymentMethodEnum.RENT if self.is_book_store else PaymentMethodEnum.BORROW

    @property
    def borrowed_text(self) -> str:
        return "Rented" if self.is_book_store else "Borrowed"


def get_staff_context(config: ServerConfig | None = None) -> StaffContext:
    """Build the staff context from server configuration."""
    config = config or get_config()
    return StaffContext(
        owner_id=config.owner_id,
        actor=config.staff_name,
        role=AccountRole(config.account_role),
    )
