"""
Database package for the Library Desk MCP Server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Tenant-scoped repositories used by circulation workflows and resources
"""

from .book_repository import BookRepository
from .loan_repository import LoanRepository
from .member_repository import MemberRepository
from .repository import (
    BaseRepository,
    NotFoundError,
    PaginatedResponse,
    PaginationParams,
    RepositoryException,
    atomic,
)
from .schema import (
    Base,
    Book,
    BookStatusEnum,
    CheckoutItem,
    CheckoutTransaction,
    LibrarySettings,
    Loan,
    LoanStatusEnum,
    Member,
    MemberStatusEnum,
    OverrideAudit,
)
from .session import (
    DatabaseManager,
    get_db_manager,
    mcp_safe_commit,
    mcp_safe_query,
    session_scope,
)
from .settings_repository import SettingsRepository
from .transaction_repository import TransactionRepository

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookRepository",
    "BookStatusEnum",
    "CheckoutItem",
    "CheckoutTransaction",
    "DatabaseManager",
    "LibrarySettings",
    "Loan",
    "LoanRepository",
    "LoanStatusEnum",
    "Member",
    "MemberRepository",
    "MemberStatusEnum",
    "NotFoundError",
    "OverrideAudit",
    "PaginatedResponse",
    "PaginationParams",
    "RepositoryException",
    "SettingsRepository",
    "TransactionRepository",
    "atomic",
    "get_db_manager",
    "mcp_safe_commit",
    "mcp_safe_query",
    "session_scope",
]
