"""
Repository pattern implementation for the Library Desk MCP Server.

Repositories keep SQLAlchemy out of MCP tool and resource handlers:

1. **Tenant scoping**: every repository is bound to one ``owner_id`` and never
   returns another account's rows
2. **Soft delete**: tables with a ``deleted_at`` column hide deleted rows
3. **MCP Compatibility**: methods return Pydantic models that serialize cleanly
   to JSON for MCP responses
"""

from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .schema import Base
from .session import mcp_safe_commit, mcp_safe_query

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class RepositoryException(Exception):
    """Base exception for repository operations."""

    reason = "data_store_error"


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""

    reason = "not_found"


class PaginationParams(BaseModel):
    """Standard pagination parameters for MCP list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        """Validate pagination parameters."""
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 100:
            raise ValueError("Page size must be between 1 and 100")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for MCP list resources."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


def paginate(
    session: Session,
    query,
    pagination: PaginationParams | None,
    convert,
) -> PaginatedResponse:
    """Run ``query`` one page at a time and convert each row with ``convert``."""
    pagination = pagination or PaginationParams()
    pagination.validate_params()

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (
        mcp_safe_query(
            session,
            lambda s: s.execute(count_query).scalar(),
            "Failed to count total for pagination",
        )
        or 0
    )

    page_query = query.offset(pagination.offset).limit(pagination.page_size)
    results = mcp_safe_query(
        session,
        lambda s: s.execute(page_query).unique().scalars().all(),
        "Failed to get paginated results",
    )

    return PaginatedResponse(
        items=[convert(item) for item in results],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
        total_pages=(total + pagination.page_size - 1) // pagination.page_size,
        has_next=pagination.page * pagination.page_size < total,
        has_previous=pagination.page > 1,
    )


class BaseRepository(ABC, Generic[ModelType, CreateSchemaType, ResponseSchemaType]):
    """
    Abstract base repository providing tenant-scoped reads and creation.

    All methods use mcp_safe_query and mcp_safe_commit for proper
    error handling in the MCP context.
    """

    def __init__(self, session: Session, owner_id: str):
        """Initialize repository with database session and owning account."""
        self.session = session
        self.owner_id = owner_id

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _scoped_query(self):
        """Select rows of this owner, excluding soft-deleted ones."""
        query = select(self.model_class).where(self.model_class.owner_id == self.owner_id)
        if hasattr(self.model_class, "deleted_at"):
            query = query.where(self.model_class.deleted_at.is_(None))
        return query

    def get_db_object(self, id: str, for_update: bool = False) -> ModelType | None:
        """Fetch the ORM row for ``id`` within this tenant, or None."""
        query = self._scoped_query().where(self.model_class.id == str(id))
        if for_update:
            query = query.with_for_update()
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: str) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found (or owned by another account)
        """
        db_obj = self.get_db_object(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity owned by this repository's account.

        Raises:
            RepositoryException: On database errors
        """
        try:
            db_obj = self.model_class(owner_id=self.owner_id, **data.model_dump())
            self.session.add(db_obj)
            mcp_safe_commit(self.session, f"create {self.model_class.__name__}")
            self.session.refresh(db_obj)
            return self._to_response_model(db_obj)
        except ValueError as e:
            raise RepositoryException(f"Database error: {e!s}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryException(f"Database error: {e!s}") from e


@contextmanager
def atomic(session: Session, operation: str) -> Generator[None, None, None]:
    """
    Run a multi-step write as one database transaction.

    Commits when the block completes. Any failure rolls back every write made
    inside the block; data-store failures surface as RepositoryException,
    business-rule and lookup failures keep their own type.

    ```python
    with atomic(session, "checkout"):
        books.take_copy(book_id)
        loans.add(loan)
    ```
    """
    try:
        yield
        mcp_safe_commit(session, operation)
    except RepositoryException:
        session.rollback()
        raise
    except (ValueError, SQLAlchemyError) as e:
        session.rollback()
        raise RepositoryException(f"Failed to {operation}: {e!s}") from e
    except Exception:
        session.rollback()
        raise
