"""
Book repository implementation for the Library Desk MCP Server.

Besides tenant-scoped reads, this repository owns the two stock movements
of circulation. Both are single UPDATE statements so concurrent checkouts
can never take the same last copy:

- ``take_copy``:   stock = stock - 1 WHERE stock > 0
- ``return_copy``: stock = stock + 1

Neither commits; the calling workflow owns the transaction.
"""

from datetime import datetime

from sqlalchemy import case, literal, select, update

from ..database.schema import Book as BookDB
from ..database.schema import BookStatusEnum
from ..models.book import Book as BookModel
from ..models.book import BookCreate
from .repository import BaseRepository
from .session import mcp_safe_query

_STATUS_TYPE = BookDB.__table__.c.status.type


def _status_literal(status: BookStatusEnum):
    return literal(status, type_=_STATUS_TYPE)


class BookRepository(BaseRepository[BookDB, BookCreate, BookModel]):
    """Repository for catalogue entries and their shelf stock."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _reload(self, book_id: str) -> BookDB | None:
        # populate_existing overwrites identity-map copies with the row just updated
        query = (
            self._scoped_query()
            .where(BookDB.id == book_id)
            .execution_options(populate_existing=True)
        )
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to reload book",
        )

    def take_copy(self, book_id: str, now: datetime | None = None) -> BookDB | None:
        """
        Remove one copy from the shelf.

        The stock check and the decrement happen in one statement. The status
        follows in the same statement: Available while copies remain,
        Checked Out once the last copy is gone.

        Returns:
            The updated book, or None when no copy was left (or the book does
            not exist in this account)
        """
        stmt = (
            update(BookDB)
            .where(
                BookDB.id == book_id,
                BookDB.owner_id == self.owner_id,
                BookDB.deleted_at.is_(None),
                BookDB.stock > 0,
            )
            .values(
                stock=BookDB.stock - 1,
                status=case(
                    (BookDB.stock > 1, _status_literal(BookStatusEnum.AVAILABLE)),
                    else_=_status_literal(BookStatusEnum.CHECKED_OUT),
                ),
                updated_at=now or datetime.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = mcp_safe_query(self.session, lambda s: s.execute(stmt), "Failed to update stock")
        if result.rowcount != 1:
            return None
        return self._reload(book_id)

    def return_copy(
        self,
        book_id: str,
        status: BookStatusEnum = BookStatusEnum.AVAILABLE,
        now: datetime | None = None,
    ) -> BookDB | None:
        """
        Put one copy back on the shelf and set the shelf status.

        Soft-deleted books still take their copy back; the loan predates
        the deletion.
        """
        stmt = (
            update(BookDB)
            .where(BookDB.id == book_id, BookDB.owner_id == self.owner_id)
            .values(stock=BookDB.stock + 1, status=status, updated_at=now or datetime.now())
            .execution_options(synchronize_session=False)
        )
        result = mcp_safe_query(self.session, lambda s: s.execute(stmt), "Failed to update stock")
        if result.rowcount != 1:
            return None

        query = (
            select(BookDB)
            .where(BookDB.id == book_id)
            .execution_options(populate_existing=True)
        )
        return mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one(),
            "Failed to reload book",
        )
