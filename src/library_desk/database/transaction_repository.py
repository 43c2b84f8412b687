"""
Transaction repository implementation for the Library Desk MCP Server.

Every borrowed, rented, sold or returned copy leaves one transaction with a
single line item. Borrow/Rent and Return entries carry the ``loan_id`` of the
loan they belong to.
"""

from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import desc
from sqlalchemy.orm import selectinload

from ..database.schema import Book as BookDB
from ..database.schema import CheckoutItem as CheckoutItemDB
from ..database.schema import CheckoutTransaction as TransactionDB
from ..database.schema import PaymentMethodEnum, TransactionStatusEnum
from ..models.transaction import Transaction as TransactionModel
from .repository import BaseRepository
from .session import mcp_safe_query


class TransactionRepository(BaseRepository[TransactionDB, BaseModel, TransactionModel]):
    """Repository for the till log of one account."""

    @property
    def model_class(self):
        return TransactionDB

    @property
    def response_schema(self):
        return TransactionModel

    def record(
        self,
        customer_id: str,
        payment_method: PaymentMethodEnum,
        book: BookDB,
        price: float,
        date: datetime,
        loan_id: str | None = None,
    ) -> TransactionDB:
        """
        Stage a completed transaction for one copy of ``book``.

        Args:
            customer_id: Member the transaction is for
            payment_method: Borrow, Rent, Cash, Card or Return
            book: Book the line item refers to
            price: Amount charged; also the transaction total
            date: Transaction timestamp
            loan_id: Loan the entry belongs to, for borrow and return entries
        """
        transaction = TransactionDB(
            owner_id=self.owner_id,
            customer_id=customer_id,
            loan_id=loan_id,
            status=TransactionStatusEnum.COMPLETED,
            payment_method=payment_method,
            total_amount=price,
            date=date,
        )
        transaction.items.append(
            CheckoutItemDB(book_id=book.id, title=book.title, quantity=1, price=price)
        )
        self.session.add(transaction)
        self.session.flush()
        return transaction

    def get_for_member(self, member_id: str) -> list[TransactionModel]:
        """All transactions of a member, newest first, with their items."""
        query = (
            self._scoped_query()
            .where(TransactionDB.customer_id == member_id)
            .options(selectinload(TransactionDB.items))
            .order_by(desc(TransactionDB.date))
        )
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get member transactions",
        )
        return [self._to_response_model(row) for row in results]

    def get_for_loan(self, loan_id: str) -> list[TransactionModel]:
        """Borrow and return entries of one loan, oldest first."""
        query = (
            self._scoped_query()
            .where(TransactionDB.loan_id == loan_id)
            .options(selectinload(TransactionDB.items))
            .order_by(TransactionDB.date)
        )
        results = mcp_safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get loan transactions",
        )
        return [self._to_response_model(row) for row in results]
