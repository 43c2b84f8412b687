"""Checkout transaction models for the Library Desk MCP Server."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..database.schema import PaymentMethodEnum as PaymentMethod
from ..database.schema import TransactionStatusEnum as TransactionStatus


class TransactionItem(BaseModel):
    """One line of a transaction."""

    id: str
    book_id: str
    title: str
    quantity: int = Field(default=1, gt=0)
    price: float = Field(default=0.0, ge=0.0)

    model_config = ConfigDict(from_attributes=True)


class Transaction(BaseModel):
    """
    A till log entry.

    Borrow/Rent and Return entries have ``total_amount`` 0 and point at their
    loan through ``loan_id``; sales carry the book price and no loan.
    """

    id: str
    owner_id: str
    customer_id: str = Field(..., description="Member the transaction was made for")
    loan_id: str | None = Field(None, description="Loan this entry belongs to, if any")
    status: TransactionStatus = TransactionStatus.COMPLETED
    payment_method: PaymentMethod
    total_amount: float = Field(default=0.0, ge=0.0)
    date: datetime
    items: list[TransactionItem] = Field(default_factory=list)

    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
