"""
SQLAlchemy database schema for the Library Desk MCP Server.

Tables mirror the records of a library or bookstore account:

- books / members: catalogue and patrons, soft-deleted through ``deleted_at``
- loans: one row per borrowed copy, mutated on renewal and return, never deleted
- checkout_transactions / checkout_items: the till log for borrows, sales and returns
- library_settings: per-owner circulation policy
- override_audits: who bypassed a borrowing or renewal limit, and why

Every row carries ``owner_id`` and every query filters on it.
"""

import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def generate_id(prefix: str) -> str:
    """Generate a prefixed random identifier, e.g. ``loan_3f9a0c1b2d4e5f60``."""
    return f"{prefix}_{uuid4().hex[:16]}"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Store the human-readable values ("Checked Out"), not member names
    return [member.value for member in enum_cls]


class BookStatusEnum(str, enum.Enum):
    """Shelf status of a catalogue entry."""

    AVAILABLE = "Available"
    CHECKED_OUT = "Checked Out"
    ON_HOLD = "On Hold"
    PROCESSING = "Processing"
    LOST = "Lost"
    OUT_OF_STOCK = "Out of Stock"
    NEEDS_REPAIR = "Needs Repair"


class MemberStatusEnum(str, enum.Enum):
    """Membership status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"
    BANNED = "Banned"


class LoanStatusEnum(str, enum.Enum):
    """Loan lifecycle: Borrowed -> Returned (terminal)."""

    BORROWED = "Borrowed"
    RETURNED = "Returned"


class ReturnConditionEnum(str, enum.Enum):
    """Condition assessed by staff when a copy comes back."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    DAMAGED = "Damaged"


class TransactionStatusEnum(str, enum.Enum):
    COMPLETED = "Completed"
    PENDING = "Pending"
    CANCELLED = "Cancelled"


class PaymentMethodEnum(str, enum.Enum):
    """How a transaction was settled; Borrow/Rent/Return are zero-value log entries."""

    BORROW = "Borrow"
    RENT = "Rent"
    CASH = "Cash"
    CARD = "Card"
    RETURN = "Return"


class OverrideActionEnum(str, enum.Enum):
    """Limit that a staff override bypassed."""

    BORROWING_LIMIT = "borrowing_limit"
    RENEWAL_LIMIT = "renewal_limit"


class Book(Base):
    """
    Books table - one row per catalogue entry, ``stock`` copies on the shelf.

    Checkout decrements and return increments ``stock`` with single
    conditional UPDATE statements (see circulation.checkout / circulation.returns).
    """

    __tablename__ = "books"

    id = Column(String(50), primary_key=True, default=lambda: generate_id("book"))
    owner_id = Column(String(64), nullable=False)
    title = Column(String(500), nullable=False)
    author = Column(String(300), nullable=False)
    isbn = Column(String(20), nullable=True)
    category = Column(String(100), nullable=True)
    stock = Column(Integer, nullable=False, default=1)
    status = Column(
        Enum(BookStatusEnum, values_callable=_enum_values, name="book_status"),
        nullable=False,
        default=BookStatusEnum.AVAILABLE,
    )
    price = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    loans = relationship("Loan", back_populates="book")

    __table_args__ = (
        Index("idx_book_owner", "owner_id"),
        Index("idx_book_owner_title", "owner_id", "title"),
        Index("idx_book_isbn", "isbn"),
        CheckConstraint("stock >= 0", name="check_stock_non_negative"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Member(Base):
    """Members table - patrons or customers of one account."""

    __tablename__ = "members"

    id = Column(String(50), primary_key=True, default=lambda: generate_id("member"))
    owner_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    status = Column(
        Enum(MemberStatusEnum, values_callable=_enum_values, name="member_status"),
        nullable=False,
        default=MemberStatusEnum.ACTIVE,
    )

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    loans = relationship("Loan", back_populates="member")

    __table_args__ = (
        Index("idx_member_owner", "owner_id"),
        Index("idx_member_owner_name", "owner_id", "name"),
    )

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None and self.status == MemberStatusEnum.ACTIVE


class Loan(Base):
    """
    Loans table - a copy checked out to a member.

    Created on checkout; renewal moves ``due_date`` forward and bumps
    ``renewal_count``; return fills the return/fee columns. Overdue is never
    stored, it is derived from ``due_date`` at read time.
    """

    __tablename__ = "loans"

    id = Column(String(50), primary_key=True, default=lambda: generate_id("loan"))
    owner_id = Column(String(64), nullable=False)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    member_id = Column(String(50), ForeignKey("members.id"), nullable=False)
    checkout_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    status = Column(
        Enum(LoanStatusEnum, values_callable=_enum_values, name="loan_status"),
        nullable=False,
        default=LoanStatusEnum.BORROWED,
    )
    renewal_count = Column(Integer, nullable=False, default=0)

    return_condition = Column(
        Enum(ReturnConditionEnum, values_callable=_enum_values, name="return_condition"),
        nullable=True,
    )
    condition_notes = Column(Text, nullable=True)
    flagged_for_review = Column(Boolean, nullable=False, default=False)

    late_fee_amount = Column(Float, nullable=False, default=0.0)
    fee_paid = Column(Boolean, nullable=False, default=False)
    fee_waived = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    book = relationship("Book", back_populates="loans")
    member = relationship("Member", back_populates="loans")
    transactions = relationship("CheckoutTransaction", back_populates="loan")

    __table_args__ = (
        Index("idx_loan_owner_status", "owner_id", "status"),
        Index("idx_loan_member", "member_id"),
        Index("idx_loan_book", "book_id"),
        Index("idx_loan_due_date", "due_date"),
        CheckConstraint("renewal_count >= 0", name="check_renewal_count_non_negative"),
        CheckConstraint("late_fee_amount >= 0", name="check_late_fee_non_negative"),
        CheckConstraint("NOT (fee_paid AND fee_waived)", name="check_fee_paid_xor_waived"),
    )


class CheckoutTransaction(Base):
    """
    Checkout transactions table - the account's till log.

    One row per borrowed or sold copy and one per return. ``loan_id`` ties
    Borrow/Rent and Return entries to the loan they belong to.
    """

    __tablename__ = "checkout_transactions"

    id = Column(String(50), primary_key=True, default=lambda: generate_id("txn"))
    owner_id = Column(String(64), nullable=False)
    customer_id = Column(String(50), ForeignKey("members.id"), nullable=False)
    loan_id = Column(String(50), ForeignKey("loans.id"), nullable=True)
    status = Column(
        Enum(TransactionStatusEnum, values_callable=_enum_values, name="transaction_status"),
        nullable=False,
        default=TransactionStatusEnum.COMPLETED,
    )
    payment_method = Column(
        Enum(PaymentMethodEnum, values_callable=_enum_values, name="payment_method"),
        nullable=False,
    )
    total_amount = Column(Float, nullable=False, default=0.0)
    date = Column(DateTime, nullable=False)

    created_at = Column(DateTime, nullable=False, default=func.now())

    loan = relationship("Loan", back_populates="transactions")
    items = relationship(
        "CheckoutItem", back_populates="transaction", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_transaction_owner_date", "owner_id", "date"),
        Index("idx_transaction_customer", "customer_id"),
        Index("idx_transaction_loan", "loan_id"),
        CheckConstraint("total_amount >= 0", name="check_total_non_negative"),
    )


class CheckoutItem(Base):
    """Line items of a checkout transaction."""

    __tablename__ = "checkout_items"

    id = Column(String(50), primary_key=True, default=lambda: generate_id("item"))
    transaction_id = Column(String(50), ForeignKey("checkout_transactions.id"), nullable=False)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    title = Column(String(500), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)

    transaction = relationship("CheckoutTransaction", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_quantity_positive"),
        CheckConstraint("price >= 0", name="check_item_price_non_negative"),
    )


class LibrarySettings(Base):
    """Per-owner circulation policy. Missing rows fall back to LibraryPolicy defaults."""

    __tablename__ = "library_settings"

    owner_id = Column(String(64), primary_key=True)
    daily_late_fee_rate = Column(Float, nullable=False)
    grace_period_days = Column(Integer, nullable=False)
    max_late_fee_cap = Column(Float, nullable=False)
    max_renewals_per_loan = Column(Integer, nullable=False)
    member_borrowing_limit = Column(Integer, nullable=False)
    unpaid_fee_threshold = Column(Float, nullable=False)
    default_loan_days = Column(Integer, nullable=False)
    default_renewal_days = Column(Integer, nullable=False)
    max_books_per_checkout = Column(Integer, nullable=False)

    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("daily_late_fee_rate >= 0", name="check_rate_non_negative"),
        CheckConstraint("grace_period_days >= 0", name="check_grace_non_negative"),
        CheckConstraint("max_late_fee_cap >= 0", name="check_cap_non_negative"),
        CheckConstraint("max_renewals_per_loan >= 0", name="check_max_renewals_non_negative"),
        CheckConstraint("member_borrowing_limit >= 0", name="check_limit_non_negative"),
    )


class OverrideAudit(Base):
    """Audit trail for staff overrides of borrowing and renewal limits. Append-only."""

    __tablename__ = "override_audits"

    id = Column(String(50), primary_key=True, default=lambda: generate_id("audit"))
    owner_id = Column(String(64), nullable=False)
    actor = Column(String(100), nullable=False)
    action = Column(
        Enum(OverrideActionEnum, values_callable=_enum_values, name="override_action"),
        nullable=False,
    )
    member_id = Column(String(50), ForeignKey("members.id"), nullable=True)
    loan_id = Column(String(50), ForeignKey("loans.id"), nullable=True)
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_audit_owner_created", "owner_id", "created_at"),
        CheckConstraint("length(reason) > 0", name="check_reason_present"),
    )
