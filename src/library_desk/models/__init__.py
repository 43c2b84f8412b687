"""Pydantic models returned by repositories, tools and resources."""

from .book import Book, BookCreate, BookStatus
from .loan import Loan, LoanStatus, LoanView, ReturnCondition
from .member import Member, MemberCreate, MemberStatus
from .settings import LibraryPolicy, LibraryPolicyUpdate
from .transaction import PaymentMethod, Transaction, TransactionItem, TransactionStatus

__all__ = [
    "Book",
    "BookCreate",
    "BookStatus",
    "LibraryPolicy",
    "LibraryPolicyUpdate",
    "Loan",
    "LoanStatus",
    "LoanView",
    "Member",
    "MemberCreate",
    "MemberStatus",
    "PaymentMethod",
    "ReturnCondition",
    "Transaction",
    "TransactionItem",
    "TransactionStatus",
]
