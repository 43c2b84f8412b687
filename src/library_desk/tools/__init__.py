"""
MCP Tools for the Library Desk Server.

Tools are the operations with side effects (checkout, return, renewal,
settings) plus two advisory checks staff run before acting. Each tool is a
dictionary with name, description, JSON schema and async handler; the server
registers every entry of ``all_tools``.
"""

from .circulation import (
    check_borrowing_eligibility,
    checkout_books,
    preview_late_fee,
    renew_loan,
    return_book,
)
from .settings import update_library_settings

all_tools = [
    checkout_books,
    return_book,
    renew_loan,
    check_borrowing_eligibility,
    preview_late_fee,
    update_library_settings,
]

__all__ = [
    "all_tools",
    "check_borrowing_eligibility",
    "checkout_books",
    "preview_late_fee",
    "renew_loan",
    "return_book",
    "update_library_settings",
]
