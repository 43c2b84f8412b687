"""
Circulation errors.

Each business-rule rejection has its own exception class with a stable
``reason`` code. MCP tools return that code in ``data.reason`` so clients can
branch on it without parsing messages.
"""

from ..database.repository import RepositoryException


class CirculationError(RepositoryException):
    """A circulation request was rejected by a business rule."""

    reason = "circulation_error"


class AlreadyBorrowedError(CirculationError):
    reason = "already_borrowed"


class BorrowingLimitError(CirculationError):
    reason = "borrowing_limit_reached"


class UnpaidLateFeesError(CirculationError):
    reason = "unpaid_late_fees"


class RenewalLimitError(CirculationError):
    reason = "max_renewals_reached"


class FeeDispositionRequiredError(CirculationError):
    """A late fee was assessed but neither paid nor waived."""

    reason = "fee_payment_required"


class StockUnavailableError(CirculationError):
    """No copy of the book was left on the shelf."""

    reason = "out_of_stock"


class BookUnavailableError(CirculationError):
    """The book cannot circulate (deleted, lost or awaiting repair)."""

    reason = "book_unavailable"


class MemberNotActiveError(CirculationError):
    reason = "member_not_active"


class LoanNotActiveError(CirculationError):
    reason = "loan_not_active"


class ConcurrentUpdateError(CirculationError):
    """The row changed between read and write; the request can be retried."""

    reason = "concurrent_update"


class OverrideReasonRequiredError(CirculationError):
    reason = "override_reason_required"


class TooManyBooksError(CirculationError):
    reason = "too_many_books"
