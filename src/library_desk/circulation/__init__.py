"""
Circulation rules and workflows.

- late_fees: pure fee and due-date calculations
- limits: active-loan cap and unpaid-fee checks
- checkout / returns / renewals: transactional workflows used by MCP tools
- audit: override trail
"""

from .checkout import AssignmentType, CheckoutOrchestrator, CheckoutRequest, CheckoutResult
from .errors import (
    AlreadyBorrowedError,
    BookUnavailableError,
    BorrowingLimitError,
    CirculationError,
    ConcurrentUpdateError,
    FeeDispositionRequiredError,
    LoanNotActiveError,
    MemberNotActiveError,
    OverrideReasonRequiredError,
    RenewalLimitError,
    StockUnavailableError,
    TooManyBooksError,
    UnpaidLateFeesError,
)
from .late_fees import calculate_late_fee, days_overdue, days_until_due, format_late_fee, is_overdue
from .limits import BorrowingLimitChecker, EligibilityReport, LimitCheck
from .renewals import RenewalHandler, RenewalRequest
from .returns import FeeDisposition, FeePreview, ReturnOrchestrator, ReturnRequest, ReturnResult

__all__ = [
    "AlreadyBorrowedError",
    "AssignmentType",
    "BookUnavailableError",
    "BorrowingLimitChecker",
    "BorrowingLimitError",
    "CheckoutOrchestrator",
    "CheckoutRequest",
    "CheckoutResult",
    "CirculationError",
    "ConcurrentUpdateError",
    "EligibilityReport",
    "FeeDisposition",
    "FeeDispositionRequiredError",
    "FeePreview",
    "LimitCheck",
    "LoanNotActiveError",
    "MemberNotActiveError",
    "OverrideReasonRequiredError",
    "RenewalHandler",
    "RenewalLimitError",
    "RenewalRequest",
    "ReturnOrchestrator",
    "ReturnRequest",
    "ReturnResult",
    "StockUnavailableError",
    "TooManyBooksError",
    "UnpaidLateFeesError",
    "calculate_late_fee",
    "days_overdue",
    "days_until_due",
    "format_late_fee",
    "is_overdue",
]
