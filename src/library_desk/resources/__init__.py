"""
Library Desk MCP Resources Package.

Resources are the read-only views of the circulation desk: loans by due-date
status, a member's history, and the account's policy. Changes go through
tools; every successful tool write clears the resource cache.
"""

from .loans import loan_resources
from .members import member_resources
from .settings import settings_resources

all_resources = loan_resources + member_resources + settings_resources

__all__ = [
    "all_resources",
    "loan_resources",
    "member_resources",
    "settings_resources",
]
