"""Tests for loan, member history and settings resources."""

from datetime import datetime, timedelta

import pytest
from fastmcp.exceptions import ResourceError

from library_desk.database.schema import LoanStatusEnum
from library_desk.resources import all_resources
from library_desk.resources.cache import ResourceCache
from library_desk.resources.loans import (
    active_loans_handler,
    due_soon_loans_handler,
    loan_detail_handler,
    overdue_loans_handler,
)
from library_desk.resources.members import member_history_handler
from library_desk.resources.settings import recent_overrides_handler, settings_handler
from library_desk.tools.circulation import (
    checkout_books_handler,
    renew_loan_handler,
    return_book_handler,
)

from ..conftest import OTHER_OWNER_ID


@pytest.fixture
def desk(member, make_book, make_loan):
    """One overdue, one due-soon and one later loan, relative to the real clock."""
    now = datetime.now()
    return {
        "overdue": make_loan(
            member, make_book(title="Overdue", stock=0), due_date=now - timedelta(days=3, hours=12)
        ),
        "due_soon": make_loan(
            member, make_book(title="Due soon", stock=0), due_date=now + timedelta(days=1)
        ),
        "later": make_loan(
            member, make_book(title="Later", stock=0), due_date=now + timedelta(days=20)
        ),
    }


class TestLoanListResources:
    async def test_active_loans(self, mock_session_scope, desk):
        result = await active_loans_handler()

        assert result["total"] == 3
        assert not result["truncated"]
        assert [loan["book_title"] for loan in result["loans"]] == ["Overdue", "Due soon", "Later"]

    async def test_overdue_loans(self, mock_session_scope, desk):
        result = await overdue_loans_handler()

        assert result["total"] == 1
        loan = result["loans"][0]
        assert loan["id"] == desk["overdue"].id
        assert loan["is_overdue"] is True
        assert loan["accrued_fee"] == 2.0
        assert loan["member_name"] == "Test Member"

    async def test_due_soon_loans(self, mock_session_scope, desk):
        result = await due_soon_loans_handler()

        assert [loan["id"] for loan in result["loans"]] == [desk["due_soon"].id]
        assert result["loans"][0]["days_until_due"] == 1

    async def test_other_accounts_loans_are_hidden(self, mock_session_scope, member, book, make_loan):
        make_loan(member, book, owner_id=OTHER_OWNER_ID)

        result = await active_loans_handler()

        assert result["total"] == 0

    async def test_reads_after_write_see_the_write(self, mock_session_scope, member, book):
        assert (await active_loans_handler())["total"] == 0

        await checkout_books_handler({"member_id": member.id, "book_ids": [book.id]})

        assert (await active_loans_handler())["total"] == 1


class TestLoanDetailResource:
    async def test_detail_with_transactions(self, mock_session_scope, member, book):
        checkout = await checkout_books_handler({"member_id": member.id, "book_ids": [book.id]})
        loan_id = checkout["data"]["loans"][0]["id"]
        await return_book_handler({"loan_id": loan_id})

        result = await loan_detail_handler(loan_id=loan_id)

        assert result["loan"]["status"] == LoanStatusEnum.RETURNED.value
        assert result["loan"]["book_title"] == "Test Book"
        assert [t["payment_method"] for t in result["transactions"]] == ["Borrow", "Return"]

    async def test_unknown_loan(self, mock_session_scope):
        with pytest.raises(ResourceError, match="Loan not found"):
            await loan_detail_handler(loan_id="loan_missing")


class TestMemberHistoryResource:
    async def test_history(self, mock_session_scope, member, book, make_loan):
        make_loan(
            member,
            book,
            status=LoanStatusEnum.RETURNED,
            checkout_date=datetime.now() - timedelta(days=30),
            due_date=datetime.now() - timedelta(days=16),
            return_date=datetime.now() - timedelta(days=10),
            late_fee_amount=3.0,
        )
        checkout = await checkout_books_handler({"member_id": member.id, "book_ids": [book.id]})

        result = await member_history_handler(member_id=member.id)

        assert result["member"]["id"] == member.id
        assert result["summary"]["total_loans"] == 2
        assert result["summary"]["active_loans"] == 1
        assert result["summary"]["unpaid_late_fees"] == 3.0
        assert result["summary"]["unpaid_late_fees_display"] == "$3.00"
        assert result["loans"][0]["id"] == checkout["data"]["loans"][0]["id"]

        entry = result["transactions"][0]
        assert entry["loan"]["book_title"] == "Test Book"
        assert entry["loan"]["status"] == "Borrowed"

    async def test_unknown_member(self, mock_session_scope):
        with pytest.raises(ResourceError, match="Member not found"):
            await member_history_handler(member_id="member_missing")


class TestSettingsResources:
    async def test_default_settings(self, mock_session_scope):
        result = await settings_handler()

        assert result["owner_id"] == "owner_test"
        assert result["settings"]["daily_late_fee_rate"] == 0.5

    async def test_recent_overrides(self, mock_session_scope, member, make_book, make_loan):
        loan = make_loan(member, make_book(stock=0), renewal_count=2)

        await renew_loan_handler({"loan_id": loan.id, "override": True, "override_reason": "Travel"})

        result = await recent_overrides_handler()

        assert len(result["overrides"]) == 1
        assert result["overrides"][0]["action"] == "renewal_limit"
        assert result["overrides"][0]["reason"] == "Travel"
        assert result["overrides"][0]["loan_id"] == loan.id


class TestResourceCache:
    def test_hit_within_ttl(self):
        cache = ResourceCache(ttl_seconds=60)
        calls = []

        def load():
            calls.append(1)
            return {"value": len(calls)}

        assert cache.get_or_load("library://settings", load) == {"value": 1}
        assert cache.get_or_load("library://settings", load) == {"value": 1}
        assert cache.stats["hits"] == 1

    def test_invalidate(self):
        cache = ResourceCache(ttl_seconds=60)
        cache.set("library://loans/active", {"total": 0})

        cache.invalidate()

        assert cache.get("library://loans/active") is None

    def test_set_purges_expired_entries(self):
        cache = ResourceCache(ttl_seconds=60)
        stale = "library://members/member_1/history"
        cache._entries[stale] = ({"loans": []}, datetime.now() - timedelta(seconds=1))

        cache.set("library://members/member_2/history", {"loans": []})

        assert stale not in cache._entries
        assert "library://members/member_2/history" in cache._entries

    def test_zero_ttl_disables_caching(self):
        cache = ResourceCache(ttl_seconds=0)
        cache.set("library://settings", {"x": 1})

        assert cache.get("library://settings") is None


def test_resource_registry():
    uris = {resource.get("uri", resource.get("uri_template")) for resource in all_resources}

    assert uris == {
        "library://loans/active",
        "library://loans/overdue",
        "library://loans/due-soon",
        "library://loans/{loan_id}",
        "library://members/{member_id}/history",
        "library://settings",
        "library://overrides/recent",
    }
