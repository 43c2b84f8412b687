"""
Sample data for the Library Desk MCP Server.

Books and members are generated with Faker. Circulation history is produced
by running the real checkout, renewal and return workflows with a clock set
in the past, so sample loans, transactions and stock obey the same rules as
live data: some loans are overdue, some due soon, some returned late with
fees paid, waived or still owed.
"""

import logging
import random
from datetime import datetime, timedelta

from faker import Faker
from sqlalchemy.orm import Session

from ..circulation.checkout import AssignmentType, CheckoutOrchestrator, CheckoutRequest
from ..circulation.errors import CirculationError
from ..circulation.renewals import RenewalHandler, RenewalRequest
from ..circulation.returns import FeeDisposition, ReturnOrchestrator, ReturnRequest
from ..identity import StaffContext
from ..models.book import BookCreate
from ..models.member import MemberCreate
from ..models.settings import LibraryPolicy
from .book_repository import BookRepository
from .member_repository import MemberRepository
from .schema import MemberStatusEnum, ReturnConditionEnum

logger = logging.getLogger(__name__)

CATEGORIES = [
    "Fiction", "Mystery", "Science Fiction", "Fantasy", "Romance",
    "Biography", "History", "Science", "Children's", "Young Adult",
]


def _fixed_clock(moment: datetime):
    return lambda: moment


def generate_books(repo: BookRepository, fake: Faker, count: int) -> list[str]:
    ids = []
    for _ in range(count):
        stock = random.randint(0, 4)
        book = repo.create(
            BookCreate(
                title=fake.catch_phrase().title(),
                author=fake.name(),
                isbn=fake.isbn13(separator=""),
                category=random.choice(CATEGORIES),
                stock=stock,
                price=round(random.uniform(4.99, 39.99), 2),
            )
        )
        ids.append(book.id)
    return ids


def generate_members(repo: MemberRepository, fake: Faker, count: int) -> list[str]:
    ids = []
    for _ in range(count):
        status = random.choices(
            list(MemberStatusEnum), weights=[85, 7, 5, 3]
        )[0]
        member = repo.create(
            MemberCreate(
                name=fake.name(),
                email=fake.email(),
                phone=fake.phone_number()[:30],
                status=status,
            )
        )
        ids.append(member.id)
    return ids


def generate_circulation(
    session: Session,
    staff: StaffContext,
    policy: LibraryPolicy,
    member_ids: list[str],
    book_ids: list[str],
    count: int,
    now: datetime,
) -> dict[str, int]:
    """Replay ``count`` checkouts at past dates; return outcome counts."""
    counts = {"loans": 0, "returned": 0, "renewed": 0, "rejected": 0}

    for _ in range(count):
        started = now - timedelta(days=random.randint(1, 40), hours=random.randint(0, 8))
        request = CheckoutRequest(
            member_id=random.choice(member_ids),
            book_ids=[random.choice(book_ids)],
            assignment_type=AssignmentType.BORROW,
        )
        try:
            result = CheckoutOrchestrator(session, staff, policy, _fixed_clock(started)).checkout(
                request
            )
        except CirculationError:
            counts["rejected"] += 1
            continue
        loan = result.loans[0]
        counts["loans"] += 1

        if random.random() < 0.2:
            renewed_at = started + timedelta(days=random.randint(1, 10))
            if renewed_at < now:
                try:
                    RenewalHandler(session, staff, policy, _fixed_clock(renewed_at)).renew(
                        RenewalRequest(loan_id=loan.id)
                    )
                    counts["renewed"] += 1
                except CirculationError:
                    counts["rejected"] += 1

        if random.random() < 0.5:
            returned_at = started + timedelta(days=random.randint(1, 30))
            if returned_at < now:
                returns = ReturnOrchestrator(
                    session,
                    staff,
                    policy,
                    _fixed_clock(returned_at),
                    enforce_fee_disposition=False,
                )
                returns.return_book(
                    ReturnRequest(
                        loan_id=loan.id,
                        condition=random.choices(
                            list(ReturnConditionEnum), weights=[30, 45, 15, 7, 3]
                        )[0],
                        fee_disposition=random.choice(list(FeeDisposition)),
                    )
                )
                counts["returned"] += 1

    return counts


def seed_sample_data(
    session: Session,
    staff: StaffContext,
    num_books: int = 40,
    num_members: int = 15,
    num_loans: int = 60,
    seed: int = 42,
) -> dict[str, int]:
    """
    Fill an empty account with sample books, members and loan history.

    Returns:
        Counts of generated rows and circulation outcomes
    """
    fake = Faker()
    Faker.seed(seed)
    random.seed(seed)

    book_ids = generate_books(BookRepository(session, staff.owner_id), fake, num_books)
    member_ids = generate_members(MemberRepository(session, staff.owner_id), fake, num_members)
    logger.info("Generated %d books and %d members", len(book_ids), len(member_ids))

    counts = generate_circulation(
        session, staff, LibraryPolicy(), member_ids, book_ids, num_loans, datetime.now()
    )
    logger.info(
        "Replayed circulation: %(loans)d loans, %(returned)d returned, "
        "%(renewed)d renewed, %(rejected)d rejected",
        counts,
    )
    return {"books": len(book_ids), "members": len(member_ids), **counts}
