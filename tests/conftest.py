"""Shared test fixtures and configuration."""

import os
import pytest
from datetime import date
from decimal import Decimal
from typing import List, Optional

# Set up test environment variables before importing modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MEMBERSHIP_LOG_LEVEL", "WARNING")

from membership_sdk.database.models import MembershipStatus, PaymentStatus, SeasonStatus
from membership_sdk.reconciliation.models import (
    FamilySnapshot,
    MemberSnapshot,
    PaymentSnapshot,
    RegistrationSnapshot,
    SeasonSnapshot,
)


def make_season(
    season_id: int = 1,
    membership_amount: str = "100",
    discount_percent: str = "20",
    status: SeasonStatus = SeasonStatus.ACTIVE,
    prices: Optional[dict] = None,
) -> SeasonSnapshot:
    """Build a season snapshot with string amounts converted to Decimal."""
    return SeasonSnapshot(
        id=season_id,
        start_year=2025,
        end_year=2026,
        status=status,
        membership_amount=Decimal(membership_amount),
        discount_percent=Decimal(discount_percent),
        workshop_prices={k: Decimal(v) for k, v in (prices or {}).items()},
    )


def make_member(
    member_id: int,
    family_id: int = 1,
    season_id: int = 1,
    workshops: Optional[dict] = None,
    status: Optional[MembershipStatus] = None,
) -> MemberSnapshot:
    """Build a member snapshot registered to ``workshops`` (workshop_id -> quantity)."""
    registrations = [
        RegistrationSnapshot(
            id=member_id * 100 + workshop_id,
            workshop_id=workshop_id,
            season_id=season_id,
            quantity=quantity,
        )
        for workshop_id, quantity in (workshops or {}).items()
    ]
    return MemberSnapshot(
        id=member_id,
        family_id=family_id,
        registrations=registrations,
        membership_status=status,
    )


def make_family(members: List[MemberSnapshot], family_id: int = 1, donation: str = "0") -> FamilySnapshot:
    return FamilySnapshot(
        id=family_id,
        name="Martin",
        members=members,
        donation_credit=Decimal(donation),
    )


def make_payment(
    payment_id: int,
    amount: str,
    season_id: int = 1,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    payment_date: date = date(2025, 9, 15),
    cashing_date: Optional[date] = None,
    family_id: int = 1,
) -> PaymentSnapshot:
    return PaymentSnapshot(
        id=payment_id,
        family_id=family_id,
        season_id=season_id,
        amount=Decimal(amount),
        status=status,
        payment_date=payment_date,
        cashing_date=cashing_date,
    )


@pytest.fixture
def season():
    """Active season: 100.00 membership, 20% sibling discount, workshop 1 at 50.00."""
    return make_season(prices={1: "50", 2: "30"})


@pytest.fixture
def three_members():
    """Three members with membership intent and no workshops."""
    return [
        make_member(1, status=MembershipStatus.PENDING),
        make_member(2, status=MembershipStatus.PENDING),
        make_member(3, status=MembershipStatus.PENDING),
    ]


# Database fixtures for integration tests
@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    from membership_sdk.database import Base, create_async_engine

    engine = create_async_engine(
        database_url="sqlite+aiosqlite:///:memory:",
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test engine."""
    from membership_sdk.database import get_async_session_factory

    return get_async_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory):
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded(db_session):
    """Seed an active season, a priced workshop and a family of three.

    Returns a dict of the created rows' ids.
    """
    from membership_sdk.database import (
        FamilyRepository,
        MemberRepository,
        SeasonRepository,
        WorkshopPriceRepository,
        WorkshopRepository,
    )

    season = await SeasonRepository(db_session).create(
        start_year=2025,
        end_year=2026,
        membership_amount=Decimal("100"),
        discount_percent=Decimal("20"),
    )
    workshop = await WorkshopRepository(db_session).create(name="Pottery")
    await WorkshopPriceRepository(db_session).set_price(workshop.id, season.id, Decimal("50"))

    family = await FamilyRepository(db_session).create(name="Martin", email="martin@example.org")
    member_repo = MemberRepository(db_session)
    members = [
        await member_repo.create(family.id, "Alice", "Martin"),
        await member_repo.create(family.id, "Bruno", "Martin", is_minor=True),
        await member_repo.create(family.id, "Chloe", "Martin", is_minor=True),
    ]
    await db_session.commit()

    return {
        "season_id": season.id,
        "workshop_id": workshop.id,
        "family_id": family.id,
        "member_ids": [m.id for m in members],
    }
