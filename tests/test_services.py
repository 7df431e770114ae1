"""Tests for the membership service layer."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from membership_sdk.database import (
    MembershipStatus,
    PaymentStatus,
    MembershipRepository,
    SeasonRepository,
    WorkshopPriceRepository,
    WorkshopRepository,
)
from membership_sdk.exceptions import (
    NotFoundError,
    PricingNotFoundError,
    RegistrationError,
    SeasonInactiveError,
)
from membership_sdk.services import MembershipService


@pytest.fixture
async def service(db_session):
    """Create a MembershipService bound to the test session."""
    return MembershipService(db_session)


async def _statuses(db_session, seeded):
    rows = await MembershipRepository(db_session).list_for_family(seeded["family_id"], seeded["season_id"])
    return {r.member_id: r.status for r in rows}


async def _enroll_everyone(db_session, seeded):
    repo = MembershipRepository(db_session)
    for member_id in seeded["member_ids"]:
        await repo.set_status(member_id, seeded["season_id"], MembershipStatus.PENDING)


class TestPayments:
    """Tests for payment actions."""

    async def test_full_payment_activates_family(self, service, db_session, seeded):
        """Test recording a full payment activates every enrolled member."""
        await _enroll_everyone(db_session, seeded)

        payment = await service.record_payment(seeded["family_id"], seeded["season_id"], Decimal("260"))

        assert payment.status == PaymentStatus.COMPLETED.value
        assert set((await _statuses(db_session, seeded)).values()) == {"active"}

    async def test_non_positive_amount_rejected(self, service, seeded):
        """Test zero and negative payments are rejected."""
        with pytest.raises(ValueError):
            await service.record_payment(seeded["family_id"], seeded["season_id"], Decimal("0"))

    async def test_unknown_family(self, service, seeded):
        """Test paying for an unknown family raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.record_payment(999, seeded["season_id"], Decimal("10"))

    async def test_post_dated_check_stays_pending(self, service, db_session, seeded):
        """Test a check cashed in the future does not count until it is completed."""
        await _enroll_everyone(db_session, seeded)

        payment = await service.record_payment(
            seeded["family_id"],
            seeded["season_id"],
            Decimal("260"),
            payment_type="check",
            cashing_date=date.today() + timedelta(days=30),
        )

        assert payment.status == PaymentStatus.PENDING.value
        assert set((await _statuses(db_session, seeded)).values()) == {"pending"}

        await service.update_payment_status(payment.id, PaymentStatus.COMPLETED.value)

        assert set((await _statuses(db_session, seeded)).values()) == {"active"}

    async def test_cancel_payment_reverts_statuses(self, service, db_session, seeded):
        """Test cancelling a payment keeps the row and downgrades members."""
        await _enroll_everyone(db_session, seeded)
        payment = await service.record_payment(seeded["family_id"], seeded["season_id"], Decimal("180"))
        assert await _statuses(db_session, seeded) == {
            seeded["member_ids"][0]: "active",
            seeded["member_ids"][1]: "active",
            seeded["member_ids"][2]: "pending",
        }

        cancelled = await service.cancel_payment(payment.id)

        assert cancelled.id == payment.id
        assert cancelled.status == PaymentStatus.CANCELLED.value
        assert set((await _statuses(db_session, seeded)).values()) == {"pending"}


class TestRegisterWorkshop:
    """Tests for workshop registration."""

    async def test_register_creates_pending_membership(self, service, db_session, seeded):
        """Test registering gives intent and prices the membership with the workshop."""
        member_id = seeded["member_ids"][0]

        registration = await service.register_workshop(member_id, seeded["season_id"], seeded["workshop_id"])

        membership = await MembershipRepository(db_session).get(member_id, seeded["season_id"])
        assert registration.quantity == 1
        assert membership.status == MembershipStatus.PENDING.value
        assert membership.amount == Decimal("150")

    async def test_multiple_not_allowed(self, service, seeded):
        """Test quantity above one is rejected when the workshop forbids it."""
        with pytest.raises(RegistrationError) as exc_info:
            await service.register_workshop(
                seeded["member_ids"][0], seeded["season_id"], seeded["workshop_id"], quantity=2
            )

        assert exc_info.value.code == "REGISTRATION_INVALID"
        assert exc_info.value.quantity == 2

    async def test_second_registration_not_allowed(self, service, seeded):
        """Test a member cannot register twice to a single-slot workshop."""
        member_id = seeded["member_ids"][0]
        await service.register_workshop(member_id, seeded["season_id"], seeded["workshop_id"])

        with pytest.raises(RegistrationError):
            await service.register_workshop(member_id, seeded["season_id"], seeded["workshop_id"])

    async def test_max_per_member(self, service, db_session, seeded):
        """Test the per-member cap counts quantities already held."""
        workshop = await WorkshopRepository(db_session).create(name="Drums", allow_multiple=True, max_per_member=3)
        await WorkshopPriceRepository(db_session).set_price(workshop.id, seeded["season_id"], Decimal("20"))
        member_id = seeded["member_ids"][0]

        await service.register_workshop(member_id, seeded["season_id"], workshop.id, quantity=2)
        with pytest.raises(RegistrationError):
            await service.register_workshop(member_id, seeded["season_id"], workshop.id, quantity=2)

        membership = await MembershipRepository(db_session).get(member_id, seeded["season_id"])
        assert membership.amount == Decimal("140")

    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_quantity_must_be_positive(self, service, seeded, quantity):
        """Test quantity below one is rejected."""
        with pytest.raises(RegistrationError):
            await service.register_workshop(
                seeded["member_ids"][0], seeded["season_id"], seeded["workshop_id"], quantity=quantity
            )

    async def test_inactive_workshop(self, service, db_session, seeded):
        """Test closed workshops reject registrations."""
        workshop = await WorkshopRepository(db_session).create(name="Chess", status="inactive")
        await WorkshopPriceRepository(db_session).set_price(workshop.id, seeded["season_id"], Decimal("10"))

        with pytest.raises(RegistrationError):
            await service.register_workshop(seeded["member_ids"][0], seeded["season_id"], workshop.id)

    async def test_unpriced_workshop(self, service, db_session, seeded):
        """Test registering to a workshop without a season price is rejected."""
        workshop = await WorkshopRepository(db_session).create(name="Choir")

        with pytest.raises(PricingNotFoundError):
            await service.register_workshop(seeded["member_ids"][0], seeded["season_id"], workshop.id)


class TestMembershipActions:
    """Tests for withdrawal and administrative override."""

    async def test_withdraw_reorders_family(self, service, db_session, seeded):
        """Test a withdrawn first member hands the full fee to the next sibling."""
        await _enroll_everyone(db_session, seeded)
        first, second, third = seeded["member_ids"]

        cancelled = await service.withdraw_member(first, seeded["season_id"])

        repo = MembershipRepository(db_session)
        assert cancelled.status == MembershipStatus.CANCELLED.value
        second_row = await repo.get(second, seeded["season_id"])
        assert second_row.family_order == 1
        assert second_row.amount == Decimal("100")
        assert (await repo.get(third, seeded["season_id"])).family_order == 2

    async def test_reconcile_never_reactivates_withdrawn(self, service, db_session, seeded):
        """Test later payments do not overwrite a cancelled membership."""
        await _enroll_everyone(db_session, seeded)
        first = seeded["member_ids"][0]
        await service.withdraw_member(first, seeded["season_id"])

        await service.record_payment(seeded["family_id"], seeded["season_id"], Decimal("1000"))

        statuses = await _statuses(db_session, seeded)
        assert statuses[first] == "cancelled"
        assert statuses[seeded["member_ids"][1]] == "active"

    async def test_override_on_inactive_season(self, service, db_session, seeded):
        """Test administrators can still override statuses of a closed season."""
        await _enroll_everyone(db_session, seeded)
        season_repo = SeasonRepository(db_session)
        await season_repo.deactivate(await season_repo.require(seeded["season_id"]))

        membership = await service.override_membership_status(
            seeded["member_ids"][0], seeded["season_id"], MembershipStatus.ACTIVE
        )

        assert membership.status == MembershipStatus.ACTIVE.value

    async def test_writes_on_inactive_season_rejected(self, service, db_session, seeded):
        """Test payments, registrations, withdrawals and donations need an active season."""
        season_repo = SeasonRepository(db_session)
        await season_repo.deactivate(await season_repo.require(seeded["season_id"]))

        with pytest.raises(SeasonInactiveError):
            await service.record_payment(seeded["family_id"], seeded["season_id"], Decimal("10"))
        with pytest.raises(SeasonInactiveError):
            await service.register_workshop(seeded["member_ids"][0], seeded["season_id"], seeded["workshop_id"])
        with pytest.raises(SeasonInactiveError):
            await service.withdraw_member(seeded["member_ids"][0], seeded["season_id"])
        with pytest.raises(SeasonInactiveError):
            await service.record_donation(seeded["family_id"], seeded["season_id"], Decimal("10"))


class TestDonations:
    """Tests for donation recording."""

    async def test_donation_updates_season_and_due(self, service, db_session, seeded):
        """Test a donation accumulates on the season and reduces the family due."""
        await _enroll_everyone(db_session, seeded)

        await service.record_donation(seeded["family_id"], seeded["season_id"], Decimal("60"))
        await service.record_payment(seeded["family_id"], seeded["season_id"], Decimal("200"))

        season = await SeasonRepository(db_session).require(seeded["season_id"])
        assert season.total_donations == Decimal("60")
        assert set((await _statuses(db_session, seeded)).values()) == {"active"}

    async def test_donation_covering_due_activates(self, service, db_session, seeded):
        """Test a donation larger than the due activates without any payment."""
        await _enroll_everyone(db_session, seeded)

        await service.record_donation(seeded["family_id"], seeded["season_id"], Decimal("300"))

        assert set((await _statuses(db_session, seeded)).values()) == {"active"}

    async def test_non_positive_donation_rejected(self, service, seeded):
        """Test zero donations are rejected."""
        with pytest.raises(ValueError):
            await service.record_donation(seeded["family_id"], seeded["season_id"], Decimal("0"))
