"""Membership service layer: write-side actions followed by reconciliation."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .database import (
    Donation,
    Membership,
    MembershipStatus,
    Payment,
    PaymentStatus,
    PaymentType,
    Registration,
    Season,
    WorkshopStatus,
    DonationRepository,
    FamilyRepository,
    MemberRepository,
    MembershipRepository,
    PaymentRepository,
    RegistrationRepository,
    SeasonRepository,
    WorkshopPriceRepository,
    WorkshopRepository,
)
from .exceptions import PricingNotFoundError, RegistrationError, SeasonInactiveError
from .reconciliation import ReconciliationOutcome, ReconciliationService

logger = logging.getLogger(__name__)


def determine_payment_status(cashing_date: Optional[date], today: Optional[date] = None) -> PaymentStatus:
    """Derive the status of a new payment from its cashing date.

    A payment without a cashing date, or cashed today or earlier, is
    completed. A payment cashed later (a post-dated check) is pending.
    """
    if cashing_date is None:
        return PaymentStatus.COMPLETED
    today = today or date.today()
    return PaymentStatus.COMPLETED if cashing_date <= today else PaymentStatus.PENDING


class MembershipService:
    """Service class for the actions that change reconciliation inputs.

    Every action writes through the repositories and then reconciles the
    affected family in the same session, so the caller's commit covers
    both the change and the recomputed memberships.
    """

    def __init__(self, session: AsyncSession, reconciliation: Optional[ReconciliationService] = None):
        """Initialize the service with a database session.

        Args:
            session: AsyncSession instance for database operations.
            reconciliation: Optional reconciliation service bound to the same session.
        """
        self.session = session
        self.season_repo = SeasonRepository(session)
        self.family_repo = FamilyRepository(session)
        self.member_repo = MemberRepository(session)
        self.workshop_repo = WorkshopRepository(session)
        self.price_repo = WorkshopPriceRepository(session)
        self.registration_repo = RegistrationRepository(session)
        self.payment_repo = PaymentRepository(session)
        self.donation_repo = DonationRepository(session)
        self.membership_repo = MembershipRepository(session)
        self.reconciliation = reconciliation or ReconciliationService(session)

    async def _require_active_season(self, season_id: int) -> Season:
        season = await self.season_repo.require(season_id)
        if not season.is_active:
            raise SeasonInactiveError(season_id)
        return season

    async def _reconcile(self, family_id: int, season_id: int) -> ReconciliationOutcome:
        return await self.reconciliation.reconcile(family_id, season_id)

    async def record_payment(
        self,
        family_id: int,
        season_id: int,
        amount: Decimal,
        payment_type: str = PaymentType.CASH.value,
        payment_date: Optional[date] = None,
        cashing_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Record a payment and reconcile the paying family.

        Args:
            family_id: Paying family.
            season_id: Season the payment is for.
            amount: Amount paid, strictly positive.
            payment_type: One of PaymentType.
            payment_date: Date the payment was handed over.
            cashing_date: Deferred cashing date, if any.
            reference: Check number or transfer reference.
            notes: Free-form notes.

        Returns:
            Created Payment instance.

        Raises:
            ValueError: If the amount is not positive.
            NotFoundError: If the family or season does not exist.
            SeasonInactiveError: If the season is inactive.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError(f"Payment amount must be positive (got {amount})")

        await self.family_repo.require(family_id)
        await self._require_active_season(season_id)

        status = determine_payment_status(cashing_date)
        payment = await self.payment_repo.create(
            family_id=family_id,
            season_id=season_id,
            amount=amount,
            payment_type=payment_type,
            status=status.value,
            payment_date=payment_date,
            cashing_date=cashing_date,
            reference=reference,
            notes=notes,
        )

        await self._reconcile(family_id, season_id)
        return payment

    async def update_payment_status(self, payment_id: int, status: str) -> Payment:
        """Change a payment's status and reconcile its family.

        Args:
            payment_id: Payment to update.
            status: New PaymentStatus value.

        Returns:
            Updated Payment instance.
        """
        payment = await self.payment_repo.require(payment_id)
        await self._require_active_season(payment.season_id)

        if payment.status == PaymentStatus(status).value:
            return payment

        payment = await self.payment_repo.update_status(payment, status)
        await self._reconcile(payment.family_id, payment.season_id)
        return payment

    async def cancel_payment(self, payment_id: int) -> Payment:
        """Cancel a payment. The row is kept but no longer counts as received."""
        return await self.update_payment_status(payment_id, PaymentStatus.CANCELLED.value)

    async def register_workshop(
        self,
        member_id: int,
        season_id: int,
        workshop_id: int,
        quantity: int = 1,
        registration_date: Optional[date] = None,
    ) -> Registration:
        """Register a member to a workshop and reconcile the member's family.

        Args:
            member_id: Member to register.
            season_id: Season of the registration.
            workshop_id: Workshop to register to.
            quantity: Number of slots, at least 1.
            registration_date: Optional registration date.

        Returns:
            Created Registration instance.

        Raises:
            RegistrationError: If the workshop's rules reject the registration.
            PricingNotFoundError: If the workshop has no price for the season.
            SeasonInactiveError: If the season is inactive.
        """
        member = await self.member_repo.require(member_id)
        await self._require_active_season(season_id)
        workshop = await self.workshop_repo.require(workshop_id)

        if quantity < 1:
            raise RegistrationError(
                f"Quantity must be at least 1 (got {quantity})",
                workshop_id=workshop_id,
                quantity=quantity,
            )
        if workshop.status != WorkshopStatus.ACTIVE.value:
            raise RegistrationError(
                f"Workshop {workshop_id} is not open for registration",
                workshop_id=workshop_id,
                quantity=quantity,
            )

        held = await self.registration_repo.count_for_member_workshop(member_id, season_id, workshop_id)
        if not workshop.allow_multiple and held + quantity > 1:
            raise RegistrationError(
                f"Workshop {workshop_id} does not allow multiple registrations",
                workshop_id=workshop_id,
                quantity=quantity,
            )
        if workshop.allow_multiple and workshop.max_per_member and held + quantity > workshop.max_per_member:
            raise RegistrationError(
                f"Workshop {workshop_id} allows at most {workshop.max_per_member} "
                f"registrations per member",
                workshop_id=workshop_id,
                quantity=quantity,
            )

        if await self.price_repo.get(workshop_id, season_id) is None:
            raise PricingNotFoundError(workshop_id, season_id)

        registration = await self.registration_repo.create(
            member_id=member_id,
            season_id=season_id,
            workshop_id=workshop_id,
            quantity=quantity,
            registration_date=registration_date,
        )

        await self._reconcile(member.family_id, season_id)
        return registration

    async def withdraw_member(self, member_id: int, season_id: int) -> Membership:
        """Cancel a member's membership and reconcile the rest of the family.

        The withdrawn member leaves the sibling ordering, so the remaining
        members' discounts and dues are recomputed.
        """
        member = await self.member_repo.require(member_id)
        await self._require_active_season(season_id)

        membership = await self.membership_repo.set_status(member_id, season_id, MembershipStatus.CANCELLED)
        logger.info(f"Member {member_id} withdrew from season {season_id}")

        await self._reconcile(member.family_id, season_id)
        return membership

    async def override_membership_status(
        self,
        member_id: int,
        season_id: int,
        status: MembershipStatus,
    ) -> Membership:
        """Administratively set a membership status.

        Allowed on inactive seasons. No reconciliation follows, so on an
        active season the next reconciliation recomputes any non-cancelled
        override.
        """
        await self.member_repo.require(member_id)
        await self.season_repo.require(season_id)

        status = MembershipStatus(status)
        membership = await self.membership_repo.set_status(member_id, season_id, status)
        logger.warning(f"Membership of member {member_id} in season {season_id} overridden to {status.value}")
        return membership

    async def record_donation(
        self,
        family_id: int,
        season_id: int,
        amount: Decimal,
        donation_date: Optional[date] = None,
    ) -> Donation:
        """Record a donation, add it to the season total and reconcile the family.

        Raises:
            ValueError: If the amount is not positive.
            SeasonInactiveError: If the season is inactive.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError(f"Donation amount must be positive (got {amount})")

        await self.family_repo.require(family_id)
        season = await self._require_active_season(season_id)

        donation = await self.donation_repo.create(
            family_id=family_id,
            season_id=season_id,
            amount=amount,
            donation_date=donation_date,
        )
        await self.season_repo.add_donations(season, amount)

        await self._reconcile(family_id, season_id)
        return donation
