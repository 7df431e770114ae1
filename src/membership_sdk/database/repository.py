"""Repository layer for membership persistence operations."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Iterable

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import (
    ConfigurationError,
    NotFoundError,
    PriceLockedError,
)
from .models import (
    Season,
    Family,
    Member,
    Workshop,
    WorkshopPrice,
    Registration,
    Payment,
    Donation,
    Membership,
    SeasonStatus,
    WorkshopStatus,
    PaymentType,
    PaymentStatus,
    MembershipStatus,
)

logger = logging.getLogger(__name__)


def validate_season_rules(membership_amount: Decimal, discount_percent: Decimal) -> None:
    """Check a season's fee and discount.

    Raises:
        ConfigurationError: On a negative fee or a discount outside 0-100.
    """
    if membership_amount < 0:
        raise ConfigurationError(
            f"Membership amount must not be negative (got {membership_amount})",
            field_name="membership_amount",
            value=membership_amount,
        )
    if not Decimal("0") <= discount_percent <= Decimal("100"):
        raise ConfigurationError(
            f"Discount percent must be between 0 and 100 (got {discount_percent})",
            field_name="discount_percent",
            value=discount_percent,
        )


class SeasonRepository:
    """Repository for Season operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        start_year: int,
        end_year: int,
        membership_amount: Decimal = Decimal("0"),
        discount_percent: Decimal = Decimal("0"),
        status: str = SeasonStatus.ACTIVE.value,
    ) -> Season:
        """Create a season after validating its rules and year range.

        Year ranges are half-open, so 2024/2025 and 2025/2026 do not overlap.

        Args:
            start_year: First calendar year of the season.
            end_year: Last calendar year of the season.
            membership_amount: Base membership fee.
            discount_percent: Discount for each additional family member.
            status: Initial season status.

        Returns:
            Created Season instance.

        Raises:
            ConfigurationError: On invalid rules or overlapping years.
        """
        membership_amount = Decimal(membership_amount)
        discount_percent = Decimal(discount_percent)
        validate_season_rules(membership_amount, discount_percent)

        if end_year <= start_year:
            raise ConfigurationError(
                f"Season end year {end_year} must be after start year {start_year}",
                field_name="end_year",
                value=end_year,
            )

        result = await self.session.execute(
            select(Season).where(
                and_(Season.start_year < end_year, Season.end_year > start_year)
            )
        )
        overlapping = result.scalars().first()
        if overlapping is not None:
            raise ConfigurationError(
                f"Season {start_year}/{end_year} overlaps season {overlapping.label}",
                field_name="start_year",
                value=start_year,
            )

        season = Season(
            start_year=start_year,
            end_year=end_year,
            membership_amount=membership_amount,
            discount_percent=discount_percent,
            total_donations=Decimal("0"),
            status=status,
        )
        self.session.add(season)
        await self.session.flush()

        logger.info(f"Created season {season.label} ({season.id})")
        return season

    async def get_by_id(self, season_id: int) -> Optional[Season]:
        return await self.session.get(Season, season_id)

    async def require(self, season_id: int) -> Season:
        """Get a season or raise NotFoundError."""
        season = await self.get_by_id(season_id)
        if season is None:
            raise NotFoundError("Season", season_id)
        return season

    async def deactivate(self, season: Season) -> Season:
        """Freeze a season. Its memberships are no longer reconciled."""
        season.status = SeasonStatus.INACTIVE.value
        await self.session.flush()
        logger.info(f"Season {season.id} deactivated")
        return season

    async def add_donations(self, season: Season, amount: Decimal) -> Season:
        """Accumulate a donation into the season total."""
        season.total_donations = (season.total_donations or Decimal("0")) + amount
        await self.session.flush()
        return season


class FamilyRepository:
    """Repository for Family operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        name: str,
        address: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Family:
        family = Family(name=name, address=address, phone=phone, email=email)
        self.session.add(family)
        await self.session.flush()
        logger.info(f"Created family {family.id}")
        return family

    async def get_by_id(self, family_id: int) -> Optional[Family]:
        return await self.session.get(Family, family_id)

    async def require(self, family_id: int) -> Family:
        """Get a family or raise NotFoundError."""
        family = await self.get_by_id(family_id)
        if family is None:
            raise NotFoundError("Family", family_id)
        return family


class MemberRepository:
    """Repository for Member operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        family_id: int,
        first_name: str,
        last_name: str,
        is_minor: bool = False,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Member:
        member = Member(
            family_id=family_id,
            first_name=first_name,
            last_name=last_name,
            is_minor=is_minor,
            email=email,
            phone=phone,
        )
        self.session.add(member)
        await self.session.flush()
        logger.info(f"Created member {member.id} in family {family_id}")
        return member

    async def get_by_id(self, member_id: int) -> Optional[Member]:
        return await self.session.get(Member, member_id)

    async def require(self, member_id: int) -> Member:
        """Get a member or raise NotFoundError."""
        member = await self.get_by_id(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    async def list_by_family(self, family_id: int) -> List[Member]:
        """List a family's members ordered by id."""
        result = await self.session.execute(
            select(Member).where(Member.family_id == family_id).order_by(Member.id)
        )
        return list(result.scalars().all())


class WorkshopRepository:
    """Repository for Workshop operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        name: str,
        description: Optional[str] = None,
        allow_multiple: bool = False,
        max_per_member: Optional[int] = None,
        status: str = WorkshopStatus.ACTIVE.value,
    ) -> Workshop:
        workshop = Workshop(
            name=name,
            description=description,
            allow_multiple=allow_multiple,
            max_per_member=max_per_member,
            status=status,
        )
        self.session.add(workshop)
        await self.session.flush()
        logger.info(f"Created workshop {workshop.id} ({name})")
        return workshop

    async def require(self, workshop_id: int) -> Workshop:
        """Get a workshop or raise NotFoundError."""
        workshop = await self.session.get(Workshop, workshop_id)
        if workshop is None:
            raise NotFoundError("Workshop", workshop_id)
        return workshop


class WorkshopPriceRepository:
    """Repository for per-season workshop prices."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, workshop_id: int, season_id: int) -> Optional[WorkshopPrice]:
        result = await self.session.execute(
            select(WorkshopPrice).where(
                and_(
                    WorkshopPrice.workshop_id == workshop_id,
                    WorkshopPrice.season_id == season_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_for_season(self, season_id: int) -> List[WorkshopPrice]:
        result = await self.session.execute(
            select(WorkshopPrice)
            .where(WorkshopPrice.season_id == season_id)
            .order_by(WorkshopPrice.workshop_id)
        )
        return list(result.scalars().all())

    async def is_referenced_by_payments(self, workshop_id: int, season_id: int) -> bool:
        """Check whether a non-cancelled payment covers a registration to this workshop.

        Args:
            workshop_id: Workshop identifier.
            season_id: Season identifier.

        Returns:
            True when a family registered to the workshop has paid in the season.
        """
        result = await self.session.execute(
            select(func.count(Payment.id))
            .join(Member, Member.family_id == Payment.family_id)
            .join(Registration, Registration.member_id == Member.id)
            .where(
                and_(
                    Registration.workshop_id == workshop_id,
                    Registration.season_id == season_id,
                    Payment.season_id == season_id,
                    Payment.status != PaymentStatus.CANCELLED.value,
                )
            )
        )
        return (result.scalar_one() or 0) > 0

    async def set_price(self, workshop_id: int, season_id: int, amount: Decimal) -> WorkshopPrice:
        """Create or update the price of a workshop for a season.

        Args:
            workshop_id: Workshop identifier.
            season_id: Season identifier.
            amount: New price.

        Returns:
            The WorkshopPrice row.

        Raises:
            ConfigurationError: If the amount is negative.
            PriceLockedError: If payments already reference the current price.
        """
        amount = Decimal(amount)
        if amount < 0:
            raise ConfigurationError(
                f"Workshop price must not be negative (got {amount})",
                field_name="amount",
                value=amount,
            )

        price = await self.get(workshop_id, season_id)
        if price is None:
            price = WorkshopPrice(workshop_id=workshop_id, season_id=season_id, amount=amount)
            self.session.add(price)
            await self.session.flush()
            logger.info(f"Set price of workshop {workshop_id} in season {season_id} to {amount}")
            return price

        if price.amount == amount:
            return price

        if await self.is_referenced_by_payments(workshop_id, season_id):
            raise PriceLockedError(workshop_id, season_id, amount)

        price.amount = amount
        await self.session.flush()
        logger.info(f"Updated price of workshop {workshop_id} in season {season_id} to {amount}")
        return price


class RegistrationRepository:
    """Repository for workshop registrations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        member_id: int,
        season_id: int,
        workshop_id: int,
        quantity: int = 1,
        registration_date: Optional[date] = None,
    ) -> Registration:
        registration = Registration(
            member_id=member_id,
            season_id=season_id,
            workshop_id=workshop_id,
            quantity=quantity,
            registration_date=registration_date or date.today(),
        )
        self.session.add(registration)
        await self.session.flush()
        logger.info(
            f"Registered member {member_id} to workshop {workshop_id} "
            f"for season {season_id} (x{quantity})"
        )
        return registration

    async def list_for_members(self, member_ids: Iterable[int], season_id: int) -> List[Registration]:
        """List registrations of the given members in a season."""
        member_ids = list(member_ids)
        if not member_ids:
            return []
        result = await self.session.execute(
            select(Registration)
            .where(
                and_(
                    Registration.member_id.in_(member_ids),
                    Registration.season_id == season_id,
                )
            )
            .order_by(Registration.member_id, Registration.id)
        )
        return list(result.scalars().all())

    async def count_for_member_workshop(self, member_id: int, season_id: int, workshop_id: int) -> int:
        """Total quantity a member already holds for a workshop in a season."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Registration.quantity), 0)).where(
                and_(
                    Registration.member_id == member_id,
                    Registration.season_id == season_id,
                    Registration.workshop_id == workshop_id,
                )
            )
        )
        return int(result.scalar_one())


class PaymentRepository:
    """Repository for Payment operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        family_id: int,
        season_id: int,
        amount: Decimal,
        payment_type: str = PaymentType.CASH.value,
        status: str = PaymentStatus.COMPLETED.value,
        payment_date: Optional[date] = None,
        cashing_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Create a new payment record.

        Args:
            family_id: Paying family.
            season_id: Season the payment is for.
            amount: Amount paid.
            payment_type: One of PaymentType.
            status: One of PaymentStatus.
            payment_date: Date the payment was handed over (defaults to today).
            cashing_date: Date the payment is cashed, if deferred.
            reference: Check number or transfer reference.
            notes: Free-form notes.

        Returns:
            Created Payment instance.
        """
        payment = Payment(
            family_id=family_id,
            season_id=season_id,
            amount=Decimal(amount),
            payment_type=PaymentType(payment_type).value,
            status=PaymentStatus(status).value,
            payment_date=payment_date or date.today(),
            cashing_date=cashing_date,
            reference=reference,
            notes=notes,
        )
        self.session.add(payment)
        await self.session.flush()

        logger.info(f"Created payment {payment.id} for family {family_id} with status {payment.status}")
        return payment

    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        return await self.session.get(Payment, payment_id)

    async def require(self, payment_id: int) -> Payment:
        """Get a payment or raise NotFoundError."""
        payment = await self.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def update_status(self, payment: Payment, new_status: str) -> Payment:
        """Update payment status.

        Args:
            payment: Payment instance to update.
            new_status: New payment status.

        Returns:
            Updated Payment instance.
        """
        payment.status = PaymentStatus(new_status).value
        payment.updated_at = datetime.utcnow()
        await self.session.flush()
        logger.info(f"Updated payment {payment.id} status to {payment.status}")
        return payment

    async def list_for_family(
        self,
        family_id: int,
        season_id: int,
        status: Optional[str] = None,
    ) -> List[Payment]:
        """List a family's payments for a season, oldest settlement first."""
        conditions = [Payment.family_id == family_id, Payment.season_id == season_id]
        if status is not None:
            conditions.append(Payment.status == status)
        result = await self.session.execute(
            select(Payment).where(and_(*conditions)).order_by(Payment.payment_date, Payment.id)
        )
        return list(result.scalars().all())


class DonationRepository:
    """Repository for family donations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        family_id: int,
        season_id: int,
        amount: Decimal,
        donation_date: Optional[date] = None,
    ) -> Donation:
        donation = Donation(
            family_id=family_id,
            season_id=season_id,
            amount=Decimal(amount),
            donation_date=donation_date or date.today(),
        )
        self.session.add(donation)
        await self.session.flush()
        logger.info(f"Recorded donation {donation.id} of {amount} for family {family_id}")
        return donation

    async def total_for_family(self, family_id: int, season_id: int) -> Decimal:
        """Sum of a family's donations for a season."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Donation.amount), 0)).where(
                and_(Donation.family_id == family_id, Donation.season_id == season_id)
            )
        )
        return Decimal(str(result.scalar_one()))


class MembershipRepository:
    """Repository for Membership rows.

    Bulk writes belong to the reconciliation store; this repository serves
    reads and the explicit single-row actions (withdrawal, override).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, member_id: int, season_id: int) -> Optional[Membership]:
        result = await self.session.execute(
            select(Membership).where(
                and_(Membership.member_id == member_id, Membership.season_id == season_id)
            )
        )
        return result.scalar_one_or_none()

    async def list_for_family(self, family_id: int, season_id: int) -> List[Membership]:
        """List a family's memberships for a season ordered by member id."""
        result = await self.session.execute(
            select(Membership)
            .join(Member, Member.id == Membership.member_id)
            .where(and_(Member.family_id == family_id, Membership.season_id == season_id))
            .order_by(Membership.member_id)
        )
        return list(result.scalars().all())

    async def set_status(self, member_id: int, season_id: int, status: MembershipStatus) -> Membership:
        """Set one membership's status, creating the row if needed.

        Args:
            member_id: Member identifier.
            season_id: Season identifier.
            status: Status to set.

        Returns:
            The Membership row.
        """
        membership = await self.get(member_id, season_id)
        if membership is None:
            membership = Membership(
                member_id=member_id,
                season_id=season_id,
                status=status.value,
                membership_date=date.today(),
            )
            self.session.add(membership)
        elif membership.status != status.value:
            membership.status = status.value
        await self.session.flush()
        logger.info(f"Membership of member {member_id} in season {season_id} set to {status.value}")
        return membership
