"""Persistence port used by the reconciliation engine."""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..database import (
    Membership,
    MembershipStatus,
    PaymentStatus,
    PaymentType,
    ReconciliationState,
    SeasonStatus,
    DonationRepository,
    FamilyRepository,
    MemberRepository,
    MembershipRepository,
    PaymentRepository,
    RegistrationRepository,
    SeasonRepository,
    WorkshopPriceRepository,
)
from ..exceptions import ConcurrencyConflict
from .models import (
    FamilySnapshot,
    MemberSnapshot,
    PaymentSnapshot,
    ReconciliationOutcome,
    RegistrationSnapshot,
    SeasonSnapshot,
)

logger = logging.getLogger(__name__)


class ReconciliationStoreBase(ABC):
    """Read and write port of a family-season reconciliation run."""

    @abstractmethod
    async def load_family_with_members_and_registrations(
        self,
        family_id: int,
        season_id: int,
    ) -> FamilySnapshot:
        """Load a family, its members, their season registrations and memberships.

        Raises:
            NotFoundError: If the family does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def load_season_with_prices(self, season_id: int) -> SeasonSnapshot:
        """Load a season and its workshop prices.

        Raises:
            NotFoundError: If the season does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def load_completed_payments(self, family_id: int, season_id: int) -> List[PaymentSnapshot]:
        """Load the family's completed payments for the season."""
        raise NotImplementedError

    @abstractmethod
    async def save_memberships(
        self,
        family_id: int,
        season_id: int,
        statuses: Dict[int, MembershipStatus],
        outcome: Optional[ReconciliationOutcome] = None,
    ) -> None:
        """Persist the recomputed memberships of a family in one atomic step.

        Raises:
            ConcurrencyConflict: If a concurrent run wrote the same family+season.
        """
        raise NotImplementedError


class SQLAlchemyReconciliationStore(ReconciliationStoreBase):
    """Reconciliation store backed by an async SQLAlchemy session.

    The store never commits; the caller owns the transaction so that
    load, compute and persist form one unit of work.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.family_repo = FamilyRepository(session)
        self.member_repo = MemberRepository(session)
        self.season_repo = SeasonRepository(session)
        self.price_repo = WorkshopPriceRepository(session)
        self.registration_repo = RegistrationRepository(session)
        self.payment_repo = PaymentRepository(session)
        self.donation_repo = DonationRepository(session)
        self.membership_repo = MembershipRepository(session)
        # State rows seen at load time; their version guards the final write
        self._states: Dict[Tuple[int, int], ReconciliationState] = {}

    async def _load_state(self, family_id: int, season_id: int) -> Optional[ReconciliationState]:
        # Row lock where the backend supports it; SQLite serializes writers anyway
        result = await self.session.execute(
            select(ReconciliationState)
            .where(
                and_(
                    ReconciliationState.family_id == family_id,
                    ReconciliationState.season_id == season_id,
                )
            )
            .with_for_update()
        )
        state = result.scalar_one_or_none()
        if state is not None:
            self._states[(family_id, season_id)] = state
        return state

    async def load_family_with_members_and_registrations(
        self,
        family_id: int,
        season_id: int,
    ) -> FamilySnapshot:
        family = await self.family_repo.require(family_id)
        await self._load_state(family_id, season_id)

        members = await self.member_repo.list_by_family(family_id)
        member_ids = [m.id for m in members]
        registrations = await self.registration_repo.list_for_members(member_ids, season_id)
        memberships = {
            m.member_id: m for m in await self.membership_repo.list_for_family(family_id, season_id)
        }
        donation_credit = await self.donation_repo.total_for_family(family_id, season_id)

        registrations_by_member: Dict[int, List[RegistrationSnapshot]] = {}
        for r in registrations:
            registrations_by_member.setdefault(r.member_id, []).append(RegistrationSnapshot(
                id=r.id,
                workshop_id=r.workshop_id,
                season_id=r.season_id,
                quantity=r.quantity,
            ))

        snapshots = []
        for member in members:
            membership = memberships.get(member.id)
            snapshots.append(MemberSnapshot(
                id=member.id,
                family_id=family_id,
                registrations=registrations_by_member.get(member.id, []),
                membership_status=MembershipStatus(membership.status) if membership else None,
            ))

        return FamilySnapshot(
            id=family.id,
            name=family.name,
            members=snapshots,
            donation_credit=donation_credit,
        )

    async def load_season_with_prices(self, season_id: int) -> SeasonSnapshot:
        season = await self.season_repo.require(season_id)
        prices = await self.price_repo.list_for_season(season_id)
        return SeasonSnapshot(
            id=season.id,
            start_year=season.start_year,
            end_year=season.end_year,
            status=SeasonStatus(season.status),
            membership_amount=season.membership_amount,
            discount_percent=season.discount_percent,
            total_donations=season.total_donations,
            workshop_prices={p.workshop_id: p.amount for p in prices},
        )

    async def load_completed_payments(self, family_id: int, season_id: int) -> List[PaymentSnapshot]:
        payments = await self.payment_repo.list_for_family(
            family_id,
            season_id,
            status=PaymentStatus.COMPLETED.value,
        )
        return [
            PaymentSnapshot(
                id=p.id,
                family_id=p.family_id,
                season_id=p.season_id,
                amount=p.amount,
                payment_type=PaymentType(p.payment_type),
                status=PaymentStatus(p.status),
                payment_date=p.payment_date,
                cashing_date=p.cashing_date,
            )
            for p in payments
        ]

    async def save_memberships(
        self,
        family_id: int,
        season_id: int,
        statuses: Dict[int, MembershipStatus],
        outcome: Optional[ReconciliationOutcome] = None,
    ) -> None:
        fees = {f.member_id: f for f in outcome.fees.member_fees} if outcome else {}
        existing = {
            m.member_id: m for m in await self.membership_repo.list_for_family(family_id, season_id)
        }

        created = updated = skipped = 0
        for member_id, status in statuses.items():
            fee = fees.get(member_id)
            membership = existing.get(member_id)

            if membership is None:
                membership = Membership(
                    member_id=member_id,
                    season_id=season_id,
                    status=status.value,
                    family_order=fee.family_order if fee else 1,
                    amount=fee.net if fee else 0,
                    membership_date=date.today(),
                )
                self.session.add(membership)
                created += 1
                continue

            if membership.status == MembershipStatus.CANCELLED.value:
                logger.warning(
                    f"Refusing to overwrite cancelled membership of member {member_id} "
                    f"in season {season_id}"
                )
                skipped += 1
                continue

            changed = False
            if membership.status != status.value:
                membership.status = status.value
                changed = True
            if fee is not None and membership.family_order != fee.family_order:
                membership.family_order = fee.family_order
                changed = True
            if fee is not None and membership.amount != fee.net:
                membership.amount = fee.net
                changed = True
            updated += int(changed)

        state = self._states.get((family_id, season_id))
        if state is None:
            state = await self._load_state(family_id, season_id)
        if state is None:
            state = ReconciliationState(family_id=family_id, season_id=season_id)
            self.session.add(state)
        if outcome is not None:
            state.total_due = outcome.total_due
            state.total_received = outcome.total_received
        state.last_reconciled_at = datetime.utcnow()

        try:
            await self.session.flush()
        except (StaleDataError, IntegrityError) as e:
            logger.warning(
                f"Concurrent reconciliation detected for family {family_id}, "
                f"season {season_id}: {type(e).__name__}"
            )
            raise ConcurrencyConflict(family_id, season_id) from e

        logger.info(
            f"Saved memberships for family {family_id}, season {season_id}: "
            f"{created} created, {updated} updated, {skipped} skipped, "
            f"{len(statuses) - created - updated - skipped} unchanged"
        )
