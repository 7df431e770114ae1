"""Membership status reconciliation for a family and season."""

import logging
from decimal import Decimal
from typing import Dict, List, Iterable, Optional, Tuple

from ..database.models import MembershipStatus, SeasonStatus
from ..exceptions import SeasonInactiveError
from .fees import FeeCalculator
from .models import (
    ZERO,
    FamilySnapshot,
    FeeBreakdown,
    MemberSnapshot,
    PaymentSnapshot,
    PaymentTotals,
    ReconciliationOutcome,
    SeasonSnapshot,
)
from .payments import PaymentAggregator
from .pricing import PricingResolver

logger = logging.getLogger(__name__)


class StatusReconciler:
    """Derives every member's membership status for one season.

    The family is evaluated as a unit because the sibling discount and the
    shared payment pool couple its members. The result is a pure function
    of the snapshots it is given.

    Transition rules:
    - nothing due, or received >= due: every intent member is ACTIVE
    - nothing received: every intent member is PENDING
    - partial payment: members are funded in ascending member id order;
      each member whose net fee fits in the remaining pool is ACTIVE, the
      others are PENDING. The walk continues past a member it cannot
      fund, so a cheaper later member can still become ACTIVE.

    CANCELLED is never assigned here. Members already CANCELLED keep their
    row untouched and take no part in the computation.
    """

    def __init__(
        self,
        fee_calculator: Optional[FeeCalculator] = None,
        payment_aggregator: Optional[PaymentAggregator] = None,
    ):
        self.fee_calculator = fee_calculator or FeeCalculator(PricingResolver())
        self.payment_aggregator = payment_aggregator or PaymentAggregator()

    @staticmethod
    def _has_intent(member: MemberSnapshot, season_id: int) -> bool:
        status = member.membership_status
        if status is None:
            return any(r.season_id == season_id for r in member.registrations)
        if status == MembershipStatus.CANCELLED:
            return False
        if status == MembershipStatus.PENDING or status == MembershipStatus.ACTIVE:
            return True
        raise ValueError(f"Unhandled membership status: {status}")

    def split_members(
        self,
        members: Iterable[MemberSnapshot],
        season_id: int,
    ) -> Tuple[List[MemberSnapshot], List[int]]:
        """Separate intent members from members whose membership is cancelled.

        Returns:
            Tuple of (intent members, cancelled member ids).
        """
        intent: List[MemberSnapshot] = []
        cancelled: List[int] = []
        for member in members:
            if member.membership_status == MembershipStatus.CANCELLED:
                cancelled.append(member.id)
            elif self._has_intent(member, season_id):
                intent.append(member)
        return intent, sorted(cancelled)

    @staticmethod
    def assign_statuses(fees: FeeBreakdown, totals: PaymentTotals) -> Dict[int, MembershipStatus]:
        """Apply the transition rules to an already computed breakdown."""
        total_due = fees.total_due
        received = totals.total_received

        if total_due == ZERO or received >= total_due:
            return {f.member_id: MembershipStatus.ACTIVE for f in fees.member_fees}

        if received <= ZERO:
            return {f.member_id: MembershipStatus.PENDING for f in fees.member_fees}

        # Donation credit joins the pool so it funds members the same way cash does
        remaining: Decimal = received + fees.donation_applied
        statuses: Dict[int, MembershipStatus] = {}
        for fee in sorted(fees.member_fees, key=lambda f: f.family_order):
            if fee.net <= remaining:
                statuses[fee.member_id] = MembershipStatus.ACTIVE
                remaining -= fee.net
            else:
                statuses[fee.member_id] = MembershipStatus.PENDING
        return statuses

    def reconcile(
        self,
        family: FamilySnapshot,
        season: SeasonSnapshot,
        payments: Iterable[PaymentSnapshot],
    ) -> ReconciliationOutcome:
        """Compute the membership statuses of a family for a season.

        Args:
            family: Family snapshot with members and registrations.
            season: Season snapshot with rules and prices.
            payments: The family's payments.

        Returns:
            ReconciliationOutcome with statuses keyed by member id.

        Raises:
            SeasonInactiveError: If the season is inactive.
            ConfigurationError: On invalid season rules.
            PricingNotFoundError: If a registration references an unpriced workshop.
        """
        if season.status == SeasonStatus.INACTIVE:
            raise SeasonInactiveError(season.id)
        if season.status != SeasonStatus.ACTIVE:
            raise ValueError(f"Unhandled season status: {season.status}")

        return self.compute(family, season, payments)

    def compute(
        self,
        family: FamilySnapshot,
        season: SeasonSnapshot,
        payments: Iterable[PaymentSnapshot],
    ) -> ReconciliationOutcome:
        """Same as reconcile() without the season status gate.

        Used for read-only views such as balances of closed seasons.
        """
        intent, cancelled = self.split_members(family.members, season.id)

        fees = self.fee_calculator.calculate(intent, season, family.donation_credit)
        totals = self.payment_aggregator.aggregate(payments, season.id)
        statuses = self.assign_statuses(fees, totals)

        outcome = ReconciliationOutcome(
            family_id=family.id,
            season_id=season.id,
            fees=fees,
            payments=totals,
            statuses=dict(sorted(statuses.items())),
            skipped_cancelled=cancelled,
        )

        if outcome.is_noop:
            logger.info(f"Family {family.id} has no member with intent in season {season.id}")
        else:
            active = sum(1 for s in outcome.statuses.values() if s == MembershipStatus.ACTIVE)
            logger.info(
                f"Family {family.id} season {season.id}: due {outcome.total_due}, "
                f"received {outcome.total_received}, "
                f"{active}/{len(outcome.statuses)} active"
            )
        return outcome
