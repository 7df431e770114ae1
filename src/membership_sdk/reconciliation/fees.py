"""Fee calculation for one family in one season."""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from .models import (
    ZERO,
    FeeBreakdown,
    MemberFee,
    MemberSnapshot,
    SeasonSnapshot,
)
from .pricing import HUNDRED, PricingResolver

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def order_members(members: Sequence[MemberSnapshot]) -> List[MemberSnapshot]:
    """Deterministic family ordering: member id ascending."""
    return sorted(members, key=lambda m: m.id)


class FeeCalculator:
    """Computes per-member net dues and the family aggregate due."""

    def __init__(self, pricing: Optional[PricingResolver] = None):
        self.pricing = pricing or PricingResolver()

    def _workshop_fees(self, member: MemberSnapshot, season: SeasonSnapshot) -> Decimal:
        total = ZERO
        for registration in member.registrations:
            if registration.season_id != season.id:
                continue
            fee = self.pricing.resolve_workshop_fee(season, registration.workshop_id)
            total += fee * registration.quantity
        return total

    def calculate(
        self,
        members: Sequence[MemberSnapshot],
        season: SeasonSnapshot,
        donation_credit: Decimal = ZERO,
    ) -> FeeBreakdown:
        """Compute the fee breakdown of the given intent members.

        The first member in id order pays the full membership fee; every
        later member gets the season discount on the membership fee only.
        Workshop fees are never discounted. Donations reduce the family due
        down to zero, never below.

        Args:
            members: Members with intent for the season.
            season: Season rules and prices.
            donation_credit: Family donations for the season.

        Returns:
            FeeBreakdown for the family.

        Raises:
            ConfigurationError: On invalid season rules.
            PricingNotFoundError: If a registration references an unpriced workshop.
        """
        membership_fee = self.pricing.resolve_membership_fee(season)
        discount_percent = self.pricing.resolve_discount_percent(season)
        sibling_discount = quantize_money(membership_fee * discount_percent / HUNDRED)

        member_fees: List[MemberFee] = []
        for position, member in enumerate(order_members(members), start=1):
            member_fees.append(MemberFee(
                member_id=member.id,
                family_order=position,
                membership_fee=membership_fee,
                discount_amount=sibling_discount if position > 1 else ZERO,
                workshop_fees=self._workshop_fees(member, season),
            ))

        breakdown = FeeBreakdown(
            member_fees=member_fees,
            donation_credit=max(ZERO, donation_credit),
        )

        logger.debug(
            f"Fees for season {season.id}: {len(member_fees)} members, "
            f"net {breakdown.total_net}, due {breakdown.total_due}"
        )
        return breakdown
