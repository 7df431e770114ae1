"""Snapshot and result models for family-season reconciliation.

Snapshots are loaded once per run and are immutable; every engine component
is a pure function over them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from ..database.models import (
    SeasonStatus,
    PaymentType,
    PaymentStatus,
    MembershipStatus,
)

ZERO = Decimal("0")

# Documented tie-break for partial payments; surfaced in every outcome.
ALLOCATION_POLICY = "ascending_member_id"


class SeasonSnapshot(BaseModel):
    """A season's pricing and discount rules."""
    id: int = Field(..., description="Season ID")
    start_year: int
    end_year: int
    status: SeasonStatus = Field(default=SeasonStatus.ACTIVE)
    membership_amount: Decimal = Field(..., description="Base membership fee")
    discount_percent: Decimal = Field(default=ZERO, description="Discount per additional member")
    total_donations: Decimal = Field(default=ZERO, description="Donations accumulated over the season")
    workshop_prices: Dict[int, Decimal] = Field(default_factory=dict, description="workshop_id -> price")

    class Config:
        frozen = True

    @property
    def label(self) -> str:
        return f"{self.start_year}/{self.end_year}"


class RegistrationSnapshot(BaseModel):
    """A member's enrollment in a workshop."""
    id: int
    workshop_id: int
    season_id: int
    quantity: int = Field(default=1)

    class Config:
        frozen = True


class MemberSnapshot(BaseModel):
    """A member with its season registrations and current membership status."""
    id: int
    family_id: int
    registrations: List[RegistrationSnapshot] = Field(default_factory=list)
    membership_status: Optional[MembershipStatus] = Field(
        None, description="Existing membership status for the season, if any"
    )

    class Config:
        frozen = True


class FamilySnapshot(BaseModel):
    """A family with its members and donation credit for one season."""
    id: int
    name: str = ""
    members: List[MemberSnapshot] = Field(default_factory=list)
    donation_credit: Decimal = Field(default=ZERO, description="Family donations for the season")

    class Config:
        frozen = True


class PaymentSnapshot(BaseModel):
    """A recorded family payment."""
    id: int
    family_id: int
    season_id: int
    amount: Decimal
    payment_type: PaymentType = Field(default=PaymentType.CASH)
    status: PaymentStatus
    payment_date: date
    cashing_date: Optional[date] = None

    class Config:
        frozen = True

    @property
    def settlement_date(self) -> date:
        return self.cashing_date or self.payment_date


class MemberFee(BaseModel):
    """Fee breakdown of one intent member."""
    member_id: int
    family_order: int = Field(..., description="1-based position in the discount ordering")
    membership_fee: Decimal = Field(..., description="Undiscounted membership fee")
    discount_amount: Decimal = Field(default=ZERO)
    workshop_fees: Decimal = Field(default=ZERO)

    class Config:
        frozen = True

    @property
    def membership_net(self) -> Decimal:
        return self.membership_fee - self.discount_amount

    @property
    def gross(self) -> Decimal:
        return self.membership_fee + self.workshop_fees

    @property
    def net(self) -> Decimal:
        return self.membership_net + self.workshop_fees


class FeeBreakdown(BaseModel):
    """Per-member fees and the family aggregate due."""
    member_fees: List[MemberFee] = Field(default_factory=list)
    donation_credit: Decimal = Field(default=ZERO)

    class Config:
        frozen = True

    @property
    def total_gross(self) -> Decimal:
        return sum((f.gross for f in self.member_fees), ZERO)

    @property
    def total_discount(self) -> Decimal:
        return sum((f.discount_amount for f in self.member_fees), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((f.net for f in self.member_fees), ZERO)

    @property
    def donation_applied(self) -> Decimal:
        """Donation credit actually used; never more than the net due."""
        return min(self.donation_credit, self.total_net)

    @property
    def total_due(self) -> Decimal:
        return max(ZERO, self.total_net - self.donation_credit)


class PaymentTotals(BaseModel):
    """Funds received by a family for one season."""
    season_id: int
    total_received: Decimal = Field(default=ZERO)
    counted_payments: List[PaymentSnapshot] = Field(default_factory=list)
    excluded_cancelled: int = Field(default=0)
    excluded_pending: int = Field(default=0)
    excluded_other_season: int = Field(default=0)

    class Config:
        frozen = True


class ReconciliationOutcome(BaseModel):
    """Result of reconciling one family for one season."""
    family_id: int
    season_id: int
    fees: FeeBreakdown
    payments: PaymentTotals
    statuses: Dict[int, MembershipStatus] = Field(default_factory=dict)
    skipped_cancelled: List[int] = Field(default_factory=list)
    allocation_policy: str = Field(default=ALLOCATION_POLICY)

    class Config:
        frozen = True

    @property
    def total_due(self) -> Decimal:
        return self.fees.total_due

    @property
    def total_received(self) -> Decimal:
        return self.payments.total_received

    @property
    def balance(self) -> Decimal:
        """Remaining due; negative when the family holds a credit."""
        return self.total_due - self.total_received

    @property
    def is_noop(self) -> bool:
        return not self.statuses

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly representation with amounts as strings."""
        return {
            "family_id": self.family_id,
            "season_id": self.season_id,
            "allocation_policy": self.allocation_policy,
            "totals": {
                "gross": str(self.fees.total_gross),
                "discount": str(self.fees.total_discount),
                "donation_applied": str(self.fees.donation_applied),
                "due": str(self.total_due),
                "received": str(self.total_received),
                "balance": str(self.balance),
            },
            "members": [
                {
                    "member_id": fee.member_id,
                    "family_order": fee.family_order,
                    "membership_fee": str(fee.membership_fee),
                    "discount": str(fee.discount_amount),
                    "workshop_fees": str(fee.workshop_fees),
                    "net": str(fee.net),
                    "status": self.statuses[fee.member_id].value,
                }
                for fee in self.fees.member_fees
            ],
            "skipped_cancelled": list(self.skipped_cancelled),
            "payments": {
                "counted": [p.id for p in self.payments.counted_payments],
                "excluded_cancelled": self.payments.excluded_cancelled,
                "excluded_pending": self.payments.excluded_pending,
                "excluded_other_season": self.payments.excluded_other_season,
            },
        }


class FamilyBalance(BaseModel):
    """Family balance summary for a season."""
    family_id: int
    family_name: str
    season_id: int
    season_label: str
    total_due: Decimal
    total_paid: Decimal
    balance: Decimal
    payments_count: int
    is_fully_paid: bool
    computed_at: datetime = Field(default_factory=datetime.utcnow)
