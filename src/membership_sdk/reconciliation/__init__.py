"""Reconciliation module for family memberships.

This module recomputes the membership status of every member of a family
for one season from the season's rules, the members' workshop
registrations, the family's donations and its completed payments.

Features:
- Sibling discount on the membership fee, in ascending member id order
- Workshop fees from per-season prices, multiplied by quantity
- Donation credit applied to the family due, never below zero
- Greedy allocation of partial payments across members
- Atomic, idempotent persistence with concurrent-run detection
"""

from .models import (
    ALLOCATION_POLICY,
    SeasonSnapshot,
    RegistrationSnapshot,
    MemberSnapshot,
    FamilySnapshot,
    PaymentSnapshot,
    MemberFee,
    FeeBreakdown,
    PaymentTotals,
    ReconciliationOutcome,
    FamilyBalance,
)
from .pricing import PricingResolver
from .fees import FeeCalculator, quantize_money
from .payments import PaymentAggregator
from .reconciler import StatusReconciler
from .store import ReconciliationStoreBase, SQLAlchemyReconciliationStore
from .service import ReconciliationService, reconcile_family_season
from .report import ReportGenerator

__all__ = [
    # Models
    "ALLOCATION_POLICY",
    "SeasonSnapshot",
    "RegistrationSnapshot",
    "MemberSnapshot",
    "FamilySnapshot",
    "PaymentSnapshot",
    "MemberFee",
    "FeeBreakdown",
    "PaymentTotals",
    "ReconciliationOutcome",
    "FamilyBalance",
    # Core Components
    "PricingResolver",
    "FeeCalculator",
    "quantize_money",
    "PaymentAggregator",
    "StatusReconciler",
    # Persistence
    "ReconciliationStoreBase",
    "SQLAlchemyReconciliationStore",
    # Entry points
    "ReconciliationService",
    "reconcile_family_season",
    "ReportGenerator",
]
