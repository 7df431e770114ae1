# membership_sdk package
__version__ = "0.1.0"

from .database import (
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
    PaymentStatus,
    PaymentType,
    MembershipStatus,
    init_db,
    close_db,
)
from .exceptions import (
    MembershipError,
    NotFoundError,
    PricingNotFoundError,
    ConfigurationError,
    PriceLockedError,
    SeasonInactiveError,
    RegistrationError,
    ConcurrencyConflict,
)
from .services import MembershipService, determine_payment_status

# Reconciliation exports
from .reconciliation import (
    ReconciliationService,
    ReconciliationOutcome,
    FamilyBalance,
    StatusReconciler,
    ReportGenerator,
    reconcile_family_season,
)
