"""Database module for membership persistence."""

from .models import (
    Base,
    Season,
    Family,
    Member,
    Workshop,
    WorkshopPrice,
    Registration,
    Payment,
    Donation,
    Membership,
    ReconciliationState,
    SeasonStatus,
    WorkshopStatus,
    PaymentType,
    PaymentStatus,
    MembershipStatus,
)
from .session import (
    get_database_url,
    init_db,
    close_db,
    create_async_engine,
    get_async_session_factory,
    get_db_context,
    DatabaseManager,
)
from .repository import (
    validate_season_rules,
    SeasonRepository,
    FamilyRepository,
    MemberRepository,
    WorkshopRepository,
    WorkshopPriceRepository,
    RegistrationRepository,
    PaymentRepository,
    DonationRepository,
    MembershipRepository,
)

__all__ = [
    # Models
    "Base",
    "Season",
    "Family",
    "Member",
    "Workshop",
    "WorkshopPrice",
    "Registration",
    "Payment",
    "Donation",
    "Membership",
    "ReconciliationState",
    # Vocabularies
    "SeasonStatus",
    "WorkshopStatus",
    "PaymentType",
    "PaymentStatus",
    "MembershipStatus",
    # Session management
    "get_database_url",
    "init_db",
    "close_db",
    "create_async_engine",
    "get_async_session_factory",
    "get_db_context",
    "DatabaseManager",
    # Repositories
    "validate_season_rules",
    "SeasonRepository",
    "FamilyRepository",
    "MemberRepository",
    "WorkshopRepository",
    "WorkshopPriceRepository",
    "RegistrationRepository",
    "PaymentRepository",
    "DonationRepository",
    "MembershipRepository",
]
