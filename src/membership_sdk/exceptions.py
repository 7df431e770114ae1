"""Typed exceptions for the membership engine.

Every error carries a machine-readable ``code`` class attribute plus the
structured fields needed to act on it, so callers catch by type and never
parse messages.

    MembershipError (base)
    |
    +-- NotFoundError
    |   +-- PricingNotFoundError
    |
    +-- ConfigurationError
    |   +-- PriceLockedError
    |
    +-- SeasonInactiveError
    +-- RegistrationError
    +-- ConcurrencyConflict
"""

from decimal import Decimal
from typing import Any, Optional


class MembershipError(Exception):
    """Base exception for all membership engine errors."""

    code: str = "MEMBERSHIP_ERROR"


class NotFoundError(MembershipError):
    """A referenced family, season, member, workshop, payment or price does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any, message: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type} not found: {entity_id}")


class PricingNotFoundError(NotFoundError):
    """A registration references a workshop that has no price for the season."""

    code: str = "PRICING_NOT_FOUND"

    def __init__(self, workshop_id: int, season_id: int):
        self.workshop_id = workshop_id
        self.season_id = season_id
        super().__init__(
            "WorkshopPrice",
            (workshop_id, season_id),
            f"No price for workshop {workshop_id} in season {season_id}",
        )


class ConfigurationError(MembershipError):
    """Season or pricing parameters are invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None):
        self.field_name = field_name
        self.value = value
        super().__init__(message)


class PriceLockedError(ConfigurationError):
    """A workshop price is referenced by payments and can no longer change."""

    code: str = "PRICE_LOCKED"

    def __init__(self, workshop_id: int, season_id: int, amount: Decimal):
        self.workshop_id = workshop_id
        self.season_id = season_id
        super().__init__(
            f"Price of workshop {workshop_id} in season {season_id} is referenced "
            f"by payments and cannot change",
            field_name="amount",
            value=amount,
        )


class SeasonInactiveError(MembershipError):
    """The season is inactive; its memberships are frozen."""

    code: str = "SEASON_INACTIVE"

    def __init__(self, season_id: int):
        self.season_id = season_id
        super().__init__(f"Season {season_id} is inactive; memberships are frozen")


class RegistrationError(MembershipError):
    """A workshop registration breaks the workshop's rules."""

    code: str = "REGISTRATION_INVALID"

    def __init__(self, message: str, workshop_id: Optional[int] = None, quantity: Optional[int] = None):
        self.workshop_id = workshop_id
        self.quantity = quantity
        super().__init__(message)


class ConcurrencyConflict(MembershipError):
    """A concurrent reconciliation wrote the same family+season first.

    The whole run is rolled back; retrying it is safe.
    """

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, family_id: int, season_id: int):
        self.family_id = family_id
        self.season_id = season_id
        super().__init__(
            f"Concurrent reconciliation detected for family {family_id}, "
            f"season {season_id}"
        )
