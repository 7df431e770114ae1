"""Season and workshop price resolution."""

import logging
from decimal import Decimal
from typing import Optional

from ..exceptions import ConfigurationError, PricingNotFoundError
from .models import SeasonSnapshot

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class PricingResolver:
    """Resolves fees and discount rules from a season snapshot."""

    def _require_season(self, season: Optional[SeasonSnapshot]) -> SeasonSnapshot:
        if season is None:
            raise ConfigurationError("Season is missing", field_name="season")
        return season

    def resolve_membership_fee(self, season: Optional[SeasonSnapshot]) -> Decimal:
        """Return the season's base membership fee.

        Raises:
            ConfigurationError: If the season is missing or its fee is negative.
        """
        season = self._require_season(season)
        if season.membership_amount < 0:
            raise ConfigurationError(
                f"Season {season.id} has a negative membership fee ({season.membership_amount})",
                field_name="membership_amount",
                value=season.membership_amount,
            )
        return season.membership_amount

    def resolve_discount_percent(self, season: Optional[SeasonSnapshot]) -> Decimal:
        """Return the per-additional-member discount percentage.

        Raises:
            ConfigurationError: If the discount is outside 0-100.
        """
        season = self._require_season(season)
        if not Decimal("0") <= season.discount_percent <= HUNDRED:
            raise ConfigurationError(
                f"Season {season.id} discount must be between 0 and 100 "
                f"(got {season.discount_percent})",
                field_name="discount_percent",
                value=season.discount_percent,
            )
        return season.discount_percent

    def resolve_workshop_fee(self, season: Optional[SeasonSnapshot], workshop_id: int) -> Decimal:
        """Look up the (workshop, season) price.

        Raises:
            PricingNotFoundError: If no price row exists for the pair.
            ConfigurationError: If the price is negative.
        """
        season = self._require_season(season)
        price = season.workshop_prices.get(workshop_id)
        if price is None:
            logger.warning(f"Workshop {workshop_id} has no price in season {season.id}")
            raise PricingNotFoundError(workshop_id, season.id)
        if price < 0:
            raise ConfigurationError(
                f"Workshop {workshop_id} has a negative price in season {season.id}",
                field_name="amount",
                value=price,
            )
        return price

    def validate_season(self, season: Optional[SeasonSnapshot]) -> None:
        self.resolve_membership_fee(season)
        self.resolve_discount_percent(season)
