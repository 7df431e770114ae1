"""Aggregation of family payments into funds received."""

import logging
from typing import Iterable

from ..database.models import PaymentStatus
from .models import ZERO, PaymentSnapshot, PaymentTotals

logger = logging.getLogger(__name__)


class PaymentAggregator:
    """Sums completed payments of one season, ordered by settlement date."""

    def aggregate(self, payments: Iterable[PaymentSnapshot], season_id: int) -> PaymentTotals:
        """Compute funds received for a season.

        Payments tagged with another season are excluded even when they
        belong to the same family. Cancelled and pending payments never
        count. Counted payments are ordered by settlement date, then id.

        Args:
            payments: The family's recorded payments.
            season_id: Target season.

        Returns:
            PaymentTotals for the season.
        """
        counted = []
        cancelled = pending = other_season = 0

        for payment in payments:
            if payment.season_id != season_id:
                other_season += 1
            elif payment.status == PaymentStatus.COMPLETED:
                counted.append(payment)
            elif payment.status == PaymentStatus.CANCELLED:
                cancelled += 1
            elif payment.status == PaymentStatus.PENDING:
                pending += 1
            else:
                raise ValueError(f"Unhandled payment status: {payment.status}")

        counted.sort(key=lambda p: (p.settlement_date, p.id))
        total = sum((p.amount for p in counted), ZERO)

        if other_season:
            logger.warning(
                f"Ignored {other_season} payment(s) tagged with another season "
                f"while aggregating season {season_id}"
            )

        return PaymentTotals(
            season_id=season_id,
            total_received=total,
            counted_payments=counted,
            excluded_cancelled=cancelled,
            excluded_pending=pending,
            excluded_other_season=other_season,
        )
