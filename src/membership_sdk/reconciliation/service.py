"""Service layer for family-season reconciliation."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import get_async_session_factory
from ..exceptions import MembershipError
from .models import FamilyBalance, ReconciliationOutcome
from .reconciler import StatusReconciler
from .report import ReportGenerator
from .store import ReconciliationStoreBase, SQLAlchemyReconciliationStore

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Runs reconciliations against a database session."""

    def __init__(
        self,
        session: AsyncSession,
        store: Optional[ReconciliationStoreBase] = None,
        reconciler: Optional[StatusReconciler] = None,
    ):
        """Initialize the reconciliation service.

        Args:
            session: Async database session. The caller owns its transaction.
            store: Optional store. Defaults to the SQLAlchemy store on the session.
            reconciler: Optional reconciler instance.
        """
        self.session = session
        self.store = store or SQLAlchemyReconciliationStore(session)
        self.reconciler = reconciler or StatusReconciler()

    async def reconcile(self, family_id: int, season_id: int) -> ReconciliationOutcome:
        """Recompute and persist the memberships of a family for a season.

        Nothing is written unless the whole computation succeeds. The caller
        commits or rolls back the surrounding transaction.

        Args:
            family_id: Family to reconcile.
            season_id: Season to reconcile.

        Returns:
            ReconciliationOutcome of the run.

        Raises:
            NotFoundError: If the family or season does not exist.
            SeasonInactiveError: If the season is inactive.
            ConfigurationError: On invalid season rules.
            PricingNotFoundError: If a registration references an unpriced workshop.
            ConcurrencyConflict: If a concurrent run wrote the same family+season.
        """
        logger.info(f"Starting reconciliation for family {family_id}, season {season_id}")

        family = await self.store.load_family_with_members_and_registrations(family_id, season_id)
        season = await self.store.load_season_with_prices(season_id)
        payments = await self.store.load_completed_payments(family_id, season_id)

        try:
            outcome = self.reconciler.reconcile(family, season, payments)
        except MembershipError as e:
            logger.error(
                f"Reconciliation for family {family_id}, season {season_id} aborted: "
                f"{e.code}: {e}"
            )
            raise

        if outcome.is_noop:
            logger.info(f"Nothing to reconcile for family {family_id}, season {season_id}")
            return outcome

        await self.store.save_memberships(family_id, season_id, outcome.statuses, outcome)

        logger.info(
            f"Reconciliation for family {family_id}, season {season_id} completed: "
            f"due {outcome.total_due}, received {outcome.total_received}, "
            f"balance {outcome.balance}"
        )
        return outcome

    async def preview(self, family_id: int, season_id: int) -> ReconciliationOutcome:
        """Compute the outcome without persisting it, for any season status."""
        family = await self.store.load_family_with_members_and_registrations(family_id, season_id)
        season = await self.store.load_season_with_prices(season_id)
        payments = await self.store.load_completed_payments(family_id, season_id)
        return self.reconciler.compute(family, season, payments)

    async def family_balance(self, family_id: int, season_id: int) -> FamilyBalance:
        """Summarize what a family owes and has paid for a season.

        Args:
            family_id: Family identifier.
            season_id: Season identifier.

        Returns:
            FamilyBalance summary.
        """
        family = await self.store.load_family_with_members_and_registrations(family_id, season_id)
        season = await self.store.load_season_with_prices(season_id)
        payments = await self.store.load_completed_payments(family_id, season_id)
        outcome = self.reconciler.compute(family, season, payments)

        return FamilyBalance(
            family_id=family.id,
            family_name=family.name,
            season_id=season.id,
            season_label=season.label,
            total_due=outcome.total_due,
            total_paid=outcome.total_received,
            balance=outcome.balance,
            payments_count=len(outcome.payments.counted_payments),
            is_fully_paid=outcome.balance <= 0,
        )

    def generate_report(self, outcome: ReconciliationOutcome, format: str = "json") -> str:
        """Render an outcome.

        Args:
            outcome: ReconciliationOutcome to format.
            format: Output format ('json' or 'text').

        Returns:
            Formatted report string.
        """
        generator = ReportGenerator(outcome)

        if format == "json":
            return generator.to_json()
        elif format == "text":
            return generator.to_summary_text()
        else:
            raise ValueError(f"Unsupported report format: {format}")


async def reconcile_family_season(
    family_id: int,
    season_id: int,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> ReconciliationOutcome:
    """Reconcile a family for a season in its own transaction.

    Loading, computing and persisting happen in one all-or-nothing commit.
    On any error the transaction is rolled back and the error propagates.

    Args:
        family_id: Family to reconcile.
        season_id: Season to reconcile.
        session_factory: Optional session factory. Defaults to the global one.

    Returns:
        ReconciliationOutcome of the committed run.
    """
    factory = session_factory or get_async_session_factory()
    async with factory() as session:
        async with session.begin():
            return await ReconciliationService(session).reconcile(family_id, season_id)
