"""Profile calculator - cached financial profile with dirty-flag invalidation"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings as default_settings
from cashflow_advisor.domain.models import FinancialProfile
from cashflow_advisor.domain.profile import compute_profile
from cashflow_advisor.infrastructure.database.repositories import (
    InstallmentRepository,
    ProfileRepository,
    TransactionRepository,
)
from cashflow_advisor.infrastructure.observability.metrics import profile_recompute_counter
from cashflow_advisor.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class ProfileCalculator:
    """Serves the per-user profile, recomputing it when missing or flagged dirty"""

    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock
        self.profiles = ProfileRepository(db)
        self.transactions = TransactionRepository(db)
        self.installments = InstallmentRepository(db)

    def get_or_compute(self, user_id: str) -> FinancialProfile:
        cached = self.profiles.get(user_id)
        if cached is not None and not cached.dirty:
            return cached
        return self.recompute(user_id)

    def recompute(self, user_id: str) -> FinancialProfile:
        """
        Rebuild the profile from the full ledger and persist it.

        Monthly analysis rows are upserted along the way; the stored profile
        is left clean (dirty=False).
        """
        computation = compute_profile(
            user_id,
            self.transactions.list_by_user(user_id),
            self.installments.list_by_user(user_id),
            self.clock(),
            alpha=self.settings.ewma_alpha,
            fixed_categories=self.settings.fixed_categories,
        )
        self.profiles.upsert_monthly_analyses(user_id, computation.analyses)
        self.profiles.save(computation.profile)
        profile_recompute_counter.inc()

        profile = computation.profile
        logger.info(
            "Profile recomputed",
            extra={
                "user_id": user_id,
                "confidence": profile.confidence.value,
                "days_of_history": profile.days_of_history,
                "months_with_data": profile.months_with_data,
            },
        )
        return profile

    def invalidate(self, user_id: str) -> bool:
        """Mark the profile stale; returns False when there is nothing cached yet"""
        marked = self.profiles.mark_dirty(user_id)
        if marked:
            logger.debug("Profile invalidated", extra={"user_id": user_id})
        return marked
