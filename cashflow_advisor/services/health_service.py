"""Health score engine - computes and caches the 0-100 financial health score"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings as default_settings
from cashflow_advisor.domain.health import (
    NEGATIVE_MONTHS_WINDOW,
    TREND_WINDOW,
    calculate_health_score,
    count_negative_months,
    expense_growth_trend,
)
from cashflow_advisor.domain.models import HealthScoreSnapshot
from cashflow_advisor.infrastructure.database.repositories import (
    BehavioralProfileRepository,
    TransactionRepository,
)
from cashflow_advisor.infrastructure.observability.metrics import record_health_score
from cashflow_advisor.services.enrichment import best_effort
from cashflow_advisor.services.profile_service import ProfileCalculator
from cashflow_advisor.utils.date_utils import add_months, ensure_utc, month_start, utc_now
from cashflow_advisor.utils.money import ZERO

logger = logging.getLogger(__name__)


class HealthScoreEngine:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
        profile_calculator: Optional[ProfileCalculator] = None,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock
        self.profile_calculator = profile_calculator or ProfileCalculator(db, settings, clock)
        self.transactions = TransactionRepository(db)
        self.behavioral = BehavioralProfileRepository(db)

    def _monthly_totals(self, user_id: str, count: int) -> List[Tuple[Decimal, Decimal]]:
        """(income, expense) for the current month and the `count - 1` before it, newest first"""
        current = month_start(self.clock().date())
        by_month = self.transactions.monthly_totals(user_id, add_months(current, 1 - count), add_months(current, 1))
        return [by_month.get(add_months(current, -offset), (ZERO, ZERO)) for offset in range(count)]

    def compute(self, user_id: str) -> HealthScoreSnapshot:
        """Always recompute; storing the snapshot in the behavioral profile is best-effort"""
        now = self.clock()
        profile = self.profile_calculator.get_or_compute(user_id)

        totals = self._monthly_totals(user_id, max(NEGATIVE_MONTHS_WINDOW, TREND_WINDOW + 1))
        # Current month plus the five before it
        negative_months = count_negative_months(totals[:NEGATIVE_MONTHS_WINDOW])
        trend = expense_growth_trend([expense for _, expense in totals[1 : TREND_WINDOW + 1]])

        snapshot = calculate_health_score(profile, negative_months, trend, now)
        best_effort(
            self.db, "health_score_store", user_id, lambda: self.behavioral.save_health_score(user_id, snapshot)
        )
        record_health_score(snapshot.score)

        logger.info(
            "Health score computed",
            extra={
                "user_id": user_id,
                "score": str(snapshot.score),
                "classification": snapshot.classification.value,
            },
        )
        return snapshot

    def current_score(self, user_id: str) -> Decimal:
        """Stored score while fresh, otherwise a new computation"""
        record = self.behavioral.get(user_id)
        if record is not None and record.health_score is not None and record.health_updated_at is not None:
            age = self.clock() - ensure_utc(record.health_updated_at)
            if age < timedelta(hours=self.settings.score_cache_hours):
                return record.health_score
        return self.compute(user_id).score
