"""Goal impact calculator service"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from cashflow_advisor.config import Settings, settings as default_settings
from cashflow_advisor.domain.exceptions import InvalidAmountError
from cashflow_advisor.domain.goals import calculate_goal_impacts
from cashflow_advisor.domain.models import GoalImpact, GoalStatus
from cashflow_advisor.infrastructure.database.repositories import GoalRepository
from cashflow_advisor.services.profile_service import ProfileCalculator
from cashflow_advisor.utils.date_utils import utc_now


class GoalImpactCalculator:
    def __init__(
        self,
        db: Session,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utc_now,
        profile_calculator: Optional[ProfileCalculator] = None,
    ):
        self.clock = clock
        self.profile_calculator = profile_calculator or ProfileCalculator(db, settings, clock)
        self.goals = GoalRepository(db)

    def compute(self, user_id: str, amount: Decimal) -> List[GoalImpact]:
        """Delay a purchase of `amount` would cause on each active goal"""
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")

        goals = self.goals.list_by_status(user_id, GoalStatus.ACTIVE)
        if not goals:
            return []

        profile = self.profile_calculator.get_or_compute(user_id)
        return calculate_goal_impacts(goals, profile, amount, self.clock().date())
