"""Best-effort enrichment steps: failures are logged, counted and skipped"""

import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from cashflow_advisor.infrastructure.observability.metrics import enrichment_failure_counter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def best_effort(db: Session, step: str, user_id: str, fn: Callable[[], T]) -> Optional[T]:
    """
    Run `fn` inside a savepoint, returning None instead of raising.

    A failing step rolls back only its own writes; the request transaction
    stays usable for whatever follows.
    """
    try:
        with db.begin_nested():
            return fn()
    except Exception:
        enrichment_failure_counter.labels(step=step).inc()
        logger.warning(
            "Optional step failed, continuing without it",
            extra={"user_id": user_id, "step": step},
            exc_info=True,
        )
        return None
