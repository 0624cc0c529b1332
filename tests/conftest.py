"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Generator, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from cashflow_advisor.api.main import create_app
from cashflow_advisor.api.dependencies import get_clock
from cashflow_advisor.config import Settings
from cashflow_advisor.domain.models import GoalKind, GoalStatus, PaymentMethod, SeasonalEvent, TransactionKind
from cashflow_advisor.infrastructure.database.models import (
    Base,
    CategoryLimitRecord,
    GoalRecord,
    SeasonalEventRecord,
    TransactionRecord,
)
from cashflow_advisor.infrastructure.database.repositories import CategoryRepository, UserRepository
from cashflow_advisor.infrastructure.database.session import get_db
from cashflow_advisor.services.ledger_service import LedgerService
from cashflow_advisor.utils.date_utils import add_months


# Test database: one shared in-memory connection
TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite defers BEGIN on its own; emit it ourselves so SAVEPOINTs nest properly
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Mid-month so "today" has both elapsed days and days remaining
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def clock():
    """Frozen time source shared by the engines under test"""
    return fixed_clock


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url=TEST_DATABASE_URL)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a frozen clock"""
    app = create_app(create_tables=False)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    return TestClient(app)


class LedgerSeeder:
    """Helpers to put a user's history in the test database"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.ledger = LedgerService(db, settings, fixed_clock)

    def income(self, user_id: str, amount: str, occurred_on: date, category: str = "Salário") -> TransactionRecord:
        return self.ledger.record_transaction(
            user_id, Decimal(amount), TransactionKind.INCOME, occurred_on, category=category
        )

    def expense(
        self,
        user_id: str,
        amount: str,
        occurred_on: date,
        category: Optional[str] = None,
        payment_method: PaymentMethod = PaymentMethod.DEBIT,
        installments: int = 1,
    ) -> TransactionRecord:
        return self.ledger.record_transaction(
            user_id,
            Decimal(amount),
            TransactionKind.EXPENSE,
            occurred_on,
            category=category,
            payment_method=payment_method,
            installment_count=installments,
        )

    def category(self, user_id: str, name: str, limit: Optional[str] = None):
        category = CategoryRepository(self.db).get_or_create(user_id, name)
        if limit is not None:
            self.db.add(CategoryLimitRecord(user_id=user_id, category=category, limit_amount=Decimal(limit)))
            self.db.flush()
        return category

    def goal(
        self,
        user_id: str,
        name: str,
        kind: GoalKind,
        target: str,
        deadline: date,
        current: str = "0",
        status: GoalStatus = GoalStatus.ACTIVE,
    ) -> GoalRecord:
        goal = GoalRecord(
            user_id=user_id,
            name=name,
            kind=kind.value,
            target_amount=Decimal(target),
            current_amount=Decimal(current),
            deadline=deadline,
            status=status.value,
        )
        self.db.add(goal)
        self.db.flush()
        return goal

    def declared_income(self, user_id: str, amount: str) -> None:
        UserRepository(self.db).upsert(user_id, Decimal(amount))

    def seasonal_event(
        self, user_id: str, description: str, month: int, amount: str, is_income: bool = False
    ) -> SeasonalEventRecord:
        return self.ledger.record_seasonal_event(
            user_id, SeasonalEvent(description, month, Decimal(amount), is_income=is_income)
        )

    def steady_history(
        self,
        user_id: str,
        income: str,
        expenses: list,
        first_month: date = date(2025, 2, 1),
    ) -> None:
        """One salary on day 1 and one expense on day 10 per month, starting at `first_month`"""
        for i, expense in enumerate(expenses):
            month = add_months(first_month, i)
            self.income(user_id, income, month)
            self.expense(user_id, expense, month.replace(day=10), category="Mercado")


@pytest.fixture
def seed(db: Session, settings: Settings) -> LedgerSeeder:
    return LedgerSeeder(db, settings)
