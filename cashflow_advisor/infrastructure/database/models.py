"""SQLAlchemy ORM models for the ledger and the engine's derived entities"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Boolean,
    Numeric,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Money columns: 12 integer digits, cents
Money = Numeric(14, 2)


class UserRecord(Base):
    """Account holder; declared income acts as a floor for projections"""

    __tablename__ = "app_user"

    id = Column(Text, primary_key=True)
    declared_monthly_income = Column(Money, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CategoryRecord(Base):
    __tablename__ = "category"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_category_user_name"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(String(100), nullable=False)

    limits = relationship("CategoryLimitRecord", back_populates="category", cascade="all, delete-orphan")


class CategoryLimitRecord(Base):
    """Monthly spending cap on a category"""

    __tablename__ = "category_limit"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    category_id = Column(UUID(as_uuid=True), ForeignKey("category.id", ondelete="CASCADE"), nullable=False)
    limit_amount = Column(Money, nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    category = relationship("CategoryRecord", back_populates="limits")


class TransactionRecord(Base):
    """Income or expense entry in the user's ledger"""

    __tablename__ = "ledger_transaction"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    amount = Column(Money, nullable=False)
    kind = Column(Text, nullable=False)  # income | expense
    category_id = Column(UUID(as_uuid=True), ForeignKey("category.id"), nullable=True)
    payment_method = Column(Text, nullable=False, default="unspecified")
    description = Column(Text, nullable=True)
    occurred_on = Column(Date, nullable=False, index=True)
    installment_count = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    category = relationship("CategoryRecord")
    installments = relationship(
        "InstallmentRecord",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="InstallmentRecord.sequence",
    )


class InstallmentRecord(Base):
    """Single payment of a credit purchase split in installments"""

    __tablename__ = "installment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_id = Column(
        UUID(as_uuid=True), ForeignKey("ledger_transaction.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Text, nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    total_in_series = Column(Integer, nullable=False)
    amount = Column(Money, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    paid = Column(Boolean, nullable=False, default=False)

    transaction = relationship("TransactionRecord", back_populates="installments")


class GoalRecord(Base):
    __tablename__ = "goal"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False)
    target_amount = Column(Money, nullable=False)
    current_amount = Column(Money, nullable=False, default=0)
    deadline = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="active")


class SeasonalEventRecord(Base):
    """Known yearly event; `month` is the calendar month it falls in (1-12)"""

    __tablename__ = "seasonal_event"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    month = Column(Integer, nullable=False)
    average_amount = Column(Money, nullable=False)
    is_income = Column(Boolean, nullable=False, default=False)
    recurring_yearly = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class FinancialProfileRecord(Base):
    """Cached profile snapshot; `dirty` forces a recompute on next read"""

    __tablename__ = "financial_profile"

    user_id = Column(Text, primary_key=True)
    average_monthly_income = Column(Money, nullable=False, default=0)
    average_monthly_expense = Column(Money, nullable=False, default=0)
    fixed_expense_estimate = Column(Money, nullable=False, default=0)
    variable_expense_estimate = Column(Money, nullable=False, default=0)
    open_installment_total = Column(Money, nullable=False, default=0)
    open_installment_count = Column(Integer, nullable=False, default=0)
    days_of_history = Column(Integer, nullable=False, default=0)
    months_with_data = Column(Integer, nullable=False, default=0)
    expense_volatility = Column(Money, nullable=False, default=0)
    confidence = Column(Text, nullable=False, default="low")
    dirty = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class MonthlyAnalysisRecord(Base):
    __tablename__ = "monthly_analysis"
    __table_args__ = (UniqueConstraint("user_id", "month", name="uq_monthly_analysis_user_month"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    month = Column(Date, nullable=False)
    total_income = Column(Money, nullable=False)
    total_expense = Column(Money, nullable=False)
    fixed_expense = Column(Money, nullable=False)
    variable_expense = Column(Money, nullable=False)
    installment_total = Column(Money, nullable=False)
    balance = Column(Money, nullable=False)


class BehavioralProfileRecord(Base):
    """Health score cache plus decision usage counters"""

    __tablename__ = "behavioral_profile"

    user_id = Column(Text, primary_key=True)
    health_score = Column(Numeric(5, 2), nullable=True)
    health_details = Column(JSON, nullable=True)
    health_updated_at = Column(DateTime(timezone=True), nullable=True)
    negative_months = Column(Integer, nullable=False, default=0)
    income_commitment_pct = Column(Numeric(8, 2), nullable=False, default=0)
    expense_trend_pct = Column(Numeric(8, 2), nullable=False, default=0)
    decision_queries_total = Column(Integer, nullable=False, default=0)
    decision_queries_recent = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class DecisionLogRecord(Base):
    """Append-only audit trail of every decision and simulation"""

    __tablename__ = "decision_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    kind = Column(Text, nullable=False)  # quick_spend | full_purchase | purchase_simulation
    amount = Column(Money, nullable=False)
    description = Column(Text, nullable=True)
    outcome = Column(Text, nullable=False)
    rationale = Column(Text, nullable=True)
    inputs = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SimulationRecord(Base):
    """Persisted purchase simulation with its monthly projection"""

    __tablename__ = "simulation"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    payment_method = Column(Text, nullable=False)
    installment_count = Column(Integer, nullable=False, default=1)
    card_id = Column(Integer, nullable=True)
    planned_date = Column(Date, nullable=False)
    risk = Column(Text, nullable=False)
    detailed_risk = Column(Text, nullable=True)
    confidence = Column(Text, nullable=False)
    recommendation = Column(Text, nullable=False)
    lowest_balance = Column(Money, nullable=False)
    worst_month = Column(Date, nullable=False)
    average_slack = Column(Money, nullable=False)
    negative_month_probability = Column(Numeric(5, 2), nullable=False, default=0)
    minimum_reserve_gap = Column(Money, nullable=False, default=0)
    health_score = Column(Numeric(5, 2), nullable=False, default=0)
    details = Column(JSON, nullable=True)  # alternatives, best alternative, goal impacts
    summary = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    months = relationship(
        "SimulationMonthRecord",
        back_populates="simulation",
        cascade="all, delete-orphan",
        order_by="SimulationMonthRecord.month",
    )


class SimulationMonthRecord(Base):
    __tablename__ = "simulation_month"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    simulation_id = Column(UUID(as_uuid=True), ForeignKey("simulation.id", ondelete="CASCADE"), nullable=False)
    month = Column(Date, nullable=False)
    income = Column(Money, nullable=False)
    expense = Column(Money, nullable=False)
    existing_commitments = Column(Money, nullable=False)
    base_balance = Column(Money, nullable=False)
    purchase_impact = Column(Money, nullable=False)
    balance_with_purchase = Column(Money, nullable=False)
    impact_pct = Column(Numeric(8, 2), nullable=False)

    simulation = relationship("SimulationRecord", back_populates="months")
