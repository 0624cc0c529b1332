"""Integration tests for API endpoints"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from fastapi.testclient import TestClient
from cashflow_advisor.domain.models import GoalKind

EXPENSES = ["1000", "1100", "1050", "1200"]


@pytest.fixture
def steady_user(seed):
    """Four months of salary 3000 and slightly growing expenses"""
    seed.steady_history("user_good", "3000", EXPENSES)
    return "user_good"


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "cashflow_decision_total" in response.text
    assert "cashflow_simulation_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_profile_endpoint(client: TestClient, steady_user):
    """Test GET /v1/profile computes and returns the profile"""
    response = client.get("/v1/profile", params={"user_id": steady_user})

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["average_monthly_income"]) == Decimal("3000")
    assert Decimal(data["average_monthly_expense"]) == Decimal("1112.12")
    assert Decimal(data["average_monthly_balance"]) == Decimal("1887.88")
    assert data["confidence"] == "high"
    assert data["days_of_history"] == 134


def test_profile_invalidate(client: TestClient, steady_user):
    missing = client.post("/v1/profile/invalidate", json={"user_id": "nobody"})
    assert missing.status_code == 200
    assert missing.json()["invalidated"] is False

    client.get("/v1/profile", params={"user_id": steady_user})
    response = client.post("/v1/profile/invalidate", json={"user_id": steady_user})
    assert response.json() == {"user_id": steady_user, "invalidated": True}


def test_health_score_endpoints(client: TestClient, steady_user):
    response = client.post("/v1/health-score", json={"user_id": steady_user})

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["score"]) == Decimal("89.5")
    assert data["classification"] == "excellent"
    assert len(data["factors"]) == 6

    current = client.get("/v1/health-score/current", params={"user_id": steady_user})
    assert current.status_code == 200
    assert Decimal(current.json()["score"]) == Decimal("89.5")


def test_decision_endpoint_fast_path(client: TestClient, steady_user):
    """Test POST /v1/decision with a small purchase"""
    response = client.post(
        "/v1/decision",
        json={"user_id": steady_user, "amount": "50", "description": "Coffee", "category": "Mercado"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["fast_path"] is True
    assert data["full"] is None
    quick = data["quick"]
    assert quick["verdict"] == "proceed"
    assert quick["can_spend"] is True
    assert quick["days_remaining"] == 16
    assert [layer["layer"] for layer in quick["layers"]] == ["mathematical", "historical", "trend", "behavioral"]


def test_decision_endpoint_hold(client: TestClient, seed, steady_user):
    """Test POST /v1/decision when goal reserves already exceed the month budget"""
    seed.goal(steady_user, "Emergency", GoalKind.MONTHLY_RESERVE, "5000", date(2025, 12, 31))

    response = client.post("/v1/decision", json={"user_id": steady_user, "amount": "50"})

    assert response.status_code == 200
    data = response.json()
    # Free balance is negative, so the full analysis is used
    assert data["fast_path"] is False
    assert data["full"]["scenarios"][0]["risk"] == "high"


def test_decision_endpoint_installments_take_full_path(client: TestClient, steady_user):
    response = client.post(
        "/v1/decision",
        json={
            "user_id": steady_user,
            "amount": "2400",
            "description": "TV",
            "payment_method": "credit",
            "installments": 6,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["fast_path"] is False
    full = data["full"]
    assert [s["installments"] for s in full["scenarios"]] == [1, 2, 3, 4, 6, 8, 10, 12]
    assert full["recommended_installments"] == 2
    assert full["recommended_risk"] == "low"


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_decision_endpoint_rejects_non_positive_amount(client: TestClient, amount):
    response = client.post("/v1/decision", json={"user_id": "user_1", "amount": amount})
    assert response.status_code == 422


def test_simulation_endpoint(client: TestClient, seed):
    """Test POST /v1/simulation with a 12x credit purchase"""
    seed.steady_history("user_sim", "2000", ["1000", "1000", "1000", "1000"])

    response = client.post(
        "/v1/simulation",
        json={
            "user_id": "user_sim",
            "description": "Laptop",
            "amount": "1200",
            "payment_method": "credit",
            "installment_count": 12,
            "planned_date": "2025-05-15",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"] is not None
    assert data["risk"] == "low"
    assert data["recommendation"] == "proceed"
    assert Decimal(data["lowest_balance"]) == Decimal("900")
    assert data["worst_month"] == "2025-06-01"
    assert len(data["months"]) == 12
    assert data["best_alternative"] is None

    history = client.get("/v1/simulation/history", params={"user_id": "user_sim"})
    assert history.status_code == 200
    simulations = history.json()["simulations"]
    assert len(simulations) == 1
    assert simulations[0]["id"] == data["id"]


def test_simulation_endpoint_rejects_zero_amount(client: TestClient):
    response = client.post(
        "/v1/simulation",
        json={"user_id": "user_1", "description": "Laptop", "amount": "0"},
    )
    assert response.status_code == 422


def test_goal_impact_endpoint(client: TestClient, seed):
    seed.steady_history("user_goal", "1050", ["1000", "1000", "1000", "1000"])
    seed.goal("user_goal", "Trip", GoalKind.ACCUMULATE_AMOUNT, "1200", date(2026, 6, 15))

    response = client.post("/v1/goal-impact", json={"user_id": "user_goal", "amount": "100"})

    assert response.status_code == 200
    impacts = response.json()["impacts"]
    assert len(impacts) == 1
    assert impacts[0]["goal_name"] == "Trip"
    assert impacts[0]["delay_months"] == 2


def test_transaction_lifecycle(client: TestClient):
    """Test POST and DELETE /v1/transactions"""
    response = client.post(
        "/v1/transactions",
        json={
            "user_id": "user_1",
            "amount": "1000.00",
            "kind": "expense",
            "occurred_on": "2025-01-31",
            "category": "Eletrônicos",
            "payment_method": "credit",
            "installment_count": 3,
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["category"] == "Outros"
    assert [i["due_date"] for i in data["installments"]] == ["2025-02-28", "2025-03-31", "2025-04-30"]
    assert [Decimal(i["amount"]) for i in data["installments"]] == [
        Decimal("333.33"),
        Decimal("333.33"),
        Decimal("333.34"),
    ]

    transaction_id = data["transaction_id"]
    deleted = client.delete(f"/v1/transactions/{transaction_id}", params={"user_id": "user_1"})
    assert deleted.status_code == 204

    again = client.delete(f"/v1/transactions/{transaction_id}", params={"user_id": "user_1"})
    assert again.status_code == 404


def test_transaction_installments_require_credit(client: TestClient):
    response = client.post(
        "/v1/transactions",
        json={
            "user_id": "user_1",
            "amount": "300",
            "kind": "expense",
            "occurred_on": "2025-06-01",
            "payment_method": "debit",
            "installment_count": 3,
        },
    )
    assert response.status_code == 422


def test_delete_transaction_bad_id(client: TestClient):
    response = client.delete("/v1/transactions/not-a-uuid", params={"user_id": "user_1"})
    assert response.status_code == 400

    response = client.delete(f"/v1/transactions/{uuid.uuid4()}", params={"user_id": "user_1"})
    assert response.status_code == 404


def test_seasonal_event_feeds_simulation(client: TestClient, seed):
    seed.steady_history("user_season", "2000", ["1000", "1000", "1000", "1000"])

    response = client.post(
        "/v1/seasonal-events",
        json={"user_id": "user_season", "description": "Holiday gifts", "month": 12, "average_amount": "600"},
    )
    assert response.status_code == 201
    assert response.json()["event_id"]

    response = client.post(
        "/v1/simulation",
        json={"user_id": "user_season", "description": "Laptop", "amount": "1200", "planned_date": "2025-06-15"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["worst_month"] == "2025-06-01"
    assert Decimal(data["months"][6]["expense"]) == Decimal("1600")
    assert [e["description"] for e in data["seasonal_events"]] == ["Holiday gifts"]


def test_seasonal_event_rejects_bad_month(client: TestClient):
    response = client.post(
        "/v1/seasonal-events",
        json={"user_id": "user_1", "description": "Gifts", "month": 13, "average_amount": "600"},
    )
    assert response.status_code == 422
