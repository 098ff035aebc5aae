from decimal import Decimal

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app
from schemas import Expense


def make_expense(amount, paid_by, participants, group_id="g1", description="Dinner", date="2024-01-15"):
    return Expense(
        group_id=group_id,
        description=description,
        amount=Decimal(str(amount)),
        paid_by=paid_by,
        participants=list(participants),
        date=date,
        created_by="owner",
    )


@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory MongoDB for each test."""
    fake = mongomock.MongoClient()["splitwise_test"]
    monkeypatch.setattr(database, "db", fake)
    return fake


@pytest.fixture
def client(db):
    return TestClient(app)


def register(client, name="Alice", email="alice@example.com", password="password123"):
    r = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}
