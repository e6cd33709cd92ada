import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["parking_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def lot_payload():
    return {
        "name": "Downtown Central",
        "address": "Av. Arce 2345",
        "location": {"lat": -16.5, "lng": -68.13},
        "price_per_hour": 10,
        "tag": "covered",
        "schedules": [{"day": "Monday", "start": "07:00", "end": "22:00"}],
        "payment_methods": [{"name": "Cash", "active": True}],
        "plans": [{"label": "1-3 hours", "price": 25}],
        "services": [{"name": "Car wash", "price": 15}],
        "available_spaces": 12,
    }
