"""
Общие фикстуры: временная база, зафиксированное время и клиент API.

Используются настоящие компоненты: JSON база во временной директории,
агрегатор и FastAPI приложение с подменой зависимостей.
"""

from datetime import datetime
from typing import Dict, Iterable

import pytest
import pytz
from fastapi.testclient import TestClient

from core.database import ProtocolDatabase
from core.models import CompletionEntry, TrackedProtocol
from core.progress import ProgressAggregator
from dashboard.app import app
from dashboard.dependencies import get_database, get_aggregator, get_now

# Среда, 3 января 2024
FIXED_NOW = datetime(2024, 1, 3, 12, 0, tzinfo=pytz.utc)


def build_protocol(title: str, days: Iterable[str] = (), protocol_id: str = None) -> TrackedProtocol:
    return TrackedProtocol(
        protocol_id=protocol_id or title.lower().replace(" ", "-"),
        title=title,
        completion_history=[CompletionEntry(date=day) for day in days],
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def aggregator() -> ProgressAggregator:
    return ProgressAggregator(timezone="UTC")


@pytest.fixture
def protocol_factory():
    return build_protocol


@pytest.fixture
def database(tmp_path) -> ProtocolDatabase:
    return ProtocolDatabase(tmp_path / "db.json", backup_dir=tmp_path / "backups", max_backups=5)


@pytest.fixture
def client(database, aggregator, fixed_now):
    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    app.dependency_overrides[get_now] = lambda: fixed_now
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(client):
    def _register(name: str = "Ada", email: str = "ada@example.com", password: str = "secret1"):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def auth_headers(register_user) -> Dict[str, str]:
    token = register_user()["token"]
    return {"Authorization": f"Bearer {token}"}
