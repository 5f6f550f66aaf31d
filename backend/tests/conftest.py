from __future__ import annotations

import datetime as dt
import random
from typing import Any, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient

from fieldtrack.config import settings
from fieldtrack.main import create_app
from fieldtrack.state import AppState


class FakeClock:
    def __init__(self, start: dt.datetime) -> None:
        self.current = start

    def __call__(self) -> dt.datetime:
        return self.current

    def advance(self, seconds: float) -> dt.datetime:
        self.current = self.current + dt.timedelta(seconds=seconds)
        return self.current


class FakeDirectory:
    def __init__(self, users: List[Dict[str, Any]] | None = None) -> None:
        self.users = users or []
        self.calls = 0

    def fetch_users(self) -> List[Dict[str, Any]]:
        self.calls += 1
        return list(self.users)


def make_user(user_id: str, name: str) -> Dict[str, Any]:
    return {
        "_id": user_id,
        "name": name,
        "email": f"{name.lower()}@example.com",
        "mobileNumber": "9999900000",
        "designation": "Field Engineer",
        "department": "Service",
        "companyName": [{"companyName": "JBDS Power"}],
        "report": {"name": "Asha Rao"},
    }


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2024, 3, 1, 9, 0, tzinfo=dt.timezone.utc))


@pytest.fixture()
def directory() -> FakeDirectory:
    return FakeDirectory(
        [
            make_user("64f0a1b2c3d4e5f600000001", "Ravi"),
            make_user("64f0a1b2c3d4e5f600000002", "Meera"),
            make_user("64f0a1b2c3d4e5f600000003", "Karan"),
            make_user("64f0a1b2c3d4e5f600000004", "Priya"),
        ]
    )


@pytest.fixture()
def state(clock: FakeClock, directory: FakeDirectory) -> AppState:
    return AppState(settings, directory=directory, clock=clock, rng=random.Random(7))


@pytest.fixture()
def client(state: AppState) -> Generator[TestClient, None, None]:
    app = create_app(state)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def delhi() -> Dict[str, Any]:
    return {"lat": 28.6139, "lng": 77.2090, "address": "Delhi"}


@pytest.fixture()
def mumbai() -> Dict[str, Any]:
    return {"lat": 19.0760, "lng": 72.8777, "address": "Mumbai"}
