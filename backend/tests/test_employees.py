from __future__ import annotations

import pytest
import requests
from fastapi.testclient import TestClient

from fieldtrack.directory import DirectoryClient

RAVI = "64f0a1b2c3d4e5f600000001"
MEERA = "64f0a1b2c3d4e5f600000002"


def test_employees_overlay_directory_records(client: TestClient):
    response = client.get("/api/employees")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 4
    ravi, meera, karan, priya = data["employees"]

    assert ravi["id"] == RAVI
    assert ravi["phone"] == "9999900000"
    assert ravi["companyName"] == "JBDS Power"
    assert ravi["reportTo"] == "Asha Rao"
    assert ravi["deviceId"] == "device_000001"
    assert ravi["currentTask"] == "Client meeting"
    assert ravi["status"] == "active"
    assert meera["status"] == "meeting"
    assert meera["currentTask"] == "Equipment installation"
    assert karan["status"] == "active"
    assert priya["status"] == "inactive"

    assert abs(ravi["location"]["lat"] - 28.6139) <= 0.05
    assert ravi["location"]["address"] == "New Delhi, India"
    assert ravi["lastUpdate"].endswith("minutes ago")

    again = client.get("/api/employees").json()["employees"][0]
    assert again["location"] == ravi["location"]


def test_directory_outage_degrades_to_empty(client: TestClient, directory):
    directory.users = []
    response = client.get("/api/employees")
    assert response.status_code == 200
    assert response.json() == {"employees": [], "total": 0}


def test_get_employee(client: TestClient):
    assert client.get(f"/api/employees/{MEERA}").json()["name"] == "Meera"
    missing = client.get("/api/employees/nobody")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Employee not found"}


def test_update_location_labels_coordinates(client: TestClient):
    response = client.put(f"/api/employees/{MEERA}/location", json={"lat": 19.08, "lng": 72.88, "accuracy": 8})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    employee = data["employee"]
    assert employee["status"] == "active"
    assert employee["lastUpdate"] == "Just now"
    assert employee["location"]["address"] == "Mumbai, India (19.0800, 72.8800)"
    assert employee["location"]["accuracy"] == 8

    assert client.put(f"/api/employees/{MEERA}/location", json={"lat": 19.08}).status_code == 400
    assert client.put("/api/employees/nobody/location", json={"lat": 1, "lng": 2}).status_code == 404


def test_update_status_keeps_previous_task(client: TestClient):
    response = client.put(f"/api/employees/{RAVI}/status", json={"status": "meeting"})
    assert response.status_code == 200
    employee = response.json()
    assert employee["status"] == "meeting"
    assert employee["currentTask"] == "Client meeting"
    assert employee["lastUpdate"] == "Just now"

    changed = client.put(f"/api/employees/{RAVI}/status", json={"status": "active", "currentTask": "Survey"}).json()
    assert changed["currentTask"] == "Survey"

    assert client.put(f"/api/employees/{RAVI}/status", json={}).status_code == 400
    assert client.put(f"/api/employees/{RAVI}/status", json={"status": "asleep"}).status_code == 400


def test_refresh_locations_reseeds(client: TestClient):
    client.put(f"/api/employees/{RAVI}/location", json={"lat": 40.7128, "lng": -74.006})
    response = client.post("/api/employees/refresh-locations")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Successfully refreshed locations for 4 employees"
    assert data["employees"][0]["location"]["address"] == "New Delhi, India"


@pytest.mark.parametrize(
    "method,path",
    [("post", "/api/employees"), ("put", f"/api/employees/{RAVI}"), ("delete", f"/api/employees/{RAVI}")],
)
def test_directory_owned_writes_are_rejected(client: TestClient, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 501


class _FakeResponse:
    def __init__(self, status_code: int, payload=None, reason: str = "OK") -> None:
        self.status_code = status_code
        self._payload = payload
        self.reason = reason

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_directory_client_returns_users(monkeypatch):
    captured = {}

    def fake_get(url, headers=None, timeout=None):
        captured.update(url=url, headers=headers, timeout=timeout)
        return _FakeResponse(200, [{"_id": "a"}, "junk", {"_id": "b"}])

    monkeypatch.setattr(requests, "get", fake_get)
    users = DirectoryClient("https://directory.example/api/user", timeout=15).fetch_users()
    assert users == [{"_id": "a"}, {"_id": "b"}]
    assert captured["timeout"] == 15
    assert captured["headers"]["Accept"] == "application/json"


@pytest.mark.parametrize(
    "outcome",
    [
        requests.Timeout("slow"),
        requests.ConnectionError("refused"),
        _FakeResponse(503, reason="Service Unavailable"),
        _FakeResponse(200, ValueError("not json")),
        _FakeResponse(200, {"users": []}),
    ],
)
def test_directory_client_degrades_to_empty(monkeypatch, outcome):
    def fake_get(url, headers=None, timeout=None):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(requests, "get", fake_get)
    assert DirectoryClient("https://directory.example/api/user").fetch_users() == []
