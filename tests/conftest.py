import asyncio
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from trip_planner_api.app.core.config import settings
from trip_planner_api.app.core.db import get_connection, init_db
from trip_planner_api.app.services.recompute import RecomputeDispatcher


API = "/api/v1"


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Fresh SQLite file per test."""
    path = tmp_path / "trip.db"
    monkeypatch.setattr(settings, "database_url", str(path))
    init_db()
    RecomputeDispatcher.clear_history()
    yield path
    RecomputeDispatcher.clear_history()


@pytest.fixture
def run():
    """Run a service coroutine to completion."""
    return asyncio.run


@pytest.fixture
def make_participant():
    """Insert a participant row directly and return its id."""

    def _make(name, trip_status="confirmed", is_groom=False, is_admin=False):
        conn = get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO participants (email, display_name, trip_status, is_groom, is_admin) "
                "VALUES (?, ?, ?, ?, ?)",
                (f"{name.lower()}@example.com", name, trip_status, int(is_groom), int(is_admin)),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    return _make


@pytest.fixture
def make_event():
    """Insert an event row directly and return its id."""

    def _make(total_cost, split_type="even", is_mandatory=True, exclude_groom=True,
              title="Event", start_time="2026-06-12T14:00:00"):
        conn = get_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO events (title, start_time, is_mandatory, total_cost, split_type, exclude_groom) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (title, start_time, int(is_mandatory), str(total_cost), split_type, int(exclude_groom)),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    return _make


@pytest.fixture
def make_rsvp():
    def _make(participant_id, event_id, status):
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO rsvps (participant_id, event_id, status) VALUES (?, ?, ?)",
                (participant_id, event_id, status),
            )
            conn.commit()
        finally:
            conn.close()

    return _make


@pytest.fixture
def cost_rows():
    """Return ``{participant_id: (amount, note)}`` for an event."""

    def _rows(event_id):
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT participant_id, amount, note FROM event_costs WHERE event_id = ?",
                (event_id,),
            ).fetchall()
        finally:
            conn.close()
        return {row["participant_id"]: (Decimal(row["amount"]), row["note"]) for row in rows}

    return _rows


@pytest.fixture
def client(database):
    from trip_planner_api.app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register and log in a participant; returns ``(id, headers)``."""

    def _register(name, trip_status="confirmed", password="secret123"):
        email = f"{name.lower()}@example.com"
        response = client.post(
            f"{API}/participants/",
            json={"email": email, "display_name": name, "password": password, "trip_status": trip_status},
        )
        assert response.status_code == 201, response.text
        login = client.post(f"{API}/participants/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return response.json()["id"], {"Authorization": f"Bearer {token}"}

    return _register


@pytest.fixture
def admin(register):
    """The first registered participant, who is the trip administrator."""
    return register("Admin")
