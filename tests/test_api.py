import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.api import deps
from app.api.v1.endpoints import presence, timesheet
from app.core.counters import AnomalyCounter
from app.db.session import get_db
from tests.conftest import ANCHOR, berlin, north_of, add_site, add_member, add_event

USER = 7
PROJECT = 1


@pytest.fixture
def current_user():
    return {"user": {"user_id": USER, "username": "worker", "role_level": 1, "roles": []}}


@pytest.fixture
def client(db, clock, current_user, monkeypatch):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_current_user] = lambda: current_user["user"]
    monkeypatch.setattr(timesheet.timesheet_service, "clock", clock)
    monkeypatch.setattr(presence.shift_state_service, "clock", clock)
    monkeypatch.setattr(presence.challenge_service, "clock", clock)
    monkeypatch.setattr(presence.adjudication_service, "clock", clock)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def on_shift(db):
    add_site(db, PROJECT, *ANCHOR, radius_m=150)
    add_member(db, PROJECT, USER)
    add_event(db, USER, "enter", berlin(2025, 3, 10, 7, 45), project_id=PROJECT)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_my_timesheet(client, db):
    add_event(db, USER, "enter", berlin(2025, 3, 4, 8))
    add_event(db, USER, "exit", berlin(2025, 3, 4, 17))

    response = client.get("/api/v1/timesheet/me", params={"month": "2025-03"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]["days"]) == 31
    assert body["data"]["days"][3]["minutes"] == 540
    assert body["data"]["days"][3]["first_start_local"] == "08:00"
    assert body["data"]["total_minutes"] == 540


def test_my_timesheet_invalid_month(client):
    response = client.get("/api/v1/timesheet/me", params={"month": "2025-13"})

    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "invalid_month"


def test_my_timesheet_invalid_timezone(client):
    response = client.get("/api/v1/timesheet/me", params={"month": "2025-03", "tz": "Nowhere/City"})

    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "invalid_timezone"


def test_my_months(client, db):
    add_event(db, USER, "enter", berlin(2025, 2, 4, 8))
    add_event(db, USER, "exit", berlin(2025, 3, 4, 8))

    response = client.get("/api/v1/timesheet/me/months")

    assert response.status_code == 200
    assert response.json()["data"]["months"] == ["2025-03", "2025-02"]


def test_other_users_timesheet_requires_admin(client):
    response = client.get("/api/v1/timesheet/users/8", params={"month": "2025-03"})

    assert response.status_code == 403


def test_admin_reads_other_users_timesheet(client, db, current_user):
    current_user["user"] = {"user_id": 1, "role_level": 50}
    add_event(db, 8, "enter", berlin(2025, 3, 4, 8))
    add_event(db, 8, "exit", berlin(2025, 3, 4, 9))

    response = client.get("/api/v1/timesheet/users/8", params={"month": "2025-03"})

    assert response.status_code == 200
    assert response.json()["data"]["employee_id"] == 8
    assert response.json()["data"]["total_minutes"] == 60


def test_project_timesheets(client, db, current_user):
    current_user["user"] = {"user_id": 1, "role_level": 50}
    add_site(db, PROJECT)
    add_member(db, PROJECT, USER)
    add_member(db, PROJECT, 8)
    add_event(db, USER, "enter", berlin(2025, 3, 4, 8), project_id=PROJECT)
    add_event(db, USER, "exit", berlin(2025, 3, 4, 10), project_id=PROJECT)

    listed = client.get(f"/api/v1/timesheet/projects/{PROJECT}", params={"month": "2025-03"})
    with_empty = client.get(
        f"/api/v1/timesheet/projects/{PROJECT}",
        params={"month": "2025-03", "include_empty": "true"}
    )

    assert listed.status_code == 200
    assert [(s["employee_id"], s["total_minutes"]) for s in listed.json()["data"]] == [(USER, 120)]
    assert [s["employee_id"] for s in with_empty.json()["data"]] == [USER, 8]


def test_project_timesheets_require_admin(client):
    response = client.get(f"/api/v1/timesheet/projects/{PROJECT}", params={"month": "2025-03"})

    assert response.status_code == 403


def test_project_timesheets_unknown_project(client, current_user):
    current_user["user"] = {"user_id": 1, "role_level": 50}

    response = client.get("/api/v1/timesheet/projects/99", params={"month": "2025-03"})

    assert response.status_code == 404
    assert response.json()["details"]["reason"] == "project_not_found"


def test_project_months(client, db, current_user):
    current_user["user"] = {"user_id": 1, "role_level": 50}
    add_event(db, 8, "enter", berlin(2025, 2, 4, 8), project_id=PROJECT)
    add_event(db, USER, "enter", berlin(2025, 3, 4, 8), project_id=PROJECT)

    response = client.get(f"/api/v1/timesheet/projects/{PROJECT}/months")

    assert response.status_code == 200
    assert response.json()["data"]["months"] == ["2025-03", "2025-02"]


def test_anomaly_counts(client, db, current_user, monkeypatch):
    monkeypatch.setattr(timesheet.timesheet_service, "counter", AnomalyCounter())
    add_event(db, USER, "exit", berlin(2025, 3, 4, 8))
    client.get("/api/v1/timesheet/me", params={"month": "2025-03"})
    current_user["user"] = {"user_id": 1, "role_level": 50}

    response = client.get("/api/v1/timesheet/anomalies")

    assert response.status_code == 200
    assert response.json()["data"]["counts"] == {"orphan_exit": 1}


def test_unauthenticated(client, current_user):
    current_user["user"] = None

    response = client.get("/api/v1/timesheet/me", params={"month": "2025-03"})

    assert response.status_code == 401


def test_shift_state(client, on_shift):
    response = client.get("/api/v1/presence/shift", params={"project_id": PROJECT})

    assert response.status_code == 200
    assert response.json()["data"]["active"] is True
    assert response.json()["data"]["local_date"] == "2025-03-10"


def test_shift_state_requires_project(client):
    response = client.get("/api/v1/presence/shift")

    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "project_required"


def test_ensure_and_list_today(client, on_shift):
    created = client.post("/api/v1/presence/challenges/today", params={"project_id": PROJECT})
    listed = client.get("/api/v1/presence/challenges/today", params={"project_id": PROJECT})

    assert created.status_code == 200
    assert [c["pc_slot"] for c in created.json()["data"]] == [1, 2]
    assert [c["pc_id"] for c in listed.json()["data"]] == [c["pc_id"] for c in created.json()["data"]]


def test_ensure_requires_membership(client, db):
    add_site(db, PROJECT, *ANCHOR)

    response = client.post("/api/v1/presence/challenges/today", params={"project_id": PROJECT})

    assert response.status_code == 403
    assert response.json()["details"]["reason"] == "not_project_member"


def test_site_location_missing(client, db):
    add_site(db, PROJECT, lat=None, lng=None)
    add_member(db, PROJECT, USER)

    response = client.post("/api/v1/presence/challenges/today", params={"project_id": PROJECT})

    assert response.status_code == 422
    assert response.json()["details"]["reason"] == "site_location_missing"


def test_create_single_challenge(client, on_shift):
    response = client.post("/api/v1/presence/challenges", json={"project_id": PROJECT, "slot": 2})

    assert response.status_code == 200
    assert response.json()["data"]["pc_slot"] == 2


def test_create_without_shift_is_a_conflict(client, db):
    add_site(db, PROJECT, *ANCHOR)
    add_member(db, PROJECT, USER)

    response = client.post("/api/v1/presence/challenges", json={"project_id": PROJECT, "slot": 1})

    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "no_active_shift"


def test_create_rejects_unknown_slot(client, on_shift):
    response = client.post("/api/v1/presence/challenges", json={"project_id": PROJECT, "slot": 3})

    assert response.status_code == 422


def test_replace_fire_time(client, on_shift):
    fired_at = berlin(2025, 3, 10, 10, 45).isoformat()

    response = client.put(
        "/api/v1/presence/challenges/today/1/fire-time",
        params={"project_id": PROJECT},
        json={"fired_at": fired_at}
    )

    assert response.status_code == 200
    assert response.json()["data"]["pc_slot"] == 1


def test_replace_fire_time_without_shift(client, db):
    add_site(db, PROJECT, *ANCHOR)
    add_member(db, PROJECT, USER)

    response = client.put(
        "/api/v1/presence/challenges/today/1/fire-time",
        params={"project_id": PROJECT},
        json={}
    )

    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "no_active_shift"


def test_respond_accepted_then_rejected(client, on_shift):
    challenges = client.post("/api/v1/presence/challenges/today", params={"project_id": PROJECT}).json()["data"]
    challenge_id = challenges[0]["pc_id"]
    lat, lng = north_of(*ANCHOR, 140)

    accepted = client.post(f"/api/v1/presence/challenges/{challenge_id}/respond", json={"lat": lat, "lng": lng})
    again = client.post(f"/api/v1/presence/challenges/{challenge_id}/respond", json={"lat": lat, "lng": lng})

    assert accepted.status_code == 200
    assert accepted.json()["data"]["accepted"] is True
    assert again.status_code == 422
    assert again.json()["details"]["reason"] == "already_responded"


def test_respond_out_of_range(client, on_shift):
    challenges = client.post("/api/v1/presence/challenges/today", params={"project_id": PROJECT}).json()["data"]
    lat, lng = north_of(*ANCHOR, 160)

    response = client.post(
        f"/api/v1/presence/challenges/{challenges[0]['pc_id']}/respond",
        json={"lat": lat, "lng": lng}
    )

    assert response.status_code == 422
    assert response.json()["details"]["reason"] == "out_of_range"
    assert response.json()["details"]["distance_m"] == pytest.approx(160, abs=0.1)


def test_respond_unknown_challenge(client, on_shift):
    response = client.post("/api/v1/presence/challenges/424242/respond", json={"lat": 52.52, "lng": 13.405})

    assert response.status_code == 404
    assert response.json()["details"]["reason"] == "not_found"


def test_respond_rejects_bad_coordinates(client, on_shift):
    response = client.post("/api/v1/presence/challenges/1/respond", json={"lat": 95, "lng": 13.405})

    assert response.status_code == 422
    assert response.json()["message"] == "Validation error"
