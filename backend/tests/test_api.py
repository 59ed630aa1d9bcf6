"""HTTP API tests against the in-memory backend."""
import pytest

PROJECT = {
    "requesting_department": "Gerencia General",
    "title": "Automate claims intake",
    "problem_description": "Claims are typed by hand from email attachments.",
    "impact_score": 5,
    "frequency_score": 4,
    "urgency_level": "high",
    "contact_name": "Ana Perez",
    "contact_email": "ana.perez@example.com",
}
SPRINT = {"name": "Sprint 1", "start_date": "2025-03-03", "end_date": "2025-03-14", "capacity_points": 120}


def _create_project(client, **overrides):
    response = client.post("/projects", json={**PROJECT, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def _prioritize(client, project_id):
    response = client.patch(f"/projects/{project_id}/status", json={"status": "prioritized"})
    assert response.status_code == 200, response.text


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "storage": "memory"}


def test_get_weights(client):
    assert client.get("/weights").json() == {"impact_weight": 0.4, "frequency_weight": 0.4, "urgency_weight": 0.2}


def test_create_project_returns_scores(client):
    body = _create_project(client)
    assert body["score_raw"] == 12
    assert body["score_weighted"] == pytest.approx(4.2)

    project = client.get(f"/projects/{body['id']}").json()
    assert project["status"] == "new"
    assert project["urgency_score"] == 3


def test_invalid_project_uses_error_envelope(client):
    response = client.post("/projects", json={**PROJECT, "urgency_level": "urgent", "impact_score": 9})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert {"urgency_level", "impact_score"} <= set(detail["field_errors"])


def test_missing_project(client):
    response = client.get("/projects/999")
    assert response.status_code == 404
    assert response.json()["detail"]["error_type"] == "NotFoundError"


def test_put_weights_recalculates(client):
    project = _create_project(client)
    response = client.put("/weights", json={"impact_weight": 0.5, "frequency_weight": 0.3, "urgency_weight": 0.2})
    assert response.status_code == 200
    body = response.json()
    assert body["updated_count"] == 1
    assert body["failures"] == []
    assert body["projects"][0]["id"] == project["id"]
    assert body["projects"][0]["score_weighted"] == pytest.approx(4.3)


def test_put_invalid_weights(client):
    response = client.put("/weights", json={"impact_weight": 0.5, "frequency_weight": 0.5, "urgency_weight": 0.5})
    assert response.status_code == 400
    assert set(response.json()["detail"]["field_errors"]) == {"impact_weight", "frequency_weight", "urgency_weight"}
    assert client.get("/weights").json()["impact_weight"] == 0.4


def test_project_listing_endpoints(client):
    low = _create_project(client, title="Low", impact_score=1)
    high = _create_project(client, title="High", impact_score=5)

    listed = client.get("/projects", params={"sort_desc": "false"}).json()
    assert [p["id"] for p in listed] == [low["id"], high["id"]]
    assert [p["id"] for p in client.get("/projects/top", params={"n": 1}).json()] == [high["id"]]
    assert client.get("/projects/top", params={"n": 0}).status_code == 400
    assert client.get("/projects", params={"status": "closed"}).json() == []
    assert len(client.get("/projects/points-conversion").json()) == 8


def test_review_endpoint(client):
    project = _create_project(client)
    response = client.patch(f"/projects/{project['id']}/review", json={"urgency_level_considered": "low"})
    assert response.status_code == 200
    body = response.json()
    assert body["score_weighted"] == pytest.approx(3.8)
    assert body["is_reviewed_by_team"] is True


def test_sprint_allocation_flow(client):
    first = _create_project(client, title="First")
    second = _create_project(client, title="Second", impact_score=3)
    for p in (first, second):
        _prioritize(client, p["id"])
    sprint = client.post("/sprints", json=SPRINT).json()

    backlog = client.get(f"/sprints/{sprint['id']}/backlog").json()
    assert [p["id"] for p in backlog] == [first["id"], second["id"]]

    response = client.post(f"/sprints/{sprint['id']}/allocations", json={"project_id": first["id"], "allocated_points": 40})
    assert response.status_code == 201
    allocation = response.json()

    over = client.post(f"/sprints/{sprint['id']}/allocations", json={"project_id": second["id"], "allocated_points": 90})
    assert over.status_code == 409
    assert over.json()["detail"]["code"] == "CAPACITY_EXCEEDED"

    duplicate = client.post(f"/sprints/{sprint['id']}/allocations", json={"project_id": first["id"], "allocated_points": 1})
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "DUPLICATE_ALLOCATION"

    negative = client.post(f"/sprints/{sprint['id']}/allocations", json={"project_id": second["id"], "allocated_points": -1})
    assert negative.status_code == 400
    assert negative.json()["detail"]["code"] == "INVALID_ARGUMENT"

    summary = client.get(f"/sprints/{sprint['id']}/summary").json()
    assert (summary["allocated_points"], summary["available_points"]) == (40, 80)

    patched = client.patch(f"/allocations/{allocation['id']}", json={"allocated_points": 120, "sprint_status": "in_progress"})
    assert patched.status_code == 200
    assert patched.json()["sprint_status"] == "in_progress"

    detail = client.get(f"/sprints/{sprint['id']}").json()
    assert detail["summary"]["available_points"] == 0
    assert [p["id"] for p in detail["backlog"]] == [second["id"]]

    project_allocations = client.get(f"/projects/{first['id']}/allocations").json()
    assert project_allocations[0]["sprint_name"] == "Sprint 1"

    blocked = client.delete(f"/sprints/{sprint['id']}")
    assert blocked.status_code == 409
    assert blocked.json()["detail"]["code"] == "HAS_DEPENDENTS"

    assert client.delete(f"/allocations/{allocation['id']}").status_code == 204
    assert client.delete(f"/sprints/{sprint['id']}").status_code == 204
    assert client.get(f"/sprints/{sprint['id']}/summary").status_code == 404


def test_sprint_listing_and_update(client):
    first = client.post("/sprints", json=SPRINT).json()
    second = client.post("/sprints", json={**SPRINT, "name": "Sprint 2", "start_date": "2025-03-17", "end_date": "2025-03-28"}).json()

    listed = client.get("/sprints").json()
    assert [s["sprint"]["id"] for s in listed] == [first["id"], second["id"]]
    assert [s["sprint"]["id"] for s in client.get("/sprints", params={"start_from": "2025-03-10"}).json()] == [second["id"]]

    response = client.patch(f"/sprints/{first['id']}", json={"status": "ongoing", "capacity_points": 60})
    assert response.status_code == 200
    assert response.json()["capacity_points"] == 60

    bad = client.post("/sprints", json={**SPRINT, "start_date": "2025-04-01"})
    assert bad.status_code == 400


def test_app_module_builds_routes():
    from intake_planner.main import app

    paths = {route.path for route in app.routes}
    assert {"/projects", "/projects/top", "/sprints/{sprint_id}/backlog", "/weights"} <= paths


def test_unknown_status_is_rejected(client):
    project = _create_project(client)
    response = client.patch(f"/projects/{project['id']}/status", json={"status": "archived"})
    assert response.status_code == 400
    assert "status" in response.json()["detail"]["field_errors"]
    assert client.get(f"/projects/{project['id']}").json()["status"] == "new"
