import pytest
from fastapi.testclient import TestClient

from fieldjobs.api.app import create_app


@pytest.fixture()
def client(monkeypatch):
    monkeypatch.setenv("FIELDJOBS_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("FIELDJOBS_EVENTS_BACKEND", "none")
    monkeypatch.delenv("FIELDJOBS_ASSISTANT_URL", raising=False)
    monkeypatch.delenv("FIELDJOBS_CLAIM_STARTS_WORK", raising=False)
    return TestClient(create_app())


def _create(client, category="oil_change", **extra) -> str:
    response = client.post("/v1/jobs", json={"service_category": category, **extra})
    assert response.status_code == 201
    return response.json()["job_id"]


def _claimed(client) -> str:
    job_id = _create(client)
    response = client.post(f"/v1/jobs/{job_id}:claim", json={"technician_id": "tech-1"})
    assert response.status_code == 200
    return job_id


def _check_required_tools(client, job_id):
    tools = client.get(f"/v1/jobs/{job_id}/tools").json()["tools"]
    for tool in tools:
        if tool["required"]:
            response = client.put(f"/v1/jobs/{job_id}/tools/{tool['id']}", json={"checked": True})
            assert response.status_code == 200
    assert client.post(f"/v1/jobs/{job_id}/tools:complete", json={}).status_code == 200


def test_full_job_flow(client):
    job_id = _claimed(client)
    job = client.get(f"/v1/jobs/{job_id}").json()
    assert job["status"] == "in_progress"
    assert job["tools_status"]["all_required_satisfied"] is False

    _check_required_tools(client, job_id)
    assert client.post(f"/v1/jobs/{job_id}/timer:start", json={}).status_code == 201
    stopped = client.post(f"/v1/jobs/{job_id}/timer:stop")
    assert stopped.status_code == 200
    assert stopped.json()["ended_at"] is not None
    signature = client.post(
        f"/v1/jobs/{job_id}/signature", json={"artifact": "data:image/png;base64,AAA", "captured_by": "customer"}
    )
    assert signature.status_code == 200

    response = client.post(f"/v1/jobs/{job_id}:complete", json={"actor_id": "tech-1"})
    assert response.status_code == 200
    assert response.json() == {"completed": True, "reasons": []}
    assert client.get(f"/v1/jobs/{job_id}").json()["status"] == "completed"


def test_completion_denied_lists_reasons(client):
    job_id = _claimed(client)
    client.post(f"/v1/jobs/{job_id}/timer:start")
    response = client.post(f"/v1/jobs/{job_id}:complete")
    assert response.status_code == 200
    assert response.json() == {
        "completed": False,
        "reasons": ["timer_active", "tools_incomplete", "signature_missing"],
    }


def test_tools_complete_reports_missing_tools(client):
    job_id = _claimed(client)
    response = client.post(f"/v1/jobs/{job_id}/tools:complete")
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert "jack-stands" in body["details"]["missing_required"]


def test_second_timer_start_conflicts(client):
    job_id = _claimed(client)
    assert client.post(f"/v1/jobs/{job_id}/timer:start").status_code == 201
    response = client.post(f"/v1/jobs/{job_id}/timer:start")
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"
    timer = client.get(f"/v1/jobs/{job_id}/timer").json()
    assert timer["active"] is not None
    assert len(timer["sessions"]) == 1


def test_stop_without_timer_is_not_found(client):
    job_id = _claimed(client)
    assert client.post(f"/v1/jobs/{job_id}/timer:stop").status_code == 404


def test_claim_by_second_technician_conflicts(client):
    job_id = _claimed(client)
    response = client.post(f"/v1/jobs/{job_id}:claim", json={"technician_id": "tech-2"})
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_state"


def test_quote_round_trip(client):
    job_id = _create(client)
    assert client.post(f"/v1/jobs/{job_id}:quote").json()["status"] == "quoted"
    assert client.post(f"/v1/jobs/{job_id}:withdraw-quote").json()["status"] == "pending"


def test_unknown_job_is_404(client):
    assert client.get("/v1/jobs/nope").status_code == 404
    assert client.post("/v1/jobs/nope:claim", json={"technician_id": "tech-1"}).status_code == 404


def test_schema_errors_return_422(client):
    assert client.post("/v1/jobs", json={"service_category": "teleport"}).status_code == 422
    job_id = _create(client)
    assert client.post(f"/v1/jobs/{job_id}:claim", json={}).status_code == 422
    assert client.post(f"/v1/jobs/{job_id}/signature", json={"artifact": ""}).status_code == 422


def test_list_jobs_by_status(client):
    pending = _create(client)
    claimed = _claimed(client)
    jobs = client.get("/v1/jobs", params={"status": "in_progress"}).json()["jobs"]
    assert [job["job_id"] for job in jobs] == [claimed]
    assert pending in [job["job_id"] for job in client.get("/v1/jobs").json()["jobs"]]
    assert client.get("/v1/jobs", params={"status": "archived"}).status_code == 400


def test_catalog_lists_every_category(client):
    categories = client.get("/v1/catalog").json()["categories"]
    assert len(categories) == 9
    oil = next(entry for entry in categories if entry["id"] == "oil_change")
    assert "torque-wrench" not in oil["required_tools"]


def test_claim_can_be_configured_to_accept_only(monkeypatch):
    monkeypatch.setenv("FIELDJOBS_EVENTS_BACKEND", "none")
    monkeypatch.setenv("FIELDJOBS_CLAIM_STARTS_WORK", "false")
    client = TestClient(create_app())
    job_id = _create(client)
    response = client.post(f"/v1/jobs/{job_id}:claim", json={"technician_id": "tech-1"})
    assert response.json()["status"] == "accepted"


def test_timer_stop_keeps_notes(client):
    job_id = _claimed(client)
    client.post(f"/v1/jobs/{job_id}/timer:start")
    stopped = client.post(f"/v1/jobs/{job_id}/timer:stop", json={"notes": "rotated tyres front to back"})
    assert stopped.status_code == 200
    assert stopped.json()["notes"] == "rotated tyres front to back"
    sessions = client.get(f"/v1/jobs/{job_id}/timer").json()["sessions"]
    assert sessions[0]["notes"] == "rotated tyres front to back"


def test_timer_notes_length_is_limited(client):
    job_id = _claimed(client)
    client.post(f"/v1/jobs/{job_id}/timer:start")
    response = client.post(f"/v1/jobs/{job_id}/timer:stop", json={"notes": "x" * 2001})
    assert response.status_code == 422
    assert client.get(f"/v1/jobs/{job_id}/timer").json()["active"] is not None
