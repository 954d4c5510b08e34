import httpx
import pytest
from fastapi.testclient import TestClient

from fieldjobs.api.app import create_app
from fieldjobs.assistant.client import AssistantClient


@pytest.fixture()
def app(monkeypatch):
    monkeypatch.setenv("FIELDJOBS_EVENTS_BACKEND", "none")
    monkeypatch.delenv("FIELDJOBS_ASSISTANT_URL", raising=False)
    return create_app()


@pytest.fixture()
def client(app):
    return TestClient(app)


def _job(client) -> str:
    response = client.post(
        "/v1/jobs",
        json={
            "service_category": "engine_diagnostic",
            "vehicle": {"make": "Audi", "model": "A4", "year": 2006, "vin": "WAUZZZ8BX5A123456"},
        },
    )
    return response.json()["job_id"]


def test_standalone_context(client):
    response = client.post(
        "/v1/diagnostics/context",
        json={"vehicle": {"vin": "1VWZZZ3CX5A123456"}, "codes": ["P9999"], "symptoms": ["poor fuel economy"]},
    )
    assert response.status_code == 200
    context = response.json()["context"]
    assert context["vehicle"]["engine_family"] == "CCTA"
    assert context["code_explanations"][0]["explanation"].startswith("P9999 - Code not in knowledge base.")
    assert context["workflow_category"] == "performance"


def test_job_context_uses_job_vehicle(client):
    job_id = _job(client)
    response = client.post(f"/v1/jobs/{job_id}/diagnostics", json={"codes": ["P0302"], "symptoms": ["rough idle"]})
    body = response.json()
    assert body["context"]["vehicle"]["engine_family"] == "BPY"
    assert "ENGINE: BPY (2.0T FSI)" in body["summary"]


def test_job_context_for_unknown_job(client):
    assert client.post("/v1/jobs/missing/diagnostics", json={}).status_code == 404


def test_assistant_not_configured(client):
    job_id = _job(client)
    response = client.post(f"/v1/jobs/{job_id}/assistant", json={"message": "why the misfire?"})
    assert response.status_code == 503


def test_assistant_reply_is_relayed(app, client):
    def handler(request):
        return httpx.Response(200, json={"message": "Check coil 2 first.", "session_id": "s-1"})

    app.state.assistant = AssistantClient("https://assistant.example.com", transport=httpx.MockTransport(handler))
    job_id = _job(client)
    response = client.post(f"/v1/jobs/{job_id}/assistant", json={"message": "misfire?", "codes": ["P0302"]})
    assert response.status_code == 200
    assert response.json() == {"response": "Check coil 2 first.", "session_id": "s-1", "suggestions": []}


def test_assistant_failure_is_502(app, client):
    app.state.assistant = AssistantClient(
        "https://assistant.example.com", transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )
    job_id = _job(client)
    response = client.post(f"/v1/jobs/{job_id}/assistant", json={"message": "misfire?"})
    assert response.status_code == 502
