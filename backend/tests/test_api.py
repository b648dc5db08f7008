"""API integration tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from agent_memory.api.dependencies import get_memory
from agent_memory.app import app
from agent_memory.core.config import Settings
from agent_memory.memory import Memory
from agent_memory.providers.embeddings import HashedEmbeddings
from conftest import FakeSummarizer, make_messages


@pytest.fixture
def client(settings: Settings) -> TestClient:
    created: list[Memory] = []

    async def memory_override() -> Memory:
        if not created:
            created.append(
                await Memory.init(settings, embeddings=HashedEmbeddings(), summarizer=FakeSummarizer())
            )
        return created[0]

    app.dependency_overrides[get_memory] = memory_override
    with TestClient(app) as test_client:
        yield test_client
        for memory in created:
            test_client.portal.call(memory.close)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_session_ingest_search_read_flow(client: TestClient) -> None:
    resp = client.post("/sessions", json={"id": "s1", "channel": "cli", "userId": "u1", "messages": make_messages(3)})
    assert resp.status_code == 200
    assert resp.json() == {"id": "s1", "status": "created", "messageCount": 3, "chunks": 1}

    resp = client.post("/search", json={"query": "message", "limit": 5})
    assert resp.status_code == 200
    [hit] = resp.json()
    assert hit["id"] == "s1"
    assert hit["type"] == "session"
    assert 0 < hit["score"] <= 1

    resp = client.get("/items/s1", params={"chunk": 0})
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalChunks"] == 1
    assert body["chunkIndex"] == 0
    assert [m["content"] for m in body["messages"]] == ["message 0", "message 1", "message 2"]


def test_memory_write_update_delete_flow(client: TestClient) -> None:
    resp = client.post("/memories", json={"title": "Prefs", "content": "dark mode", "tags": ["ui"]})
    assert resp.status_code == 201
    memory_id = resp.json()["id"]

    resp = client.patch(f"/memories/{memory_id}", json={"content": "light mode"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert client.get(f"/items/{memory_id}").json()["content"] == "light mode"

    resp = client.delete(f"/items/{memory_id}")
    assert resp.status_code == 200
    assert client.post("/search", json={"query": "light mode"}).json() == []
    assert client.get(f"/items/{memory_id}").status_code == 200


def test_error_mapping(client: TestClient) -> None:
    resp = client.get("/items/missing")
    assert resp.status_code == 404
    assert resp.json() == {"code": "NOT_FOUND", "detail": "item not found: missing"}

    resp = client.patch("/memories/memory-00000000", json={"title": "x"})
    assert resp.status_code == 404

    resp = client.post("/sessions", json={"id": "s1", "messages": [{"role": "robot", "content": "hi"}]})
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"

    resp = client.post("/search", json={"query": "x", "limit": 0})
    assert resp.status_code == 422


def test_provider_failure_maps_to_502(client: TestClient) -> None:
    memory = client.portal.call(app.dependency_overrides[get_memory])
    memory.summarizer.fail = True
    resp = client.post("/sessions", json={"id": "s1", "messages": make_messages(1)})
    assert resp.status_code == 502
    assert resp.json()["code"] == "PROVIDER_ERROR"


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "agmem_requests_total" in resp.text
