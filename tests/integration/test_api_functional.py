import uuid

from fastapi.testclient import TestClient


def test_api_ingest_research_and_source_search() -> None:
    from research_agent.api.main import app

    client = TestClient(app)
    source_url = f"https://docs.test/{uuid.uuid4()}"

    health = client.get("/health")
    assert health.status_code == 200
    assert [item["name"] for item in health.json()["providers"]] == ["gemini", "groq", "cerebras"]
    assert not any(item["configured"] for item in health.json()["providers"])

    ingest_resp = client.post(
        "/ingest",
        json={
            "sourceUrl": source_url,
            "title": "Vector index operations",
            "content": "# Compaction\nVector index compaction reclaims deleted slots nightly.",
            "chunkStrategy": "heading-aware",
        },
    )
    assert ingest_resp.status_code == 200
    ingested = ingest_resp.json()
    assert ingested["accepted"] is True
    assert ingested["chunkCount"] == 1

    again = client.post(
        "/ingest",
        json={
            "sourceUrl": source_url,
            "title": "Vector index operations",
            "content": "# Compaction\nVector index compaction reclaims deleted slots nightly.",
        },
    )
    assert again.json()["duplicate"] is True
    assert again.json()["sourceId"] == ingested["sourceId"]

    research_resp = client.post(
        "/research",
        json={"userId": "api-user", "query": "vector index compaction", "mode": "quick"},
    )
    assert research_resp.status_code == 200
    payload = research_resp.json()
    assert payload["status"] == "fallback"
    assert payload["sessionId"]
    assert payload["insightId"]
    assert payload["telemetry"]["route"] == "fallback"
    assert payload["citations"][0]["sourceId"] == ingested["sourceId"]
    assert payload["citations"][0]["label"] == 1
    assert "followUpQuestions" in payload
    assert "clarificationPrompt" not in payload

    search_resp = client.post("/sources/search", json={"query": "vector index compaction", "limit": 3})
    assert search_resp.status_code == 200
    items = search_resp.json()["items"]
    assert items[0]["sourceId"] == ingested["sourceId"]
    assert items[0]["heading"] == "Compaction"
    assert len(items) <= 3


def test_api_rejects_invalid_payloads() -> None:
    from research_agent.api.main import app

    client = TestClient(app)

    assert client.post("/research", json={"userId": "u", "query": ""}).status_code == 422
    assert client.post("/research", json={"userId": "u", "query": "x", "mode": "slow"}).status_code == 422
    assert (
        client.post(
            "/ingest",
            json={"sourceUrl": "https://x.test", "title": "t", "content": "c", "chunkStrategy": "words"},
        ).status_code
        == 422
    )
    assert client.post("/sources/search", json={"query": "x", "limit": 50}).status_code == 422


def test_api_unknown_session_is_not_found() -> None:
    from research_agent.api.main import app

    client = TestClient(app)
    resp = client.post(
        "/research",
        json={"userId": "u", "query": "vector index compaction", "sessionId": "missing-session"},
    )

    assert resp.status_code == 404
    assert "Session not found: missing-session" in resp.json()["detail"]
