"""
Tests for the HTTP API: request validation, response shape and error mapping.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeChunkStore, FakeEmbedder, make_chunk
from hubcontext.api.deps import (
    get_chat_service,
    get_embedding_service,
    get_metrics_service,
    get_retrieval_service,
)
from hubcontext.core.exceptions import (
    EmbeddingAuthError,
    EmbeddingServiceError,
    EmbeddingTransientError,
    StorageError,
)
from hubcontext.models.schemas import Citation, GenerateResponse, PerformanceInfo
from hubcontext.services.context_cache import ContextCache
from hubcontext.services.context_retrieval import ContextRetrievalService
from hubcontext.services.metrics import MetricsRecorder, MetricsService
from main import create_app


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def retrieval_service(cache_store, metrics_store, clock):
    return ContextRetrievalService(
        embedder=FakeEmbedder(),
        chunk_store=FakeChunkStore([
            make_chunk("a", similarity=0.9, hub_areas=["marketing"], title="Campaign Playbook",
                       content="Lead with customer outcomes. " * 10),
            make_chunk("b", similarity=0.8, hub_areas=["sales"], document_id="doc-2"),
        ]),
        cache=ContextCache(cache_store, clock=clock),
        metrics=MetricsRecorder(metrics_store),
    )


class TestRetrieveEndpoint:
    def test_live_query_response_shape(self, app, client, retrieval_service):
        app.dependency_overrides[get_retrieval_service] = lambda: retrieval_service

        response = client.post("/api/context/retrieve", json={"query": "marketing tips", "hubArea": "marketing"})

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "live_query"
        assert body["performance"]["cacheHit"] is False
        assert "durationMs" in body["performance"]
        assert "avgSimilarity" in body["performance"]["qualityMetrics"]
        first = body["results"][0]
        assert set(first) >= {
            "chunk_id", "document_id", "document_title", "content",
            "citation_context", "relevance_score", "hub_areas",
        }
        assert first["document_title"] == "Campaign Playbook"
        assert first["citation_context"].endswith("...")
        assert len(first["citation_context"]) == 203

    def test_second_request_comes_from_cache(self, app, client, retrieval_service):
        app.dependency_overrides[get_retrieval_service] = lambda: retrieval_service
        payload = {"query": "marketing tips", "hubArea": "marketing"}

        first = client.post("/api/context/retrieve", json=payload).json()
        second = client.post("/api/context/retrieve", json=payload).json()

        assert second["source"] == "cache"
        assert second["results"] == first["results"]

    @pytest.mark.parametrize("payload", [
        {"query": ""},
        {"query": "   "},
        {},
        {"query": "tips", "hubArea": "astrology"},
        {"query": "tips", "similarityThreshold": 1.5},
        {"query": "tips", "matchCount": 0},
    ])
    def test_invalid_input_is_400(self, app, client, retrieval_service, payload):
        app.dependency_overrides[get_retrieval_service] = lambda: retrieval_service

        response = client.post("/api/context/retrieve", json=payload)

        assert response.status_code == 400
        assert "error" in response.json()

    def test_malformed_json_is_400(self, app, client, retrieval_service):
        app.dependency_overrides[get_retrieval_service] = lambda: retrieval_service

        response = client.post(
            "/api/context/retrieve",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    def test_match_count_above_fifty_is_accepted(self, app, client, retrieval_service):
        app.dependency_overrides[get_retrieval_service] = lambda: retrieval_service

        response = client.post("/api/context/retrieve", json={"query": "marketing tips", "matchCount": 60})

        assert response.status_code == 200
        assert retrieval_service.chunk_store.calls[0]["match_count"] == 120

    def test_unexpected_error_is_500_json(self, app):
        failing = AsyncMock()
        failing.retrieve.side_effect = RuntimeError("cache row exploded")
        app.dependency_overrides[get_retrieval_service] = lambda: failing
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/api/context/retrieve", json={"query": "marketing tips"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    @pytest.mark.parametrize("error, status", [
        (EmbeddingAuthError("Embedding API error: 401 invalid key", 401, 401), 401),
        (EmbeddingTransientError("Embedding API error: 429 rate limited", 429, 429), 429),
        (EmbeddingTransientError("Embedding API error: 503 unavailable", 502, 503), 502),
        (EmbeddingServiceError("Embedding API error: 400 bad input", 400, 400), 400),
        (StorageError("Vector search failed"), 500),
    ])
    def test_upstream_errors_keep_status_class(self, app, client, cache_store, metrics_store, clock, error, status):
        failing = AsyncMock()
        failing.retrieve.side_effect = error
        app.dependency_overrides[get_retrieval_service] = lambda: failing

        response = client.post("/api/context/retrieve", json={"query": "marketing tips"})

        assert response.status_code == status
        assert response.json() == {"error": error.message}


class TestOtherEndpoints:
    def test_embedding_endpoint(self, app, client):
        app.dependency_overrides[get_embedding_service] = lambda: FakeEmbedder(vector=[0.5, 0.25])

        response = client.post("/api/embedding", json={"text": "pricing strategy"})

        assert response.status_code == 200
        assert response.json() == {"embedding": [0.5, 0.25]}

    def test_embedding_endpoint_requires_text(self, app, client):
        app.dependency_overrides[get_embedding_service] = lambda: FakeEmbedder()

        response = client.post("/api/embedding", json={"text": ""})

        assert response.status_code == 400

    def test_respond_endpoint(self, app, client):
        chat = AsyncMock()
        chat.generate_response.return_value = GenerateResponse(
            content="Focus on retention.",
            citations=[Citation(document_id="doc-1", context="Retention drives growth", relevance=0.88)],
            performance=PerformanceInfo(duration_ms=42, cache_hit=False),
        )
        app.dependency_overrides[get_chat_service] = lambda: chat

        response = client.post("/api/context/respond", json={
            "query": "How do we grow?",
            "contextChunks": [{"content": "Retention drives growth", "document_id": "doc-1", "similarity": 0.88}],
            "hubArea": "strategy",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == "Focus on retention."
        assert body["citations"][0]["document_id"] == "doc-1"
        assert body["performance"]["durationMs"] == 42
        sent = chat.generate_response.call_args.args[0]
        assert sent.context_chunks[0].similarity == 0.88

    def test_performance_metrics_endpoint(self, app, client, metrics_store):
        metrics_store.tables["performance_metrics"] = [
            {"operation_type": "context_retrieval", "duration_ms": 80, "cache_hit": True, "status": "success", "hub_area": "team"},
        ]
        app.dependency_overrides[get_metrics_service] = lambda: MetricsService(metrics_store)

        response = client.get("/api/metrics/performance", params={"timeframe": "day"})

        assert response.status_code == 200
        body = response.json()
        assert body["totalQueries"] == 1
        assert body["cacheHitRate"] == 1.0
        assert body["byHubArea"]["team"]["count"] == 1

    def test_unknown_timeframe_is_400(self, app, client, metrics_store):
        app.dependency_overrides[get_metrics_service] = lambda: MetricsService(metrics_store)

        response = client.get("/api/metrics/quality", params={"timeframe": "year"})

        assert response.status_code == 400

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
