"""
Smoke tests for the StreamScout API.

The upstreams are replaced by a fake `requests` session, so these run without
network access or real API keys.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from conftest import FakeResponse, FakeSession
from streamscout.config import Settings
from streamscout.context import build_context
from streamscout.integrations.http import UpstreamError


def _client(settings: Settings, session: FakeSession) -> TestClient:
    app = create_app(context=build_context(settings, session=session))  # type: ignore[arg-type]
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def client(settings: Settings, inception_session: FakeSession, monkeypatch: pytest.MonkeyPatch):
    """Create a test client wired to canned Inception responses."""
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    with _client(settings, inception_session) as test_client:
        yield test_client


class TestRootEndpoint:
    def test_root_returns_ok(self, client: TestClient):
        """Root endpoint returns status ok."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "streamscout"}


class TestSearchEndpoint:
    def test_search_returns_results(self, client: TestClient):
        response = client.get("/api/search", params={"query": "  inception  "})
        assert response.status_code == 200
        data = response.json()
        assert data["requestId"] == response.headers["X-Request-ID"]
        assert data["results"][0] == {
            "id": 27205,
            "title": "Inception",
            "year": "2010",
            "poster": "https://image.tmdb.org/t/p/w200/oYuLEt3zVCKq57qu2F8dT7NIa6f.jpg",
            "rating": pytest.approx(8.369),
        }
        assert data["results"][1]["year"] == "Unknown"
        assert data["results"][1]["rating"] == 0.0

    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({}, "Query parameter is required"),
            ({"query": "   "}, "Query cannot be empty"),
            ({"query": "x" * 201}, "Query cannot exceed 200 characters"),
            ({"query": "bad\x07query"}, "Query contains invalid control characters"),
        ],
    )
    def test_search_rejects_bad_query(self, client: TestClient, params, message: str):
        response = client.get("/api/search", params=params)
        assert response.status_code == 400
        assert response.json()["error"] == message
        assert response.json()["requestId"]

    def test_search_upstream_failure_is_generic_500(self, settings: Settings, fake_session: FakeSession):
        fake_session.add("/search/movie", FakeResponse(500, {"status_message": "internal tmdb detail"}))
        with _client(settings, fake_session) as client:
            response = client.get("/api/search", params={"query": "inception"})

        assert response.status_code == 500
        body = response.json()
        assert body == {"error": "Failed to search movies", "requestId": response.headers["X-Request-ID"]}


class TestEnrichEndpoint:
    def test_enrich_returns_merged_movie(self, client: TestClient):
        response = client.get("/api/enrich", params={"id": "27205"})
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == 27205
        assert data["title"] == "Inception"
        assert data["year"] == "2010"
        assert data["runtime"] == 148
        assert data["trailerKey"] == "YoHD9XEInc0"
        assert data["rating"] == {"imdb": 8.8, "rottenTomatoes": 87, "combined": pytest.approx(8.75)}
        assert data["streamingOptions"][0]["service"] == "Netflix"
        assert data["requestId"] == response.headers["X-Request-ID"]

    def test_enrich_omits_absent_fields(self, settings: Settings, fake_session: FakeSession, load_fixture):
        details = load_fixture("tmdb/movie_details_inception.json")
        details.update({"imdb_id": None, "runtime": None, "videos": {"results": []}})
        fake_session.add("/movie/27205", FakeResponse(200, details))
        fake_session.add("streaming-availability", FakeResponse(500, {}))

        with _client(settings, fake_session) as client:
            response = client.get("/api/enrich", params={"id": "27205"})

        assert response.status_code == 200
        data = response.json()
        assert data["rating"] == {}
        assert data["streamingOptions"] == []
        assert "runtime" not in data
        assert "trailerKey" not in data

    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({}, "Movie ID is required"),
            ({"id": "abc"}, "Movie ID must be a valid number"),
            ({"id": "-5"}, "Movie ID must be a positive number"),
            ({"id": "0"}, "Movie ID must be a positive number"),
            ({"id": "10000001"}, "Movie ID exceeds maximum value"),
            ({"id": "12.5"}, "Movie ID must be an integer"),
        ],
    )
    def test_enrich_rejects_bad_id(self, client: TestClient, params, message: str):
        response = client.get("/api/enrich", params=params)
        assert response.status_code == 400
        assert response.json()["error"] == message

    def test_enrich_huge_id_is_a_400(self, client: TestClient):
        response = client.get("/api/enrich", params={"id": "9" * 5000})
        assert response.status_code == 400
        assert response.json()["error"] == "Movie ID exceeds maximum value"
        assert response.json()["requestId"] == response.headers["X-Request-ID"]

    def test_enrich_catalog_failure_is_generic_500(self, settings: Settings, fake_session: FakeSession):
        fake_session.add("/movie/", FakeResponse(404, {"status_message": "The resource could not be found."}))
        with _client(settings, fake_session) as client:
            response = client.get("/api/enrich", params={"id": "999999"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to enrich movie data"
        assert body["requestId"] == response.headers["X-Request-ID"]
        assert "could not be found" not in response.text


class TestHealthEndpoint:
    def test_health_returns_healthy(self, client: TestClient):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert set(data["dependencies"]) == {"tmdb", "omdb", "streaming"}
        assert "latencyMs" in data["dependencies"]["tmdb"]

    def test_health_unhealthy_is_503(self, settings: Settings, fake_session: FakeSession):
        fake_session.add("/configuration", FakeResponse(401, {}))
        fake_session.add("omdbapi.com", FakeResponse(200, {"Response": "True"}))
        fake_session.add("streaming-availability", FakeResponse(404, {}))
        with _client(settings, fake_session) as client:
            response = client.get("/api/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["dependencies"]["tmdb"] == {"status": "down"}
        assert data["dependencies"]["streaming"]["status"] == "up"


class TestRequestIds:
    def test_generated_when_missing(self, client: TestClient):
        response = client.get("/")
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_inbound_id_is_echoed(self, client: TestClient):
        response = client.get("/api/search", params={"query": ""}, headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.json()["requestId"] == "abc-123"

    def test_malformed_inbound_id_is_replaced(self, client: TestClient):
        response = client.get("/", headers={"X-Request-ID": "not valid!"})
        assert response.headers["X-Request-ID"] != "not valid!"

    def test_unexpected_error_returns_generic_500(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        ctx = client.app.state.context

        async def boom(query: str):
            raise KeyError("secret internals")

        monkeypatch.setattr(ctx.enricher, "search", boom)
        response = client.get("/api/search", params={"query": "inception"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "requestId": response.headers["X-Request-ID"]}


class TestCORSConfiguration:
    def test_cors_allows_any_origin_without_credentials(self, client: TestClient):
        response = client.get("/", headers={"Origin": "http://localhost:3000"})
        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers

    def test_cors_explicit_origins(
        self, settings: Settings, inception_session: FakeSession, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://app.example.com, https://admin.example.com")
        with _client(settings, inception_session) as client:
            allowed = client.get("/", headers={"Origin": "https://app.example.com"})
            denied = client.get("/", headers={"Origin": "https://evil.example.com"})

        assert allowed.headers["access-control-allow-origin"] == "https://app.example.com"
        assert allowed.headers["access-control-allow-credentials"] == "true"
        assert "access-control-allow-origin" not in denied.headers


def test_upstream_error_carries_context():
    exc = UpstreamError("tmdb request failed with HTTP 503.", upstream="tmdb", status_code=503)
    assert exc.upstream == "tmdb"
    assert exc.status_code == 503
