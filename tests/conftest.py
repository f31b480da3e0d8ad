from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import requests

from streamscout.config import Settings

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

TMDB_TOKEN = "tmdb-secret-token"
OMDB_KEY = "omdb-secret-key"
STREAMING_KEY = "streaming-secret-key"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, *, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """
    Stand-in for `requests.Session`.

    Routes are matched by URL substring in registration order. A route value
    may be a FakeResponse, an exception instance to raise, or a callable that
    receives the call kwargs and returns either.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, Any]] = []
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def add(self, url_part: str, response: Any) -> FakeSession:
        self.routes.append((url_part, response))
        return self

    def get(self, url: str, *, params=None, headers=None, timeout=None):  # noqa: ANN001
        call = {"url": url, "params": dict(params or {}), "headers": dict(headers or {}), "timeout": timeout}
        self.calls.append(call)
        for url_part, response in self.routes:
            if url_part in url:
                if callable(response) and not isinstance(response, FakeResponse):
                    response = response(call)
                if isinstance(response, BaseException):
                    raise response
                return response
        raise requests.ConnectionError(f"No fake route for {url}")

    def calls_to(self, url_part: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if url_part in c["url"]]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def load_fixture() -> Callable[[str], dict[str, Any]]:
    def _load(relative_path: str) -> dict[str, Any]:
        return json.loads((FIXTURES_DIR / relative_path).read_text(encoding="utf-8"))

    return _load


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        tmdb_api_token=TMDB_TOKEN,
        omdb_api_key=OMDB_KEY,
        streaming_api_key=STREAMING_KEY,
        upstream_timeout_seconds=2.0,
        enrich_deadline_seconds=5.0,
        health_timeout_seconds=2.0,
    )


@pytest.fixture
def inception_session(fake_session: FakeSession, load_fixture) -> FakeSession:
    """All three upstreams answering for Inception (TMDb 27205 / IMDb tt1375666)."""
    fake_session.add("/movie/27205", FakeResponse(200, load_fixture("tmdb/movie_details_inception.json")))
    fake_session.add("/search/movie", FakeResponse(200, load_fixture("tmdb/search_inception.json")))
    fake_session.add("/configuration", FakeResponse(200, {"images": {}}))
    fake_session.add("omdbapi.com", FakeResponse(200, load_fixture("omdb/inception.json")))
    fake_session.add("streaming-availability", FakeResponse(200, load_fixture("streaming/inception.json")))
    return fake_session
