"""
TMDb catalog client (critical upstream).

Authenticates with a v4 read access token in the `Authorization` header so the
credential never lands in a URL.
"""
from __future__ import annotations

import logging
from typing import Any, Literal, Mapping

import requests

from streamscout.cache import TTLCache, cache_key
from streamscout.integrations.http import DEFAULT_TIMEOUT_SECONDS, UpstreamError, fetch_json, new_session
from streamscout.models.movies import MovieDetails, MovieSummary, MovieVideo
from streamscout.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
PLACEHOLDER_POSTER = "/placeholder-poster.jpg"

PosterSize = Literal["w200", "w500"]


def poster_url(poster_path: str | None, size: PosterSize = "w500") -> str:
    if not poster_path:
        return PLACEHOLDER_POSTER
    return f"{TMDB_IMAGE_BASE_URL}/{size}{poster_path}"


def release_year(release_date: str | None) -> str:
    """Leading `YYYY` of a TMDb date, or "Unknown"."""
    if isinstance(release_date, str):
        year = release_date.strip().split("-", 1)[0]
        if year:
            return year
    return "Unknown"


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return int(raw)
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _as_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s or None
    return None


def parse_movie_summary(item: Mapping[str, Any]) -> MovieSummary | None:
    movie_id = _as_int(item.get("id"))
    title = _as_str(item.get("title"))
    if movie_id is None or title is None:
        return None
    return MovieSummary(
        id=movie_id,
        title=title,
        release_date=_as_str(item.get("release_date")),
        poster_path=_as_str(item.get("poster_path")),
        overview=_as_str(item.get("overview")),
        vote_average=_as_float(item.get("vote_average")),
    )


def parse_movie_details(payload: Mapping[str, Any]) -> MovieDetails:
    movie_id = _as_int(payload.get("id"))
    title = _as_str(payload.get("title"))
    if movie_id is None or title is None:
        raise UpstreamError("TMDb movie payload is missing id or title.", upstream="tmdb")

    genres: list[str] = []
    raw_genres = payload.get("genres")
    if isinstance(raw_genres, list):
        for genre in raw_genres:
            if isinstance(genre, Mapping):
                name = _as_str(genre.get("name"))
                if name:
                    genres.append(name)

    videos: list[MovieVideo] = []
    raw_videos = payload.get("videos")
    results = raw_videos.get("results") if isinstance(raw_videos, Mapping) else None
    if isinstance(results, list):
        for video in results:
            if not isinstance(video, Mapping):
                continue
            key = _as_str(video.get("key"))
            if not key:
                continue
            videos.append(
                MovieVideo(
                    key=key,
                    site=_as_str(video.get("site")),
                    type=_as_str(video.get("type")),
                    official=video.get("official") is True,
                )
            )

    return MovieDetails(
        id=movie_id,
        title=title,
        release_date=_as_str(payload.get("release_date")),
        poster_path=_as_str(payload.get("poster_path")),
        overview=_as_str(payload.get("overview")),
        runtime=_as_int(payload.get("runtime")),
        genres=genres,
        imdb_id=_as_str(payload.get("imdb_id")),
        videos=videos,
    )


class TmdbClient:
    def __init__(
        self,
        api_token: str,
        *,
        cache: TTLCache,
        limiter: TokenBucket,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: str = TMDB_API_BASE_URL,
    ) -> None:
        self._api_token = api_token
        self._cache = cache
        self._limiter = limiter
        self._session = session or new_session()
        self._timeout = timeout_seconds
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session(self) -> requests.Session:
        return self._session

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_token}"}

    async def _get(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        await self._limiter.acquire()
        return await fetch_json(
            self._session,
            f"{self._base_url}{path}",
            upstream="tmdb",
            params=params,
            headers=self.auth_headers(),
            timeout_seconds=self._timeout,
        )

    async def search_movies(self, query: str) -> list[MovieSummary]:
        """
        Search movies by title. Raises `UpstreamError` on any failure.

        Only the first page is returned, in TMDb's relevance order.
        """

        key = cache_key("tmdb", "search", query)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        payload = await self._get("/search/movie", params={"query": query})
        results: list[MovieSummary] = []
        raw_results = payload.get("results")
        if isinstance(raw_results, list):
            for item in raw_results:
                if isinstance(item, Mapping):
                    summary = parse_movie_summary(item)
                    if summary is not None:
                        results.append(summary)

        self._cache.set(key, results)
        return results

    async def fetch_movie_details(self, movie_id: int) -> MovieDetails:
        key = cache_key("tmdb", "movie", int(movie_id))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        payload = await self._get(f"/movie/{int(movie_id)}", params={"append_to_response": "videos"})
        details = parse_movie_details(payload)
        self._cache.set(key, details)
        return details
