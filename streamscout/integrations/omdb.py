"""
OMDb ratings client (optional upstream).

OMDb only accepts its key as the `apikey` request parameter. It is passed via
`params=` and every logged URL goes through `redact_url`.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Mapping

import requests

from streamscout.cache import TTLCache, cache_key
from streamscout.integrations.http import DEFAULT_TIMEOUT_SECONDS, fetch_json, new_session
from streamscout.models.movies import OmdbRatings
from streamscout.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

OMDB_BASE_URL = "https://www.omdbapi.com/"

_PERCENT_RE = re.compile(r"(\d+)%")


def parse_imdb_rating(value: Any) -> float | None:
    """`"8.8"` -> 8.8; `"N/A"`, blanks and junk -> None. `"0"` stays 0.0."""
    if not isinstance(value, str):
        return None
    try:
        rating = float(value.strip())
    except ValueError:
        return None
    if rating != rating or rating < 0:
        return None
    return rating


def parse_rotten_tomatoes_score(ratings: Any) -> int | None:
    if not isinstance(ratings, list):
        return None
    for entry in ratings:
        if not isinstance(entry, Mapping) or entry.get("Source") != "Rotten Tomatoes":
            continue
        value = entry.get("Value")
        match = _PERCENT_RE.search(value) if isinstance(value, str) else None
        return int(match.group(1)) if match else None
    return None


def parse_omdb_payload(payload: Mapping[str, Any]) -> OmdbRatings | None:
    if payload.get("Response") == "False":
        return None
    return OmdbRatings(
        imdb_rating=parse_imdb_rating(payload.get("imdbRating")),
        rotten_tomatoes=parse_rotten_tomatoes_score(payload.get("Ratings")),
    )


class OmdbClient:
    def __init__(
        self,
        api_key: str | None,
        *,
        cache: TTLCache,
        limiter: TokenBucket,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: str = OMDB_BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._cache = cache
        self._limiter = limiter
        self._session = session or new_session()
        self._timeout = timeout_seconds
        self._base_url = base_url

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session(self) -> requests.Session:
        return self._session

    def auth_params(self) -> dict[str, str]:
        return {"apikey": self._api_key or ""}

    async def fetch_ratings(self, imdb_id: str) -> OmdbRatings | None:
        """
        Ratings for an IMDb id, or None when OMDb has no record or no key is set.

        Raises `UpstreamError` on non-2xx, malformed bodies, timeouts and
        network errors; the enricher downgrades those to "no ratings".
        """

        if not self.enabled:
            return None

        key = cache_key("omdb", "title", imdb_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        await self._limiter.acquire()
        payload = await fetch_json(
            self._session,
            self._base_url,
            upstream="omdb",
            params={**self.auth_params(), "i": imdb_id},
            timeout_seconds=self._timeout,
        )

        ratings = parse_omdb_payload(payload)
        if ratings is None:
            logger.info(f"OMDb has no record for {imdb_id}", extra={"upstream": "omdb"})
            return None

        self._cache.set(key, ratings)
        return ratings
