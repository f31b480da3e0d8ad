"""
Streaming Availability (RapidAPI) client (optional upstream).
"""
from __future__ import annotations

from typing import Any, Mapping

import requests

from streamscout.cache import TTLCache, cache_key
from streamscout.integrations.http import DEFAULT_TIMEOUT_SECONDS, fetch_json, new_session
from streamscout.models.movies import StreamingOption
from streamscout.rate_limiter import TokenBucket


STREAMING_HOST = "streaming-availability.p.rapidapi.com"
STREAMING_BASE_URL = f"https://{STREAMING_HOST}"
DEFAULT_COUNTRY = "us"


def parse_streaming_options(payload: Mapping[str, Any], *, country: str = DEFAULT_COUNTRY) -> list[StreamingOption]:
    by_country = payload.get("streamingOptions")
    if not isinstance(by_country, Mapping):
        return []
    raw_options = by_country.get(country)
    if not isinstance(raw_options, list):
        return []

    options: list[StreamingOption] = []
    for option in raw_options:
        if not isinstance(option, Mapping):
            continue
        service = option.get("service")
        name = service.get("name") if isinstance(service, Mapping) else None
        offer_type = option.get("type")
        link = option.get("link")
        if not (isinstance(name, str) and isinstance(offer_type, str) and isinstance(link, str)):
            continue
        options.append(StreamingOption(service=name, type=offer_type, link=link))
    return options


class StreamingClient:
    def __init__(
        self,
        api_key: str | None,
        *,
        cache: TTLCache,
        limiter: TokenBucket,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: str = STREAMING_BASE_URL,
        country: str = DEFAULT_COUNTRY,
    ) -> None:
        self._api_key = api_key
        self._cache = cache
        self._limiter = limiter
        self._session = session or new_session()
        self._timeout = timeout_seconds
        self._base_url = base_url.rstrip("/")
        self._country = country

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session(self) -> requests.Session:
        return self._session

    def auth_headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self._api_key or "",
            "X-RapidAPI-Host": STREAMING_HOST,
        }

    def title_params(self, tmdb_id: int) -> dict[str, str]:
        return {"tmdb_id": f"movie/{int(tmdb_id)}", "country": self._country, "output_language": "en"}

    async def fetch_streaming_options(self, tmdb_id: int) -> list[StreamingOption]:
        """
        Where a movie streams in the configured country; [] when no key is set.

        Raises `UpstreamError` when the lookup fails.
        """

        if not self.enabled:
            return []

        key = cache_key("streaming", self._country, int(tmdb_id))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        await self._limiter.acquire()
        payload = await fetch_json(
            self._session,
            f"{self._base_url}/get",
            upstream="streaming",
            params=self.title_params(tmdb_id),
            headers=self.auth_headers(),
            timeout_seconds=self._timeout,
        )

        options = parse_streaming_options(payload, country=self._country)
        self._cache.set(key, options)
        return options
