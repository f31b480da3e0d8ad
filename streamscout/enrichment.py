"""
Enrichment orchestrator: one TMDb movie merged with OMDb ratings and
streaming availability.

TMDb is the backbone. If the catalog fetch fails the request fails; OMDb and
streaming failures only leave their fields empty and are recorded on the
result.

Flow per request:
    catalog details ──┐
                      ├─ (parallel)
    streaming options ┘
    catalog ok -> OMDb ratings by imdb_id (needs the catalog payload) -> merge
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

from streamscout.integrations.http import DEFAULT_TIMEOUT_SECONDS, UpstreamError
from streamscout.integrations.omdb import OmdbClient
from streamscout.integrations.streaming import StreamingClient
from streamscout.integrations.tmdb import TmdbClient, poster_url, release_year
from streamscout.log_context import log_timer
from streamscout.models.movies import (
    EnrichedMovie,
    MovieDetails,
    MovieSummary,
    MovieVideo,
    OmdbRatings,
    RatingSummary,
    SearchResult,
    StreamingOption,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEADLINE_SECONDS = 20.0
TRAILER_SITE = "YouTube"
TRAILER_TYPE = "Trailer"


@dataclass(frozen=True)
class OptionalUpstreamFailure:
    upstream: str
    reason: str


@dataclass(frozen=True)
class EnrichmentResult:
    movie: EnrichedMovie
    failures: list[OptionalUpstreamFailure] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


def combine_ratings(imdb_rating: float | None, rotten_tomatoes: int | None) -> float | None:
    """
    Average IMDb (0-10) with Rotten Tomatoes (0-100, scaled to 0-10).

    Presence is `is not None`: a real 0 rating takes part in the average.
    """

    rt_scaled = rotten_tomatoes / 10 if rotten_tomatoes is not None else None
    if imdb_rating is not None and rt_scaled is not None:
        return (imdb_rating + rt_scaled) / 2
    if imdb_rating is not None:
        return imdb_rating
    return rt_scaled


def build_rating_summary(ratings: OmdbRatings | None) -> RatingSummary:
    if ratings is None:
        return RatingSummary()
    return RatingSummary(
        imdb=ratings.imdb_rating,
        rotten_tomatoes=ratings.rotten_tomatoes,
        combined=combine_ratings(ratings.imdb_rating, ratings.rotten_tomatoes),
    )


def select_trailer(videos: list[MovieVideo]) -> str | None:
    """Official YouTube trailer first, then any YouTube trailer."""
    trailers = [v for v in videos if v.type == TRAILER_TYPE and v.site == TRAILER_SITE]
    for video in trailers:
        if video.official:
            return video.key
    return trailers[0].key if trailers else None


def build_enriched_movie(
    details: MovieDetails,
    *,
    streaming_options: list[StreamingOption],
    ratings: OmdbRatings | None,
) -> EnrichedMovie:
    return EnrichedMovie(
        id=details.id,
        title=details.title,
        year=release_year(details.release_date),
        poster=poster_url(details.poster_path, "w500"),
        overview=details.overview or "",
        rating=build_rating_summary(ratings),
        streaming_options=list(streaming_options),
        runtime=details.runtime,
        genres=list(details.genres),
        trailer_key=select_trailer(details.videos),
    )


def to_search_result(movie: MovieSummary) -> SearchResult:
    return SearchResult(
        id=movie.id,
        title=movie.title,
        year=release_year(movie.release_date),
        poster=poster_url(movie.poster_path, "w200"),
        rating=movie.vote_average,
    )


class MovieEnricher:
    def __init__(
        self,
        tmdb: TmdbClient,
        omdb: OmdbClient,
        streaming: StreamingClient,
        *,
        call_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
    ) -> None:
        self._tmdb = tmdb
        self._omdb = omdb
        self._streaming = streaming
        self._call_timeout = call_timeout_seconds
        self._deadline = deadline_seconds

    async def search(self, query: str) -> list[SearchResult]:
        """Raises `UpstreamError` when TMDb search fails."""
        with log_timer("tmdb search", logger):
            try:
                movies = await asyncio.wait_for(self._tmdb.search_movies(query), timeout=self._deadline)
            except TimeoutError as exc:
                raise UpstreamError(f"TMDb search exceeded {self._deadline:g}s deadline.", upstream="tmdb") from exc
        return [to_search_result(movie) for movie in movies]

    async def enrich(self, movie_id: int) -> EnrichmentResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._deadline
        failures: list[OptionalUpstreamFailure] = []

        catalog_task = asyncio.ensure_future(self._tmdb.fetch_movie_details(movie_id))
        streaming_task = asyncio.ensure_future(
            self._optional(
                "streaming",
                self._streaming.fetch_streaming_options(movie_id),
                default=[],
                failures=failures,
                deadline=deadline,
            )
        )

        try:
            details = await asyncio.wait_for(catalog_task, timeout=max(0.0, deadline - loop.time()))
        except TimeoutError as exc:
            streaming_task.cancel()
            raise UpstreamError(
                f"TMDb details for movie {movie_id} exceeded {self._deadline:g}s deadline.",
                upstream="tmdb",
            ) from exc
        except BaseException:
            streaming_task.cancel()
            raise

        ratings: OmdbRatings | None = None
        if details.imdb_id:
            ratings = await self._optional(
                "omdb",
                self._omdb.fetch_ratings(details.imdb_id),
                default=None,
                failures=failures,
                deadline=deadline,
            )
        else:
            logger.info(f"Movie {movie_id} has no IMDb id; skipping ratings")

        streaming_options = await streaming_task

        movie = build_enriched_movie(details, streaming_options=streaming_options, ratings=ratings)
        if failures:
            logger.warning(
                f"Movie {movie_id} enriched with degraded data",
                extra={"failedUpstreams": [f.upstream for f in failures]},
            )
        return EnrichmentResult(movie=movie, failures=failures)

    async def _optional(
        self,
        upstream: str,
        call: Awaitable[T],
        *,
        default: T,
        failures: list[OptionalUpstreamFailure],
        deadline: float,
    ) -> T:
        remaining = deadline - asyncio.get_running_loop().time()
        timeout = max(0.0, min(self._call_timeout, remaining))
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except TimeoutError:
            reason = f"timed out after {timeout:.1f}s"
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
        logger.warning(f"Optional upstream {upstream} failed: {reason}", extra={"upstream": upstream})
        failures.append(OptionalUpstreamFailure(upstream=upstream, reason=reason))
        return default
