"""
Movie search and enrichment endpoints.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from api.deps import Enricher, RequestId
from streamscout.integrations.http import UpstreamError
from streamscout.models.movies import EnrichedMovie, SearchResult
from streamscout.validation import parse_movie_id, validate_search_query, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["movies"])


# --- Pydantic models ---

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(_CamelModel):
    error: str
    request_id: str = Field(alias="requestId")


class SearchResultOut(_CamelModel):
    id: int
    title: str
    year: str
    poster: str
    rating: float | None = None

    @classmethod
    def from_domain(cls, result: SearchResult) -> SearchResultOut:
        return cls(id=result.id, title=result.title, year=result.year, poster=result.poster, rating=result.rating)


class SearchResponse(_CamelModel):
    results: list[SearchResultOut]
    request_id: str = Field(alias="requestId")


class StreamingOptionOut(_CamelModel):
    service: str
    type: str
    link: str


class RatingOut(_CamelModel):
    imdb: float | None = None
    rotten_tomatoes: int | None = Field(default=None, alias="rottenTomatoes")
    combined: float | None = None


class EnrichedMovieResponse(_CamelModel):
    id: int
    title: str
    year: str
    poster: str
    overview: str
    rating: RatingOut
    streaming_options: list[StreamingOptionOut] = Field(alias="streamingOptions")
    runtime: int | None = None
    genres: list[str]
    trailer_key: str | None = Field(default=None, alias="trailerKey")
    request_id: str = Field(alias="requestId")

    @classmethod
    def from_domain(cls, movie: EnrichedMovie, *, request_id: str) -> EnrichedMovieResponse:
        return cls(
            id=movie.id,
            title=movie.title,
            year=movie.year,
            poster=movie.poster,
            overview=movie.overview,
            rating=RatingOut(
                imdb=movie.rating.imdb,
                rotten_tomatoes=movie.rating.rotten_tomatoes,
                combined=movie.rating.combined,
            ),
            streaming_options=[
                StreamingOptionOut(service=o.service, type=o.type, link=o.link) for o in movie.streaming_options
            ],
            runtime=movie.runtime,
            genres=list(movie.genres),
            trailer_key=movie.trailer_key,
            request_id=request_id,
        )


def _error(status_code: int, message: str, request_id: str) -> JSONResponse:
    body = ErrorResponse(error=message, request_id=request_id)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


# --- Endpoints ---

@router.get(
    "/search",
    response_model=SearchResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search_movies(
    enricher: Enricher,
    request_id: RequestId,
    query: str | None = Query(default=None, description="Movie title to search for"),
):
    """Search TMDb by title."""
    logger.info("Search request received", extra={"query": query})

    validation = validate_search_query(query)
    if not validation.valid:
        logger.warning("Invalid search query", extra={"query": query, "reason": validation.error})
        return _error(400, validation.error or "Invalid query", request_id)

    query = (query or "").strip()
    try:
        results = await enricher.search(query)
    except UpstreamError as exc:
        logger.error(f"Search failed: {exc}", extra={"statusCode": exc.status_code})
        return _error(500, "Failed to search movies", request_id)

    logger.info("Search completed successfully", extra={"resultCount": len(results)})
    return SearchResponse(results=[SearchResultOut.from_domain(r) for r in results], request_id=request_id)


@router.get(
    "/enrich",
    response_model=EnrichedMovieResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def enrich_movie(
    enricher: Enricher,
    request_id: RequestId,
    movie_id: str | None = Query(default=None, alias="id", description="TMDb movie id"),
):
    """Merge TMDb details with OMDb ratings and streaming availability."""
    try:
        parsed_id = parse_movie_id(movie_id)
    except ValidationError as exc:
        logger.warning("Invalid movie id", extra={"movieId": movie_id, "reason": exc.reason})
        return _error(400, exc.reason, request_id)

    try:
        result = await enricher.enrich(parsed_id)
    except UpstreamError as exc:
        logger.error(
            f"Enrich failed for movie {parsed_id}: {exc}",
            extra={"statusCode": exc.status_code, "upstream": exc.upstream},
        )
        return _error(500, "Failed to enrich movie data", request_id)

    return EnrichedMovieResponse.from_domain(result.movie, request_id=request_id)
