from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MovieSummary:
    """One TMDb search hit."""

    id: int
    title: str
    release_date: str | None = None
    poster_path: str | None = None
    overview: str | None = None
    vote_average: float | None = None


@dataclass(frozen=True)
class MovieVideo:
    key: str
    site: str | None = None
    type: str | None = None
    official: bool = False


@dataclass(frozen=True)
class MovieDetails:
    """
    Normalized TMDb `/movie/{id}?append_to_response=videos` payload.

    `imdb_id` is the cross-reference key used to look up OMDb ratings.
    """

    id: int
    title: str
    release_date: str | None = None
    poster_path: str | None = None
    overview: str | None = None
    runtime: int | None = None
    genres: list[str] = field(default_factory=list)
    imdb_id: str | None = None
    videos: list[MovieVideo] = field(default_factory=list)


@dataclass(frozen=True)
class OmdbRatings:
    """`None` means the source has no value; 0 is a real rating."""

    imdb_rating: float | None = None
    rotten_tomatoes: int | None = None


@dataclass(frozen=True)
class StreamingOption:
    service: str
    type: str
    link: str


@dataclass(frozen=True)
class RatingSummary:
    imdb: float | None = None
    rotten_tomatoes: int | None = None
    combined: float | None = None


@dataclass(frozen=True)
class EnrichedMovie:
    id: int
    title: str
    year: str
    poster: str
    overview: str = ""
    rating: RatingSummary = field(default_factory=RatingSummary)
    streaming_options: list[StreamingOption] = field(default_factory=list)
    runtime: int | None = None
    genres: list[str] = field(default_factory=list)
    trailer_key: str | None = None


@dataclass(frozen=True)
class SearchResult:
    id: int
    title: str
    year: str
    poster: str
    rating: float | None = None
