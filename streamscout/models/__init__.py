"""
Domain models shared across the upstream clients, the enricher and the API.
"""

from streamscout.models.health import AggregateHealth, DependencyHealth
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

__all__ = [
    "AggregateHealth",
    "DependencyHealth",
    "EnrichedMovie",
    "MovieDetails",
    "MovieSummary",
    "MovieVideo",
    "OmdbRatings",
    "RatingSummary",
    "SearchResult",
    "StreamingOption",
]
