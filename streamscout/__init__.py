"""
Shared StreamScout library code.

This package holds the enrichment core reused by the FastAPI app in `api/`:
caching, per-upstream rate limiting, the upstream clients, validation, the
enrichment orchestrator and the health checker.

App entrypoints (FastAPI routers) should live outside this package and import
from `streamscout` rather than the other way around.
"""

__version__ = "1.0.0"
