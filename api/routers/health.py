"""
Aggregate dependency health.
"""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from api.deps import Health
from streamscout.models.health import AggregateHealth

router = APIRouter(tags=["health"])


class DependencyHealthOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["up", "down"]
    latency_ms: int | None = Field(default=None, alias="latencyMs")


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    dependencies: dict[str, DependencyHealthOut]
    timestamp: str

    @classmethod
    def from_domain(cls, health: AggregateHealth) -> HealthResponse:
        return cls(
            status=health.status,
            version=health.version,
            dependencies={
                name: DependencyHealthOut(status=dep.status, latency_ms=dep.latency_ms)
                for name, dep in health.dependencies.items()
            },
            timestamp=health.timestamp,
        )


@router.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
async def health_check(checker: Health) -> JSONResponse:
    """TMDb down -> 503 unhealthy; OMDb or streaming down -> 200 degraded."""
    result = await checker.check()
    body = HealthResponse.from_domain(result).model_dump(by_alias=True, exclude_none=True)
    return JSONResponse(status_code=result.http_status, content=body)
