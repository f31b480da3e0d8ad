from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

DependencyStatus = Literal["up", "down"]
HealthStatus = Literal["healthy", "degraded", "unhealthy"]


@dataclass(frozen=True)
class DependencyHealth:
    status: DependencyStatus
    latency_ms: int | None = None


@dataclass(frozen=True)
class AggregateHealth:
    status: HealthStatus
    version: str
    dependencies: dict[str, DependencyHealth] = field(default_factory=dict)
    timestamp: str = ""

    @property
    def http_status(self) -> int:
        return 503 if self.status == "unhealthy" else 200
