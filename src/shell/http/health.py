"""
Health endpoints.

- /health: overall status from all registered checks
- /health/ready: readiness probe (storage and cache directories writable)
- /health/live: liveness probe (process alive)
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

# --- Types ---


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)


class HealthCheck(Protocol):
    """Protocol for health checks."""

    name: str

    def check(self) -> CheckResult: ...


# --- Registry ---


class HealthCheckRegistry:
    """Checks run by the health endpoints; one registry per app."""

    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []
        self._started_at = time.monotonic()

    def register(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def run_all(self) -> list[CheckResult]:
        return [check.check() for check in self._checks]

    def clear(self) -> None:
        self._checks = []

    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_at


# --- Built-in Checks ---


class DirectoryWritableCheck:
    """A directory the service writes to exists and is writable."""

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path

    def check(self) -> CheckResult:
        start = time.monotonic()
        if not self.path.is_dir():
            status_, message = HealthStatus.UNHEALTHY, "Directory missing"
        elif not os.access(self.path, os.W_OK | os.X_OK):
            status_, message = HealthStatus.UNHEALTHY, "Directory not writable"
        else:
            status_, message = HealthStatus.HEALTHY, "OK"
        return CheckResult(
            name=self.name,
            status=status_,
            message=message,
            latency_ms=(time.monotonic() - start) * 1000,
            details={"path": str(self.path)},
        )


def overall_status(results: list[CheckResult]) -> HealthStatus:
    if all(r.status == HealthStatus.HEALTHY for r in results):
        return HealthStatus.HEALTHY
    if any(r.status == HealthStatus.UNHEALTHY for r in results):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


# --- FastAPI Router ---


def _check_payload(result: CheckResult) -> dict[str, Any]:
    return {
        "name": result.name,
        "status": result.status.value,
        "message": result.message,
        "latency_ms": round(result.latency_ms, 3),
        "details": result.details,
    }


def _respond(content: dict[str, Any], healthy: bool) -> JSONResponse:
    code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=content, status_code=code)


def create_health_router(version: str, registry: HealthCheckRegistry) -> APIRouter:
    """Health, readiness and liveness endpoints backed by `registry`."""
    router = APIRouter(tags=["health"])
    unavailable = {503: {"description": "A storage directory is unusable"}}

    @router.get("/health", response_model=None, responses=unavailable)
    def health_check() -> JSONResponse:
        results = registry.run_all()
        overall = overall_status(results)
        return _respond(
            {
                "status": overall.value,
                "version": version,
                "uptime_seconds": registry.uptime_seconds(),
                "checks": [_check_payload(r) for r in results],
            },
            healthy=overall == HealthStatus.HEALTHY,
        )

    @router.get("/health/ready", response_model=None, responses=unavailable)
    def readiness_check() -> JSONResponse:
        results = registry.run_all()
        ready = all(r.status == HealthStatus.HEALTHY for r in results)
        return _respond(
            {"ready": ready, "checks": [_check_payload(r) for r in results]},
            healthy=ready,
        )

    @router.get("/health/live", response_model=None)
    def liveness_check() -> JSONResponse:
        return _respond({"alive": True, "uptime_seconds": registry.uptime_seconds()}, True)

    return router
