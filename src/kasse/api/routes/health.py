from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from kasse.api.runtime import get_runtime
from kasse.infrastructure.cache.redis_client import ping_redis

router = APIRouter()


@router.get("/health/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request, response: Response) -> dict[str, object]:
    runtime = get_runtime(request)
    checks: dict[str, bool] = {}
    if runtime.backend is not None:
        checks["backend"] = await runtime.backend.ping()
    if runtime.settings.redis_url:
        checks["redis"] = await ping_redis(runtime.settings.redis_url, timeout_seconds=1.0)

    if all(checks.values()):
        return {"status": "ok"}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "unavailable", "checks": checks}
