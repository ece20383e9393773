"""
comply_gateway.api.routers.health

Health endpoint.

Responsibilities:
- Report liveness plus backend client readiness (`/health`): 200 when healthy, 503 otherwise.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse
from starlette.status import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from comply_gateway.api.deps import lifecycle_dep, settings_dep
from comply_gateway.backend.lifecycle import ClientLifecycle
from comply_gateway.services.health import HEALTHY, check_health
from comply_gateway.settings import Settings

router = APIRouter()


@router.get("/health")
async def health(
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
    settings: Settings = Depends(settings_dep),
) -> JSONResponse:
    body = await check_health(lifecycle, service=settings.service_name)
    status = HTTP_200_OK if body["status"] == HEALTHY else HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status, content=body)


# --- Module Notes -----------------------------------------------------------
# The first /health call may trigger backend client initialization.
