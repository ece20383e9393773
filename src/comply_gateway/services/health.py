"""
comply_gateway.services.health

Health probe.

Responsibilities:
- Exercise the backend client lifecycle (initializing it if needed).
- Always return a structured result; never raise to the caller.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from comply_gateway.backend.lifecycle import ClientLifecycle
from comply_gateway.observability.logging import get_logger

log = get_logger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


async def check_health(lifecycle: ClientLifecycle, *, service: str) -> dict[str, Any]:
    result: dict[str, Any] = {"status": HEALTHY, "service": service}
    try:
        await lifecycle.get_client()
    except Exception as e:
        # Polled by orchestration: report, don't propagate.
        log.error("health_check_failed", error=str(e))
        result.update(status=UNHEALTHY, error=str(e))
    result["timestamp"] = datetime.now(tz=UTC).isoformat()
    return result
