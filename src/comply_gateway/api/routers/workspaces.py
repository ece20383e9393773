"""
comply_gateway.api.routers.workspaces

Workspace-level read endpoints.

Responsibilities:
- Workspace details, business types, relations and network entries.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import Response

from comply_gateway.api.deps import lifecycle_dep
from comply_gateway.api.gateway import forward
from comply_gateway.backend.lifecycle import ClientLifecycle

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


@router.get("/{workspace_uuid}")
async def get_workspace_details(
    workspace_uuid: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get workspace details",
        call=lambda client: client.get_workspace_details(workspace_uuid),
    )


@router.get("/{workspace_uuid}/business-types")
async def get_business_types(
    workspace_uuid: str,
    available_for_business_type: str | None = None,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get business types",
        call=lambda client: client.get_business_types(workspace_uuid, available_for_business_type),
    )


@router.get("/{workspace_uuid}/relations")
async def get_relations(
    workspace_uuid: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get relations",
        call=lambda client: client.get_relations(workspace_uuid),
    )


@router.get("/{workspace_uuid}/network")
async def get_network_entries(
    workspace_uuid: str,
    business_type: str | None = None,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get network entries",
        call=lambda client: client.get_network_entries(workspace_uuid, business_type),
    )
