"""
comply_gateway.api.routers.vaults

Vault endpoints.

Responsibilities:
- List/create vaults, read placeholders, read/save answers.
- Download vault files as raw bytes with a caller-supplied MIME type.
- Lock, unlock and share vaults.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field
from starlette.responses import Response

from comply_gateway.api.deps import lifecycle_dep
from comply_gateway.api.gateway import forward, parse_body, require_param, success
from comply_gateway.backend.lifecycle import ClientLifecycle

router = APIRouter(prefix="/api/workspaces", tags=["vaults"])


class CreateVaultRequest(BaseModel):
    name: str = Field(min_length=1)
    template_type: str = Field(min_length=1)
    push_category_uuid: str = Field(min_length=1)
    relation_uuids: list[str]


class SaveAnswersRequest(BaseModel):
    # Answer objects are opaque here, e.g. {"uuid": ..., "new_content": ...}.
    answers: list[Any]


class ShareVaultRequest(BaseModel):
    relation_uuid: str = Field(min_length=1)


@router.get("/{workspace_uuid}/vaults")
async def get_all_vaults(
    workspace_uuid: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get vaults",
        call=lambda client: client.get_all_vaults(workspace_uuid),
    )


@router.post("/{workspace_uuid}/vaults")
async def create_vault(
    workspace_uuid: str,
    body: Any = Body(default=None),
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    req = parse_body(CreateVaultRequest, body)
    return await forward(
        lifecycle,
        failure="Failed to create vault",
        call=lambda client: client.create_vault(workspace_uuid, **req.model_dump()),
    )


@router.get("/{workspace_uuid}/vaults/{vault_id}/placeholders")
async def get_vault_placeholders(
    workspace_uuid: str,
    vault_id: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get vault placeholders",
        call=lambda client: client.get_vault_placeholders(workspace_uuid, vault_id),
    )


@router.get("/{workspace_uuid}/vaults/{vault_id}/answers")
async def get_vault_answers(
    workspace_uuid: str,
    vault_id: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to get vault answers",
        call=lambda client: client.get_vault_answers(workspace_uuid, vault_id),
    )


@router.put("/{workspace_uuid}/vaults/{vault_id}/answers")
async def save_vault_answers(
    workspace_uuid: str,
    vault_id: str,
    body: Any = Body(default=None),
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    req = parse_body(SaveAnswersRequest, body)
    return await forward(
        lifecycle,
        failure="Failed to save vault answers",
        call=lambda client: client.save_vault_answers(workspace_uuid, vault_id, req.answers),
        render=success("Answers saved successfully"),
    )


@router.get("/{workspace_uuid}/vaults/{vault_id}/files/{file_uuid}")
async def download_vault_file(
    workspace_uuid: str,
    vault_id: str,
    file_uuid: str,
    mimetype: str | None = None,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    media_type = require_param(mimetype, "mimetype query parameter is required")

    def render(content: bytes) -> Response:
        # Binary passthrough. Content-Type goes in as a raw header so Starlette does not
        # append a charset to text/* types.
        return Response(
            content=content,
            headers={
                "Content-Type": media_type,
                "Content-Disposition": f'attachment; filename="{quote(file_uuid, safe="")}"',
            },
        )

    return await forward(
        lifecycle,
        failure="Failed to download vault file",
        call=lambda client: client.download_vault_file(workspace_uuid, file_uuid, media_type),
        render=render,
    )


@router.post("/{workspace_uuid}/vaults/{vault_id}/lock")
async def lock_vault(
    workspace_uuid: str,
    vault_id: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to lock vault",
        call=lambda client: client.lock_vault(workspace_uuid, vault_id),
        render=success("Vault locked successfully"),
    )


@router.post("/{workspace_uuid}/vaults/{vault_id}/unlock")
async def unlock_vault(
    workspace_uuid: str,
    vault_id: str,
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    return await forward(
        lifecycle,
        failure="Failed to unlock vault",
        call=lambda client: client.unlock_vault(workspace_uuid, vault_id),
        render=success("Vault unlocked successfully"),
    )


@router.post("/{workspace_uuid}/vaults/{vault_id}/share")
async def share_vault(
    workspace_uuid: str,
    vault_id: str,
    body: Any = Body(default=None),
    lifecycle: ClientLifecycle = Depends(lifecycle_dep),
) -> Response:
    req = parse_body(ShareVaultRequest, body)
    return await forward(
        lifecycle,
        failure="Failed to share vault",
        call=lambda client: client.share_vault(workspace_uuid, vault_id, req.relation_uuid),
        render=success("Vault shared successfully"),
    )


# --- Module Notes -----------------------------------------------------------
# vault_id is part of the file route for URL symmetry; the backend addresses files by
# workspace and file uuid only.
