"""
comply_gateway.backend.client

HTTP client boundary to the Wecan Comply backend.

Responsibilities:
- Authenticate with the access token and verify it once at creation (handshake).
- Expose one coroutine per backend operation used by the gateway routes.
- Translate transport/HTTP failures into `BackendError` (carrying the backend status).
- Notify an `on_unauthorized` hook whenever the backend rejects the token.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import httpx

from comply_gateway.errors import BackendError, UnauthorizedError
from comply_gateway.settings import WorkspaceKey

UnauthorizedCallback = Callable[[UnauthorizedError], None]

HANDSHAKE_PATH = "/api/v1/user/me/"


class BackendClient:
    """
    Thin async wrapper over `httpx.AsyncClient`.

    Instances are created through `BackendClient.create`, which performs the handshake;
    the constructor alone never talks to the network.
    """

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        url_template: str,
        workspace_keys: Sequence[WorkspaceKey] = (),
        on_unauthorized: UnauthorizedCallback | None = None,
    ) -> None:
        self._http = http
        self._url_template = url_template
        self._workspace_keys = {k.workspace_uuid: k for k in workspace_keys}
        self._on_unauthorized = on_unauthorized

    @classmethod
    async def create(
        cls,
        *,
        access_token: str,
        url_template: str,
        platform_url: str,
        timeout_ms: int,
        retries: int,
        workspace_keys: Sequence[WorkspaceKey] = (),
        on_unauthorized: UnauthorizedCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> BackendClient:
        # Connection-level retries are delegated to the httpx transport.
        http = httpx.AsyncClient(
            transport=transport or httpx.AsyncHTTPTransport(retries=retries),
            timeout=timeout_ms / 1000,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        client = cls(
            http=http,
            url_template=url_template,
            workspace_keys=workspace_keys,
            on_unauthorized=on_unauthorized,
        )
        try:
            await client._request("GET", platform_url.rstrip("/") + HANDSHAKE_PATH)
        except BaseException:
            await http.aclose()
            raise
        return client

    async def aclose(self) -> None:
        await self._http.aclose()

    def workspace_url(self, workspace_uuid: str) -> str:
        base = self._url_template.format(workspace_uuid=workspace_uuid, workspaceUuid=workspace_uuid)
        return base.rstrip("/")

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            r = await self._http.request(method, url, params=params or None, json=json)
        except httpx.TimeoutException as e:
            raise BackendError(f"Backend request timed out: {method} {url}") from e
        except httpx.RequestError as e:
            raise BackendError(f"Backend request failed: {e}") from e

        if r.status_code == 401:
            err = UnauthorizedError()
            if self._on_unauthorized is not None:
                self._on_unauthorized(err)
            raise err
        if r.is_error:
            raise BackendError(_error_message(r), status=r.status_code)
        return r

    async def _get_json(self, workspace_uuid: str, path: str, **params: Any) -> Any:
        r = await self._request("GET", self.workspace_url(workspace_uuid) + path, params=params)
        return r.json()

    async def _send(self, method: str, workspace_uuid: str, path: str, json: Any = None) -> Any:
        r = await self._request(method, self.workspace_url(workspace_uuid) + path, json=json)
        # Mutations may answer 204 No Content.
        return r.json() if r.content else None

    # --- Workspaces ---------------------------------------------------------

    async def get_workspace_details(self, workspace_uuid: str) -> dict[str, Any]:
        return await self._get_json(workspace_uuid, "/api/v1/workspace/")

    async def get_business_types(
        self, workspace_uuid: str, available_for_business_type: str | None = None
    ) -> list[dict[str, Any]]:
        return await self._get_json(
            workspace_uuid,
            "/api/v1/business-types/",
            available_for_business_type=available_for_business_type,
        )

    async def get_relations(self, workspace_uuid: str) -> list[dict[str, Any]]:
        return await self._get_json(workspace_uuid, "/api/v1/relations/")

    async def get_network_entries(
        self, workspace_uuid: str, business_type: str | None = None
    ) -> list[dict[str, Any]]:
        return await self._get_json(workspace_uuid, "/api/v1/network/", business_type=business_type)

    # --- Vaults -------------------------------------------------------------

    async def get_all_vaults(self, workspace_uuid: str) -> list[dict[str, Any]]:
        return await self._get_json(workspace_uuid, "/api/v1/vaults/")

    async def create_vault(
        self,
        workspace_uuid: str,
        *,
        name: str,
        template_type: str,
        push_category_uuid: str,
        relation_uuids: list[str],
    ) -> dict[str, Any]:
        return await self._send(
            "POST",
            workspace_uuid,
            "/api/v1/vaults/",
            json={
                "name": name,
                "template_type": template_type,
                "push_category_uuid": push_category_uuid,
                "relation_uuids": relation_uuids,
            },
        )

    async def get_vault_placeholders(self, workspace_uuid: str, vault_id: str) -> list[dict[str, Any]]:
        return await self._get_json(workspace_uuid, f"/api/v1/vaults/{vault_id}/placeholders/")

    async def get_vault_answers(self, workspace_uuid: str, vault_id: str) -> list[dict[str, Any]]:
        return await self._get_json(workspace_uuid, f"/api/v1/vaults/{vault_id}/answers/")

    async def save_vault_answers(
        self, workspace_uuid: str, vault_id: str, answers: list[Any]
    ) -> None:
        await self._send("PUT", workspace_uuid, f"/api/v1/vaults/{vault_id}/answers/", {"answers": answers})

    async def download_vault_file(self, workspace_uuid: str, file_uuid: str, mimetype: str) -> bytes:
        r = await self._request(
            "GET",
            self.workspace_url(workspace_uuid) + f"/api/v1/files/{file_uuid}/",
            params={"mimetype": mimetype},
        )
        return r.content

    async def lock_vault(self, workspace_uuid: str, vault_id: str) -> None:
        await self._send("POST", workspace_uuid, f"/api/v1/vaults/{vault_id}/lock/")

    async def unlock_vault(self, workspace_uuid: str, vault_id: str) -> None:
        await self._send("POST", workspace_uuid, f"/api/v1/vaults/{vault_id}/unlock/")

    async def share_vault(self, workspace_uuid: str, vault_id: str, relation_uuid: str) -> None:
        await self._send(
            "POST",
            workspace_uuid,
            f"/api/v1/vaults/{vault_id}/share/",
            {"relation_uuid": relation_uuid},
        )


def _error_message(r: httpx.Response) -> str:
    # Prefer the backend's own explanation; fall back to the HTTP reason phrase.
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    text = r.text.strip()
    return text or f"Backend responded with {r.status_code} {r.reason_phrase}"


# --- Module Notes -----------------------------------------------------------
# Answer/file encryption lives on the backend side of this boundary; workspace keys are
# carried so a decrypting client can be swapped in without touching the gateway.
