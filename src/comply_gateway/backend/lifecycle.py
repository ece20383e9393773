"""
comply_gateway.backend.lifecycle

Lifecycle manager for the single shared backend client.

Responsibilities:
- Lazily create the backend client on first use (ABSENT -> INITIALIZING -> READY).
- Guarantee at most one initialization attempt in flight; late callers join it.
- Return to ABSENT on any failure (failures are never cached) and on explicit reset.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable

from comply_gateway.backend.client import BackendClient, UnauthorizedCallback
from comply_gateway.errors import InitializationError, UnauthorizedError
from comply_gateway.observability.logging import get_logger
from comply_gateway.settings import Secrets, Settings

log = get_logger(__name__)

ClientFactory = Callable[..., Awaitable[BackendClient]]

MISSING_TOKEN_MESSAGE = "WECAN_ACCESS_TOKEN must be set in environment variables"


class ClientState(str, enum.Enum):
    ABSENT = "absent"
    INITIALIZING = "initializing"
    READY = "ready"


class ClientLifecycle:
    """
    Owns the process-wide backend client.

    Request handlers borrow the client returned by `get_client()` for the duration of one
    call and never keep it. `factory` defaults to `BackendClient.create` and is replaced by
    a fake in tests.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        secrets: Secrets,
        factory: ClientFactory | None = None,
        on_unauthorized: UnauthorizedCallback | None = None,
    ) -> None:
        self._settings = settings
        self._secrets = secrets
        self._factory = factory or BackendClient.create
        self._extra_unauthorized_hook = on_unauthorized

        self._client: BackendClient | None = None
        self._pending: asyncio.Task[BackendClient] | None = None
        # Work left behind by reset(): attempts it discarded and closes of clients it dropped.
        self._discarded: set[asyncio.Task[BackendClient]] = set()
        self._closing: set[asyncio.Task[None]] = set()
        # Bumped on reset; an initialization started under an older generation is discarded.
        self._generation = 0

    @property
    def state(self) -> ClientState:
        if self._client is not None:
            return ClientState.READY
        if self._pending is not None:
            return ClientState.INITIALIZING
        return ClientState.ABSENT

    async def get_client(self) -> BackendClient:
        if self._client is not None:
            return self._client
        if self._pending is None:
            self._pending = asyncio.create_task(self._initialize(self._generation))
            self._pending.add_done_callback(_retrieve_exception)
        # Shield: a cancelled caller must not cancel the attempt other callers are awaiting.
        return await asyncio.shield(self._pending)

    def reset(self) -> None:
        """
        Drop the current client (or in-flight attempt) and return to ABSENT.

        The next `get_client()` performs a fresh initialization. A dropped ready client is
        closed in the background; an in-flight attempt closes its own client when it lands.
        """

        self._generation += 1
        client, self._client = self._client, None
        pending, self._pending = self._pending, None
        if pending is not None:
            _track(self._discarded, pending)
        if client is not None:
            _track(self._closing, asyncio.get_running_loop().create_task(client.aclose()))
        log.info("backend_client_reset")

    async def aclose(self) -> None:
        """
        Shut down: cancel any initialization still running and close every client handed out.
        """

        self._generation += 1
        attempts = list(self._discarded)
        if self._pending is not None:
            attempts.append(self._pending)
            self._pending = None
        for task in attempts:
            # A cancelled attempt closes its half-built client in BackendClient.create.
            task.cancel()

        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
        await asyncio.gather(*attempts, *self._closing, return_exceptions=True)

    async def _initialize(self, generation: int) -> BackendClient:
        try:
            client = await self._create_client()
        finally:
            if generation == self._generation:
                self._pending = None

        if generation != self._generation:
            # reset() ran while we were initializing: do not cache a stale client.
            await client.aclose()
            raise InitializationError("Backend client was reset during initialization")

        self._client = client
        log.info("backend_client_initialized")
        return client

    async def _create_client(self) -> BackendClient:
        if not self._secrets.has_access_token:
            log.error("backend_client_init_failed", reason="missing_access_token")
            raise InitializationError(MISSING_TOKEN_MESSAGE)

        backend = self._settings.backend
        keys = self._secrets.workspace_keys or []
        log.info("backend_client_initializing", workspace_keys=len(keys))
        try:
            return await self._factory(
                access_token=self._secrets.access_token.get_secret_value(),
                url_template=backend.base_url_template,
                platform_url=backend.platform_url,
                timeout_ms=backend.timeout_ms,
                retries=backend.retries,
                workspace_keys=keys,
                on_unauthorized=self._notify_unauthorized,
            )
        except Exception as e:
            log.error("backend_client_init_failed", exc_info=True)
            raise InitializationError(f"Failed to initialize backend client: {e}") from e

    def _notify_unauthorized(self, error: UnauthorizedError) -> None:
        # Monitoring only: re-authentication is an explicit reset(), never automatic.
        log.error("backend_unauthorized", error=str(error))
        if self._extra_unauthorized_hook is not None:
            self._extra_unauthorized_hook(error)


def _track(tasks: set, task: asyncio.Task) -> None:
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    task.add_done_callback(_retrieve_exception)


def _retrieve_exception(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the outcome as seen so asyncio stays quiet.
    if not task.cancelled():
        task.exception()


# --- Module Notes -----------------------------------------------------------
# Single-flight initialization rests on `_pending` being assigned before the first await.
