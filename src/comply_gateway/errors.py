"""
comply_gateway.errors

Error taxonomy shared by every layer of the gateway.

Responsibilities:
- Define the exceptions raised at startup, during client setup and per request.
- Normalize any exception into the single `NormalizedError` shape sent to callers.
"""

from __future__ import annotations

from dataclasses import dataclass

INVALID_REQUEST = "Invalid request"
GENERIC_MESSAGE = "An unexpected error occurred"


class GatewayError(Exception):
    """
    Base class for errors the gateway knows how to render.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    # Fatal: raised while resolving settings, before the server starts.
    pass


class ValidationError(GatewayError):
    # Per-request: rejected before any backend call.
    pass


class InitializationError(GatewayError):
    # Lazy backend client setup failed; the lifecycle returns to ABSENT.
    pass


class BackendError(GatewayError):
    """
    A backend call failed. `status` is the backend's HTTP status when it reported one.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UnauthorizedError(BackendError):
    # The backend rejected the current access token.
    def __init__(self, message: str = "Access token rejected by backend") -> None:
        super().__init__(message, status=401)


class UnexpectedError(GatewayError):
    """
    Any failure outside this taxonomy. The original exception is kept as `__cause__` for the
    log; callers only ever see the generic message.
    """

    @classmethod
    def wrap(cls, exc: BaseException) -> UnexpectedError:
        err = cls(str(exc) or type(exc).__name__)
        err.__cause__ = exc
        return err


@dataclass(frozen=True, slots=True)
class NormalizedError:
    error_kind: str
    message: str
    http_status: int

    def to_body(self) -> dict[str, str]:
        return {"error": self.error_kind, "message": self.message}


def normalize_error(exc: BaseException, *, failure: str) -> NormalizedError:
    """
    Map any exception onto the fixed error envelope.

    `failure` is the short, route-specific category (e.g. "Failed to create vault").
    Validation errors always use the generic "Invalid request" category.
    """

    if isinstance(exc, ValidationError):
        return NormalizedError(INVALID_REQUEST, exc.message, 400)
    if isinstance(exc, BackendError):
        return NormalizedError(failure, exc.message, exc.status or 500)
    if isinstance(exc, InitializationError):
        return NormalizedError(failure, exc.message, 500)
    # UnexpectedError (or anything not yet wrapped): never leak internals to the caller.
    return NormalizedError(failure, GENERIC_MESSAGE, 500)


# --- Module Notes -----------------------------------------------------------
# Only ConfigurationError is fatal; every other error stays inside the route boundary.
