"""
comply_gateway.api.gateway

Shared request pipeline used by every route.

Responsibilities:
- Validate request payloads against strict pydantic models (400 on any mismatch).
- Forward exactly one call to the backend client borrowed from the lifecycle manager.
- Map success to a response and any failure to the fixed `{error, message}` envelope.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.responses import JSONResponse, Response

from comply_gateway.backend.client import BackendClient
from comply_gateway.backend.lifecycle import ClientLifecycle
from comply_gateway.errors import GatewayError, UnexpectedError, ValidationError, normalize_error
from comply_gateway.observability.logging import get_logger

log = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

# Leading loc segments FastAPI adds that mean nothing to API callers.
_LOC_SOURCES = ("body", "query", "path")


def describe_validation_error(err: dict[str, Any]) -> str:
    loc = [str(p) for p in err.get("loc", ())]
    if loc and loc[0] in _LOC_SOURCES:
        loc = loc[1:]
    kind = err.get("type")
    if kind == "json_invalid":
        return "request body must be valid JSON"
    field = ".".join(loc)
    if not field:
        return "request body must be a JSON object"
    if kind == "missing":
        return f"{field} is required"
    if kind == "list_type":
        return f"{field} must be an array"
    if kind == "string_type":
        return f"{field} must be a string"
    if kind == "string_too_short":
        return f"{field} must not be empty"
    return f"{field}: {err.get('msg', 'invalid value')}"


def validation_message(errors: Sequence[dict[str, Any]]) -> str:
    return "; ".join(describe_validation_error(e) for e in errors) or "invalid request"


def parse_body(model: type[M], data: Any) -> M:
    # Strict: "1" is not an int and a string is never an array.
    try:
        return model.model_validate(data, strict=True)
    except PydanticValidationError as e:
        raise ValidationError(validation_message(e.errors())) from e


def require_param(value: str | None, message: str) -> str:
    if not value:
        raise ValidationError(message)
    return value


def error_response(exc: BaseException, *, failure: str) -> JSONResponse:
    """
    The one place an exception becomes an HTTP error response.

    The original exception is logged before normalization; the caller only sees the envelope.
    """

    err = normalize_error(exc, failure=failure)
    # An UnexpectedError is logged as the exception it wraps, traceback included.
    detail = (exc.__cause__ or exc) if isinstance(exc, UnexpectedError) else exc
    log.error(
        "request_failed",
        failure=failure,
        status=err.http_status,
        error_type=type(detail).__name__,
        error=str(detail),
        exc_info=None if isinstance(detail, GatewayError) else detail,
    )
    return JSONResponse(status_code=err.http_status, content=err.to_body())


def json_result(result: Any) -> Response:
    return JSONResponse(content=jsonable_encoder(result))


def success(message: str) -> Callable[[Any], Response]:
    def render(_: Any) -> Response:
        return JSONResponse(content={"success": True, "message": message})

    return render


async def forward(
    lifecycle: ClientLifecycle,
    *,
    failure: str,
    call: Callable[[BackendClient], Awaitable[T]],
    render: Callable[[T], Response] = json_result,
) -> Response:
    try:
        client = await lifecycle.get_client()
        result = await call(client)
    except GatewayError as e:
        return error_response(e, failure=failure)
    except Exception as e:
        return error_response(UnexpectedError.wrap(e), failure=failure)

    # method/path come from the request contextvars bound by RequestContextMiddleware.
    log.info("backend_call_succeeded")
    return render(result)


# --- Module Notes -----------------------------------------------------------
# Routes raise ValidationError before calling `forward`; the app-level handler renders it
# through `error_response`, so validation never reaches the backend.
