"""
tests.test_errors

Error normalization: every failure kind maps onto one envelope.
"""

from __future__ import annotations

import pytest

from comply_gateway.errors import (
    GENERIC_MESSAGE,
    BackendError,
    InitializationError,
    NormalizedError,
    UnauthorizedError,
    UnexpectedError,
    ValidationError,
    normalize_error,
)


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ValidationError("answers must be an array"), NormalizedError("Invalid request", "answers must be an array", 400)),
        (BackendError("conflict", status=409), NormalizedError("Failed to x", "conflict", 409)),
        (BackendError("no status"), NormalizedError("Failed to x", "no status", 500)),
        (UnauthorizedError(), NormalizedError("Failed to x", "Access token rejected by backend", 401)),
        (InitializationError("token missing"), NormalizedError("Failed to x", "token missing", 500)),
        (UnexpectedError("secret detail"), NormalizedError("Failed to x", GENERIC_MESSAGE, 500)),
        (KeyError("internal"), NormalizedError("Failed to x", GENERIC_MESSAGE, 500)),
    ],
)
def test_normalize_error(exc: BaseException, expected: NormalizedError) -> None:
    assert normalize_error(exc, failure="Failed to x") == expected


def test_envelope_shape() -> None:
    err = NormalizedError("Failed to lock vault", "locked by someone else", 409)
    assert err.to_body() == {"error": "Failed to lock vault", "message": "locked by someone else"}


def test_unexpected_error_wraps_the_original_exception() -> None:
    original = KeyError("pool-3")
    err = UnexpectedError.wrap(original)

    assert isinstance(err, UnexpectedError)
    assert err.__cause__ is original
    assert normalize_error(err, failure="Failed to get vaults") == NormalizedError(
        "Failed to get vaults", GENERIC_MESSAGE, 500
    )
