"""
comply_gateway.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Encapsulate app.state access for the settings and the backend client lifecycle.
"""

from __future__ import annotations

from fastapi import Request

from comply_gateway.backend.lifecycle import ClientLifecycle
from comply_gateway.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def lifecycle_dep(request: Request) -> ClientLifecycle:
    # Created once by `comply_gateway.api.app.create_app`; routes only borrow it.
    return request.app.state.lifecycle  # type: ignore[attr-defined]
