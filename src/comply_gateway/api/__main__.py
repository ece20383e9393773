"""
comply_gateway.api.__main__

Entrypoint for running the gateway via `python -m comply_gateway.api`.

Responsibilities:
- Resolve settings and secrets; refuse to start on configuration errors.
- Create the app.
- Start uvicorn (with TLS when configured) using structlog-compatible logging.
"""

from __future__ import annotations

import uvicorn

from comply_gateway.api.app import create_app
from comply_gateway.errors import ConfigurationError
from comply_gateway.observability.logging import configure_logging, get_logger
from comply_gateway.settings import get_settings, load_secrets

log = get_logger(__name__)


def main() -> None:
    try:
        settings = get_settings()
        secrets = load_secrets()
    except ConfigurationError as e:
        configure_logging(service_name="comply-gateway", level="INFO")
        log.error("configuration_invalid", error=str(e))
        raise SystemExit(1) from None

    app = create_app(settings=settings, secrets=secrets)

    server = settings.server
    uvicorn.run(
        app,
        host=server.host,
        port=server.port,
        ssl_keyfile=server.key_path if server.tls_enabled else None,
        ssl_certfile=server.cert_path if server.tls_enabled else None,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# uvicorn handles SIGINT/SIGTERM; the app lifespan closes the backend client on the way out.
