"""hubrelay runtime entrypoint.

This module provides the ASGI application factory used by Granian. It
delegates to :func:`hubrelay.api.app.create_app` while keeping the
``hubrelay.runtime:create_app`` entrypoint stable.

When both ``HUBRELAY_WEBHOOK_SECRET`` and ``HUBRELAY_DATABASE_URL`` are
set, the app accepts GitHub webhooks and queues them for the routing
actor. Otherwise it starts in health-only mode.

Configuration is driven by environment variables:

- ``HUBRELAY_HOST``: Bind address (default ``0.0.0.0``)
- ``HUBRELAY_PORT``: Listen port (default ``8080``)
- ``HUBRELAY_LOG_LEVEL``: Log level (default ``INFO``)
- ``HUBRELAY_DATABASE_URL``: Subscription database URL
- ``HUBRELAY_WEBHOOK_SECRET``: GitHub webhook secret

Run the service directly with ``python -m hubrelay.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from hubrelay.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid HUBRELAY_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment."""
    from hubrelay.api.app import AppDependencies
    from hubrelay.api.app import create_app as _create_api_app
    from hubrelay.api.webhooks import WebhookConfig, enqueue_for_routing

    webhook_config = WebhookConfig.from_env()
    database_url = os.environ.get("HUBRELAY_DATABASE_URL", "").strip()

    if webhook_config is None or not database_url:
        log_warning(
            logger,
            "Webhook endpoint disabled: HUBRELAY_WEBHOOK_SECRET and "
            "HUBRELAY_DATABASE_URL are both required",
        )
        return _create_api_app()

    deps = AppDependencies(
        webhook_config=webhook_config,
        dispatch=enqueue_for_routing(database_url),
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the hubrelay runtime server using Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("HUBRELAY_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("HUBRELAY_PORT", "8080"))
    log_level_str = os.environ.get("HUBRELAY_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid HUBRELAY_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting hubrelay runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "hubrelay.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
