"""Health probe resources for liveness and readiness checks.

These resources are stateless and always registered, whether or not the
webhook endpoint is configured.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe reporting whether webhooks are being accepted.

    A health-only deployment is still ready; ``webhooks`` tells operators
    which mode the process started in.
    """

    def __init__(self, *, webhooks_enabled: bool = False) -> None:
        """Record the mode the application was created in."""
        self._webhooks = "enabled" if webhooks_enabled else "disabled"

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        resp.media = {"status": "ready", "webhooks": self._webhooks}
        resp.status = HTTPStatus.OK
