"""Health probe resources for liveness and readiness checks.

Usage
-----
Register health endpoints on the Falcon app::

    from deployrelay.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(settings))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from deployrelay.config import RelaySettings

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe reporting whether the relay is configured.

    Responds ``{"status": "ready"}`` when the webhook secret, repository and
    a forge credential are set, otherwise HTTP 503 listing what is missing.
    Values are never echoed.

    """

    def __init__(self, settings: RelaySettings) -> None:
        """Initialise with the relay settings to inspect."""
        self._settings = settings

    def _missing(self) -> list[str]:
        settings = self._settings
        missing: list[str] = []
        if not settings.webhook_secret:
            missing.append("RELAY_WEBHOOK_SECRET")
        if not settings.owner:
            missing.append("RELAY_GITHUB_OWNER")
        if not settings.repo:
            missing.append("RELAY_GITHUB_REPO")
        if settings.app is None and not settings.token:
            missing.append("RELAY_GITHUB_TOKEN")
        return missing

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        missing = self._missing()
        if missing:
            resp.media = {"status": "misconfigured", "missing": missing}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
            return
        resp.media = {"status": "ready"}
        resp.status = HTTPStatus.OK
