"""Application factory for the relay's Falcon ASGI application.

Usage
-----
Create an app from explicit settings::

    from deployrelay.api.app import AppDependencies, create_app
    from deployrelay.config import RelaySettings

    app = create_app(AppDependencies(settings=RelaySettings.from_env()))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from deployrelay.api.errors import handle_relay_error
from deployrelay.api.health.resources import HealthResource, ReadyResource
from deployrelay.api.resources import DeploymentWebhookResource
from deployrelay.config import RelaySettings
from deployrelay.errors import RelayError
from deployrelay.relay import RelayPipeline

if typ.TYPE_CHECKING:
    import httpx

    from deployrelay.relay import RelayEventLogger

__all__ = ["WEBHOOK_ROUTES", "AppDependencies", "create_app"]

WEBHOOK_ROUTES = (
    "/api/deployments",
    "/api/vercel-to-github-success-deployment",
)


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    settings
        Relay configuration.
    transport
        Optional ``httpx`` transport for forge calls, used by tests.
    event_logger
        Optional structured event sink.

    """

    settings: RelaySettings = dc.field(default_factory=RelaySettings)
    transport: httpx.AsyncBaseTransport | None = None
    event_logger: RelayEventLogger | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies.  When ``None``, empty settings
        are used and every delivery is answered with a configuration error.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    pipeline = RelayPipeline(
        deps.settings,
        transport=deps.transport,
        event_logger=deps.event_logger,
    )

    app = falcon.asgi.App()

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(deps.settings))

    webhook = DeploymentWebhookResource(pipeline)
    for route in WEBHOOK_ROUTES:
        app.add_route(route, webhook)

    app.add_error_handler(RelayError, handle_relay_error)

    return app
