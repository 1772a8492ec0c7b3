"""Relay runtime entrypoint.

This module provides the ASGI application factory used by Granian and a
``main()`` that serves it.  Configuration is driven by environment variables:

- ``RELAY_HOST``: Bind address (default ``0.0.0.0``)
- ``RELAY_PORT``: Listen port (default ``8080``)
- ``RELAY_LOG_LEVEL``: Log level (default ``INFO``)
- ``RELAY_VALIDATE_WORKFLOW``: When truthy, confirm at startup that the
  configured workflow file exists on the forge
- the relay settings documented on :class:`deployrelay.config.RelaySettings`

Run the service directly with ``python -m deployrelay.runtime``.
"""

from __future__ import annotations

import asyncio
import os
import typing as typ

import httpx

from deployrelay.config import RelaySettings
from deployrelay.errors import ConfigMissingError
from deployrelay.github import (
    GitHubAPIError,
    GitHubAppAuthError,
    GitHubConfigError,
    GitHubRestClient,
    GitHubRestConfig,
    build_credential_provider,
)
from deployrelay.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["WorkflowCheck", "check_workflow", "create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535
_HTTP_NOT_FOUND = 404
_TRUTHY = frozenset({"1", "true", "yes", "on"})


class WorkflowCheck(typ.NamedTuple):
    """Result of the startup workflow check."""

    ok: bool
    fatal: bool
    detail: str


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
            "Invalid RELAY_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from environment settings."""
    from deployrelay.api.app import AppDependencies
    from deployrelay.api.app import create_app as _create_api_app

    settings = RelaySettings.from_env()
    if not settings.webhook_secret or not settings.has_forge_credentials:
        log_warning(
            logger,
            "Relay configuration incomplete; deliveries will be answered with 500",
        )
    return _create_api_app(AppDependencies(settings=settings))


async def check_workflow(
    settings: RelaySettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WorkflowCheck:
    """Confirm that the configured workflow file exists on the forge.

    A missing workflow leaves every created check run queued forever, so a
    404 is reported as fatal.  Other failures are reported as non-fatal.
    """
    try:
        repository = settings.require_repository()
    except ConfigMissingError as exc:
        return WorkflowCheck(ok=False, fatal=False, detail=str(exc))

    async with httpx.AsyncClient(
        timeout=settings.timeout_s, transport=transport, follow_redirects=True
    ) as http_client:
        try:
            credentials = build_credential_provider(
                settings, repository, http_client=http_client
            )
            client = GitHubRestClient(
                GitHubRestConfig(
                    repository=repository,
                    api_url=settings.api_url,
                    timeout_s=settings.timeout_s,
                ),
                credentials,
                http_client=http_client,
            )
            await client.get_workflow(settings.workflow_file)
        except GitHubAPIError as exc:
            fatal = exc.status_code == _HTTP_NOT_FOUND
            return WorkflowCheck(ok=False, fatal=fatal, detail=str(exc))
        except (
            ConfigMissingError,
            GitHubAppAuthError,
            GitHubConfigError,
        ) as exc:
            return WorkflowCheck(ok=False, fatal=False, detail=str(exc))
    return WorkflowCheck(ok=True, fatal=False, detail=settings.workflow_file)


def _validate_workflow_at_startup(settings: RelaySettings) -> None:
    result = asyncio.run(check_workflow(settings))
    if result.ok:
        log_info(
            logger,
            "Workflow %s found in %s/%s",
            result.detail,
            settings.owner,
            settings.repo,
        )
        return
    if result.fatal:
        log_error(
            logger,
            "Workflow %s not found in %s/%s: %s",
            settings.workflow_file,
            settings.owner,
            settings.repo,
            result.detail,
        )
        raise SystemExit(1)
    log_warning(
        logger,
        "Could not verify workflow %s: %s",
        settings.workflow_file,
        result.detail,
    )


def main() -> None:
    """Start the relay server using Granian.

    Reads ``RELAY_HOST``, ``RELAY_PORT`` and ``RELAY_LOG_LEVEL`` from the
    environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("RELAY_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port_str = os.environ.get("RELAY_PORT", "8080")
    port = _parse_port(port_str)
    log_level_str = os.environ.get("RELAY_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid RELAY_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    validate = os.environ.get("RELAY_VALIDATE_WORKFLOW", "").strip().lower()
    if validate in _TRUTHY:
        _validate_workflow_at_startup(RelaySettings.from_env())

    log_info(
        logger,
        "Starting relay runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "deployrelay.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
