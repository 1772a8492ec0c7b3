"""Relay HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application exposing the deployment webhook and health probes.

Public API
----------
create_app
    Application factory wiring the webhook resource, probes and the relay
    error handler.
"""

from deployrelay.api.app import create_app

__all__ = ["create_app"]
