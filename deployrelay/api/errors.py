"""Falcon error handlers for relay failures.

Each ``RelayError`` subclass maps onto one HTTP status.  Response bodies carry
a short diagnostic and never a traceback or secret material.

Usage
-----
Register the handler on the Falcon app::

    from deployrelay.api.errors import handle_relay_error
    from deployrelay.errors import RelayError

    app.add_error_handler(RelayError, handle_relay_error)

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from deployrelay.errors import (
    CheckRunCreateError,
    ConfigMissingError,
    DispatchFailureError,
    ForgeAuthError,
    MalformedInputError,
    RelayError,
    SignatureRejectedError,
    UnresolvableRefError,
    ValidationFailureError,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["handle_relay_error", "status_for"]

_STATUS_BY_ERROR: dict[type[RelayError], HTTPStatus] = {
    SignatureRejectedError: HTTPStatus.UNAUTHORIZED,
    MalformedInputError: HTTPStatus.BAD_REQUEST,
    ValidationFailureError: HTTPStatus.BAD_REQUEST,
    ConfigMissingError: HTTPStatus.INTERNAL_SERVER_ERROR,
    UnresolvableRefError: HTTPStatus.BAD_GATEWAY,
    CheckRunCreateError: HTTPStatus.BAD_GATEWAY,
    DispatchFailureError: HTTPStatus.BAD_GATEWAY,
    ForgeAuthError: HTTPStatus.BAD_GATEWAY,
}


def status_for(ex: RelayError) -> HTTPStatus:
    """Return the HTTP status for ``ex``, walking its class hierarchy."""
    for cls in type(ex).__mro__:
        status = _STATUS_BY_ERROR.get(cls)
        if status is not None:
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


async def handle_relay_error(
    _req: Request,
    resp: Response,
    ex: RelayError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a ``RelayError`` to its HTTP status and a JSON diagnostic.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The relay failure.
    _params
        URI template parameters (unused).

    """
    resp.status = status_for(ex)
    media: dict[str, str] = {
        "title": ex.title,
        "description": str(ex),
    }
    if isinstance(ex, ValidationFailureError):
        media["description"] = ex.reason
        media["field"] = ex.field
    resp.media = media
