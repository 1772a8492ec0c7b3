"""Webhook resource receiving deployment notifications.

Only ``POST`` is routed; Falcon answers other methods with ``405``.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from deployrelay.relay import RelayOutcome

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from deployrelay.relay import RelayPipeline, RelayResult

__all__ = ["DeploymentWebhookResource"]


def _result_media(result: RelayResult) -> dict[str, str]:
    if result.outcome is RelayOutcome.IGNORED or result.context is None:
        return {"status": "ignored", "kind": result.kind}
    context = result.context
    return {
        "status": "ok",
        "project": context.project,
        "ref": context.ref,
        "head_sha": context.head_commit,
        "check_run_id": context.check_run_id or "",
    }


class DeploymentWebhookResource:
    """Verify and relay one deployment-ready delivery.

    Parameters
    ----------
    pipeline
        Pipeline handling each delivery.

    """

    def __init__(self, pipeline: RelayPipeline) -> None:
        """Initialise the resource with the relay pipeline."""
        self._pipeline = pipeline

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST deliveries.

        The body is read as raw bytes so the signature is checked against
        exactly what the sender signed.  Failures raise ``RelayError`` and are
        rendered by the registered error handler.
        """
        raw_body = await req.stream.read()
        signature = req.get_header(self._pipeline.settings.signature_header)
        result = await self._pipeline.handle(raw_body, signature)

        resp.media = _result_media(result)
        resp.status = (
            HTTPStatus.ACCEPTED
            if result.outcome is RelayOutcome.IGNORED
            else HTTPStatus.OK
        )
