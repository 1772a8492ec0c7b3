"""Trigger the downstream workflow for a resolved deployment."""

from __future__ import annotations

import dataclasses
import typing as typ

from deployrelay.errors import DispatchFailureError
from deployrelay.github.errors import GitHubAPIError

__all__ = ["DispatchContext", "WorkflowDispatcher", "WorkflowClient", "ensure_scheme"]

_SCHEMES = ("http://", "https://")


def ensure_scheme(url: str) -> str:
    """Prefix ``https://`` to addresses sent without a scheme.

    A pure string transform; reachability is not checked.

    >>> ensure_scheme("dash-abc.example.com")
    'https://dash-abc.example.com'
    """
    text = url.strip()
    if text.lower().startswith(_SCHEMES):
        return text
    return f"https://{text.lstrip('/')}"


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchContext:
    """Inputs for one dispatch, built once per request.

    Attributes
    ----------
    head_commit
        Commit the check run is anchored to.
    preview_url
        Absolute preview address.
    project
        Project name.
    ref
        Ref the workflow runs on.
    check_run_id
        Id of the queued check run, when one was created.

    """

    head_commit: str
    preview_url: str
    project: str
    ref: str
    check_run_id: str | None = None


class WorkflowClient(typ.Protocol):
    """Forge workflow-dispatch operation."""

    async def dispatch_workflow(
        self, workflow_file: str, *, ref: str, inputs: dict[str, str]
    ) -> None: ...


class WorkflowDispatcher:
    """Start the workflow named by a fixed filename."""

    def __init__(self, client: WorkflowClient, *, workflow_file: str) -> None:
        """Initialise with the forge client and the workflow filename."""
        self._client = client
        self._workflow_file = workflow_file

    @property
    def workflow_file(self) -> str:
        """Return the workflow filename."""
        return self._workflow_file

    @staticmethod
    def build_inputs(context: DispatchContext) -> dict[str, str]:
        """Return the fixed-shape workflow inputs for ``context``."""
        return {
            "url": ensure_scheme(context.preview_url),
            "project": context.project,
            "check_run_id": context.check_run_id or "",
        }

    async def dispatch(self, context: DispatchContext) -> None:
        """Trigger the workflow on ``context.ref``.

        Raises
        ------
        DispatchFailureError
            With the upstream status and body when the trigger call fails.
            No retry is attempted.

        """
        try:
            await self._client.dispatch_workflow(
                self._workflow_file,
                ref=context.ref,
                inputs=self.build_inputs(context),
            )
        except GitHubAPIError as exc:
            raise DispatchFailureError(exc.status_code, exc.body or str(exc)) from exc
