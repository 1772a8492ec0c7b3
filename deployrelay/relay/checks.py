"""Check-run lifecycle owned by the relay.

The relay creates the check run in ``queued`` state before dispatch so the
workflow can update it.  Completion belongs to the workflow, except when the
dispatch itself fails and the relay marks the run failed.
"""

from __future__ import annotations

import typing as typ

from deployrelay.common.time import isoformat_z, utcnow
from deployrelay.errors import CheckRunCreateError
from deployrelay.github.errors import GitHubAPIError, GitHubResponseShapeError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

__all__ = ["CheckRunClient", "CheckRunManager"]


class CheckRunClient(typ.Protocol):
    """Forge operations on check runs."""

    async def create_check_run(
        self, *, name: str, head_sha: str, started_at: str
    ) -> int: ...

    async def complete_check_run(  # noqa: PLR0913
        self,
        check_run_id: int | str,
        *,
        conclusion: str,
        completed_at: str,
        title: str,
        summary: str,
    ) -> None: ...


class CheckRunManager:
    """Create and fail relay check runs.

    Parameters
    ----------
    client
        Forge check-run operations.
    name_prefix
        Fixed prefix; the project name is appended to form the run name.
    failure_title
        Output title recorded when a run is marked failed.
    clock
        Source of aware UTC timestamps.

    """

    def __init__(
        self,
        client: CheckRunClient,
        *,
        name_prefix: str,
        failure_title: str,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Initialise the manager."""
        self._client = client
        self._name_prefix = name_prefix
        self._failure_title = failure_title
        self._clock = clock

    def check_name(self, project: str) -> str:
        """Return the run name for ``project``."""
        return f"{self._name_prefix}{project}"

    async def create(self, head_sha: str, project: str) -> str:
        """Create a queued check run anchored to ``head_sha``.

        Returns
        -------
        str
            The check run id, stringified for workflow inputs.

        Raises
        ------
        CheckRunCreateError
            If the forge rejects the creation.

        """
        try:
            check_run_id = await self._client.create_check_run(
                name=self.check_name(project),
                head_sha=head_sha,
                started_at=isoformat_z(self._clock()),
            )
        except (GitHubAPIError, GitHubResponseShapeError) as exc:
            raise CheckRunCreateError(str(exc)) from exc
        return str(check_run_id)

    async def mark_failed(self, check_run_id: str, summary: str) -> None:
        """Complete the run with a ``failure`` conclusion.

        Callers wrap this in ``best_effort``; errors propagate from here.
        """
        await self._client.complete_check_run(
            check_run_id,
            conclusion="failure",
            completed_at=isoformat_z(self._clock()),
            title=self._failure_title,
            summary=summary,
        )
