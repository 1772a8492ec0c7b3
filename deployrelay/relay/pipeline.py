"""The event-verification-and-dispatch pipeline.

One ``RelayPipeline.handle`` call processes one inbound delivery and holds no
state afterwards.  Steps run strictly in order, each depending on the last:

signature check -> parse -> normalise -> resolve commit -> create check run
-> dispatch workflow

Every failure is terminal and raised as a ``RelayError``.  The only recovery
is a best-effort attempt to fail the check run after a dispatch error.

Usage
-----
Handle one delivery::

    pipeline = RelayPipeline(RelaySettings.from_env())
    result = await pipeline.handle(raw_body, signature)

"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import httpx

from deployrelay.common.time import utcnow
from deployrelay.errors import (
    ConfigInvalidError,
    DispatchFailureError,
    ForgeAuthError,
    RelayError,
    SignatureRejectedError,
)
from deployrelay.events import (
    EventDialect,
    IgnoredEvent,
    ReadyDeployment,
    normalize_event,
    parse_event,
)
from deployrelay.github import (
    GitHubAppAuthError,
    GitHubConfigError,
    GitHubRestClient,
    GitHubRestConfig,
    build_credential_provider,
)
from deployrelay.signature import verify_signature

from .best_effort import best_effort
from .checks import CheckRunManager
from .commits import CommitResolver
from .dispatch import DispatchContext, WorkflowDispatcher, ensure_scheme
from .observability import RelayEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from deployrelay.config import RelaySettings, RepositoryRef

__all__ = ["RelayOutcome", "RelayPipeline", "RelayResult"]


class RelayOutcome(enum.StrEnum):
    """Non-error terminal states of a request."""

    DISPATCHED = "dispatched"
    IGNORED = "ignored"


@dataclasses.dataclass(frozen=True, slots=True)
class RelayResult:
    """Outcome of one handled delivery.

    Attributes
    ----------
    outcome
        ``DISPATCHED`` or ``IGNORED``.
    kind
        Kind tag of the received event.
    dialect
        Envelope dialect of the received event.
    context
        Dispatch context; ``None`` for ignored events.

    """

    outcome: RelayOutcome
    kind: str
    dialect: EventDialect
    context: DispatchContext | None = None


class RelayPipeline:
    """Verify a delivery and drive the forge calls it asks for.

    Parameters
    ----------
    settings
        Relay configuration, including the fixed workflow filename and
        check-run name prefix.
    transport
        Optional ``httpx`` transport for forge calls, used by tests.
    event_logger
        Structured event sink.
    clock
        Source of aware UTC timestamps for check-run updates.

    """

    def __init__(
        self,
        settings: RelaySettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        event_logger: RelayEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Initialise the pipeline."""
        self._settings = settings
        self._transport = transport
        self._events = event_logger or RelayEventLogger()
        self._clock = clock

    @property
    def settings(self) -> RelaySettings:
        """Read-only access to the relay settings."""
        return self._settings

    async def handle(self, raw_body: bytes, signature: str | None) -> RelayResult:
        """Process one delivery end to end.

        Parameters
        ----------
        raw_body
            Request body exactly as received.
        signature
            Signature header value, if any.

        Returns
        -------
        RelayResult
            The dispatched or ignored outcome.

        Raises
        ------
        RelayError
            For every failure state; see ``deployrelay.errors``.

        """
        try:
            return await self._handle(raw_body, signature)
        except RelayError as exc:
            self._events.log_failed(exc)
            raise

    async def _handle(self, raw_body: bytes, signature: str | None) -> RelayResult:
        secret = self._settings.require_secret()
        if not verify_signature(raw_body, signature, secret):
            self._events.log_signature_rejected(body_bytes=len(raw_body))
            raise SignatureRejectedError

        normalized = normalize_event(parse_event(raw_body))
        match normalized:
            case IgnoredEvent():
                self._events.log_ignored(normalized)
                return RelayResult(
                    outcome=RelayOutcome.IGNORED,
                    kind=normalized.kind,
                    dialect=normalized.dialect,
                )
            case ReadyDeployment():
                self._events.log_accepted(normalized)
            case _:
                typ.assert_never(normalized)

        repository = self._settings.require_repository()
        context = await self._drive_forge(repository, normalized)
        return RelayResult(
            outcome=RelayOutcome.DISPATCHED,
            kind=normalized.kind,
            dialect=normalized.dialect,
            context=context,
        )

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.timeout_s,
            transport=self._transport,
            follow_redirects=True,
        )

    async def _drive_forge(
        self, repository: RepositoryRef, deployment: ReadyDeployment
    ) -> DispatchContext:
        settings = self._settings
        async with self._http_client() as http_client:
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
            try:
                return await self._run_steps(client, repository, deployment)
            except GitHubAppAuthError as exc:
                raise ForgeAuthError(str(exc)) from exc
            except GitHubConfigError as exc:
                raise ConfigInvalidError(["RELAY_GITHUB_APP_PRIVATE_KEY"]) from exc

    async def _run_steps(
        self,
        client: GitHubRestClient,
        repository: RepositoryRef,
        deployment: ReadyDeployment,
    ) -> DispatchContext:
        settings = self._settings
        resolved = await CommitResolver(client).resolve(
            deployment.ref, deployment.known_commit
        )
        self._events.log_commit_resolved(deployment.ref, resolved)

        checks = CheckRunManager(
            client,
            name_prefix=settings.check_name_prefix,
            failure_title=settings.check_failure_title,
            clock=self._clock,
        )
        project = deployment.project or repository.name
        check_run_id = await checks.create(resolved.sha, project)
        self._events.log_check_run_created(
            check_run_id=check_run_id,
            name=checks.check_name(project),
            head_sha=resolved.sha,
        )

        context = DispatchContext(
            head_commit=resolved.sha,
            preview_url=ensure_scheme(deployment.preview_url),
            project=project,
            ref=deployment.ref,
            check_run_id=check_run_id,
        )
        dispatcher = WorkflowDispatcher(client, workflow_file=settings.workflow_file)
        try:
            await dispatcher.dispatch(context)
        except DispatchFailureError as exc:
            await best_effort(
                checks.mark_failed(check_run_id, exc.summary),
                description=f"mark check run {check_run_id} failed",
                on_error=self._events.log_annotation_failed,
            )
            raise
        self._events.log_dispatched(dispatcher.workflow_file, context)
        return context
