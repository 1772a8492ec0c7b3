"""Structured log events for relay requests.

Each pipeline transition emits one line tagged with a ``RelayEventType`` so
log aggregators can follow a delivery from signature check to dispatch.
Secrets, tokens and signatures are never included.
"""

from __future__ import annotations

import enum
import typing as typ

from deployrelay.errors import (
    CheckRunCreateError,
    ConfigMissingError,
    DispatchFailureError,
    ForgeAuthError,
    MalformedInputError,
    SignatureRejectedError,
    UnresolvableRefError,
    ValidationFailureError,
)
from deployrelay.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    from deployrelay.events import IgnoredEvent, ReadyDeployment

    from .commits import ResolvedCommit
    from .dispatch import DispatchContext

logger = get_logger(__name__)


class RelayEventType(enum.StrEnum):
    """Structured log event types for relay requests."""

    SIGNATURE_REJECTED = "relay.signature.rejected"
    EVENT_IGNORED = "relay.event.ignored"
    EVENT_ACCEPTED = "relay.event.accepted"
    COMMIT_RESOLVED = "relay.commit.resolved"
    CHECK_RUN_CREATED = "relay.check_run.created"
    WORKFLOW_DISPATCHED = "relay.workflow.dispatched"
    REQUEST_FAILED = "relay.request.failed"
    ANNOTATION_FAILED = "relay.check_run.annotation_failed"


class ErrorCategory(enum.StrEnum):
    """Categories for failure classification in alerts."""

    UNAUTHORIZED = "unauthorized"
    CLIENT_INPUT = "client_input"
    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (SignatureRejectedError, ErrorCategory.UNAUTHORIZED),
    (MalformedInputError, ErrorCategory.CLIENT_INPUT),
    (ValidationFailureError, ErrorCategory.CLIENT_INPUT),
    (ConfigMissingError, ErrorCategory.CONFIGURATION),
    (UnresolvableRefError, ErrorCategory.UPSTREAM),
    (CheckRunCreateError, ErrorCategory.UPSTREAM),
    (DispatchFailureError, ErrorCategory.UPSTREAM),
    (ForgeAuthError, ErrorCategory.UPSTREAM),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize a request failure for alert routing."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class RelayEventLogger:
    """Emit structured relay events via the standard logging module."""

    def log_signature_rejected(self, *, body_bytes: int) -> None:
        """Log a rejected signature without revealing which input was at fault."""
        log_warning(
            logger,
            "[%s] body_bytes=%d",
            RelayEventType.SIGNATURE_REJECTED,
            body_bytes,
        )

    def log_ignored(self, event: IgnoredEvent) -> None:
        """Log an event acknowledged without processing."""
        log_info(
            logger,
            "[%s] dialect=%s kind=%s",
            RelayEventType.EVENT_IGNORED,
            event.dialect,
            event.kind or "<none>",
        )

    def log_accepted(self, deployment: ReadyDeployment) -> None:
        """Log a ready deployment and the dialect rule that matched it."""
        log_info(
            logger,
            "[%s] dialect=%s kind=%s matched_by=%s project=%s ref=%s "
            "deployment_id=%s has_known_commit=%s",
            RelayEventType.EVENT_ACCEPTED,
            deployment.dialect,
            deployment.kind,
            deployment.matched_by,
            deployment.project,
            deployment.ref,
            deployment.deployment_id,
            deployment.known_commit is not None,
        )

    def log_commit_resolved(self, ref: str, resolved: ResolvedCommit) -> None:
        """Log the commit a ref resolved to and how it was found."""
        log_info(
            logger,
            "[%s] ref=%s head_sha=%s source=%s",
            RelayEventType.COMMIT_RESOLVED,
            ref,
            resolved.sha,
            resolved.source,
        )

    def log_check_run_created(
        self, *, check_run_id: str, name: str, head_sha: str
    ) -> None:
        """Log a queued check run."""
        log_info(
            logger,
            "[%s] check_run_id=%s name=%s head_sha=%s",
            RelayEventType.CHECK_RUN_CREATED,
            check_run_id,
            name,
            head_sha,
        )

    def log_dispatched(self, workflow_file: str, context: DispatchContext) -> None:
        """Log a successful workflow dispatch."""
        log_info(
            logger,
            "[%s] workflow=%s ref=%s project=%s url=%s check_run_id=%s",
            RelayEventType.WORKFLOW_DISPATCHED,
            workflow_file,
            context.ref,
            context.project,
            context.preview_url,
            context.check_run_id,
        )

    def log_failed(self, error: BaseException) -> None:
        """Log a terminal request failure with its category."""
        log_error(
            logger,
            "[%s] error_type=%s error_category=%s error_message=%s",
            RelayEventType.REQUEST_FAILED,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def log_annotation_failed(self, description: str, error: BaseException) -> None:
        """Log a swallowed failure of a best-effort side effect."""
        log_warning(
            logger,
            "[%s] operation=%s error_type=%s error_message=%s",
            RelayEventType.ANNOTATION_FAILED,
            description,
            type(error).__name__,
            str(error),
        )
