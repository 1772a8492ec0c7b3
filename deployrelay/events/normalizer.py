"""Normalise deployment events from every known dialect.

``parse_event`` decodes the raw body and picks the dialect from the document
shape; ``normalize_event`` then extracts the canonical fields with one set of
priority rules.  The first non-empty candidate wins for each field:

preview address
    ``url`` > ``previewUrl`` > ``targetUrl`` > ``alias`` (first entry),
    checking the deployment object before the outer payload for each key.
ref
    ``meta.githubCommitRef`` > ``meta.gitlabCommitRef`` > ``meta.branch`` >
    deployment ``ref``.
project
    nested ``project.name`` > deployment ``name`` > outer payload ``name`` or
    ``project`` string.
known commit
    ``meta.githubCommitSha`` > ``meta.gitlabCommitSha`` > ``meta.commitSha`` >
    ``meta.sha``.

Example:
>>> event = parse_event(b'{"type": "deployment.error", "payload": {"deployment": {}}}')
>>> normalize_event(event)
IgnoredEvent(dialect=<EventDialect.ENVELOPE: 'envelope'>, kind='deployment.error')

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import msgspec

from deployrelay.errors import MalformedInputError, ValidationFailureError

from .models import (
    DeploymentObject,
    EnvelopeEvent,
    EnvelopePayload,
    EventDialect,
    FlatDeploymentEvent,
    IgnoredEvent,
    LegacyEnvelopeEvent,
    ProjectInfo,
    ReadyDeployment,
)

if typ.TYPE_CHECKING:
    from .models import DeploymentEvent, NormalizedEvent, ParsedEvent

__all__ = [
    "READY_KINDS",
    "classify_document",
    "normalize_event",
    "parse_event",
]

SUCCEEDED_KIND = "deployment.succeeded"
READY_KIND = "deployment.ready"
READY_KINDS = frozenset({SUCCEEDED_KIND, READY_KIND})
_READY_STATES = frozenset({"ready", READY_KIND})

_REF_META_KEYS = ("githubCommitRef", "gitlabCommitRef", "branch")
_COMMIT_META_KEYS = ("githubCommitSha", "gitlabCommitSha", "commitSha", "sha")

_decoder = msgspec.json.Decoder()


def _first_text(candidates: cabc.Iterable[object]) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _first_alias(alias: list[str] | str | None) -> str | None:
    if isinstance(alias, list):
        return _first_text(alias)
    return alias


def _project_name(project: ProjectInfo | str | None) -> str | None:
    if isinstance(project, ProjectInfo):
        return project.name
    return None


def _meta_value(meta: dict[str, typ.Any] | None, keys: tuple[str, ...]) -> str | None:
    if not meta:
        return None
    return _first_text(meta.get(key) for key in keys)


def classify_document(document: dict[str, typ.Any]) -> EventDialect:
    """Return the dialect of a decoded event document."""
    payload = document.get("payload")
    if isinstance(payload, dict):
        if "deployment" in payload:
            return EventDialect.ENVELOPE
        return EventDialect.LEGACY_ENVELOPE
    return EventDialect.FLAT


_DIALECT_TYPES: dict[EventDialect, type[DeploymentEvent]] = {
    EventDialect.ENVELOPE: EnvelopeEvent,
    EventDialect.LEGACY_ENVELOPE: LegacyEnvelopeEvent,
    EventDialect.FLAT: FlatDeploymentEvent,
}


def _declared_kind(document: dict[str, typ.Any]) -> str | None:
    """Return the explicit ``type`` tag when it names a non-ready kind."""
    tag = document.get("type")
    if not isinstance(tag, str) or not tag:
        return None
    kind = tag.strip()
    return None if kind in READY_KINDS else kind


def parse_event(raw: bytes) -> ParsedEvent:
    """Decode a raw body into the typed event for its dialect.

    Documents tagged with a kind other than a ready deployment are returned as
    ``IgnoredEvent`` without checking the rest of their shape.

    Raises
    ------
    MalformedInputError
        If the body is not JSON, not an object, or has mistyped fields.

    """
    try:
        document = _decoder.decode(raw)
    except (msgspec.DecodeError, UnicodeDecodeError) as exc:
        raise MalformedInputError.invalid_json() from exc

    if not isinstance(document, dict):
        raise MalformedInputError.not_an_object()

    dialect = classify_document(document)
    kind = _declared_kind(document)
    if kind is not None:
        return IgnoredEvent(dialect=dialect, kind=kind)

    try:
        return msgspec.convert(document, type=_DIALECT_TYPES[dialect])
    except msgspec.ValidationError as exc:
        raise MalformedInputError.invalid_shape(str(exc)) from exc


def _kind_of(tag: str | None, deployment: DeploymentObject) -> tuple[str, str]:
    """Return ``(kind, matched_by)`` for an event.

    An explicit ``type`` tag always decides.  Untagged events fall back to the
    deployment state, which some senders set to ``READY`` or to the
    ``deployment.ready`` kind itself.
    """
    if tag:
        return (tag.strip(), "type")
    state = _first_text((deployment.state, deployment.ready_state))
    if state is not None and state.lower() in _READY_STATES:
        return (READY_KIND, "state")
    return (f"state:{state}" if state else "", "state")


def _preview_url(
    deployment: DeploymentObject, outer: EnvelopePayload | None
) -> str | None:
    sources: list[DeploymentObject | EnvelopePayload] = [deployment]
    if outer is not None:
        sources.append(outer)
    return _first_text(
        [source.url for source in sources]
        + [source.preview_url for source in sources]
        + [source.target_url for source in sources]
        + [_first_alias(source.alias) for source in sources]
    )


def _ref(deployment: DeploymentObject) -> str | None:
    return _first_text((_meta_value(deployment.meta, _REF_META_KEYS), deployment.ref))


def _project(deployment: DeploymentObject, outer: EnvelopePayload | None) -> str:
    outer_project = outer.project if outer is not None else None
    outer_name = outer.name if outer is not None else None
    flat_project = deployment.project if isinstance(deployment.project, str) else None
    outer_string = outer_project if isinstance(outer_project, str) else None
    return (
        _first_text(
            (
                _project_name(deployment.project),
                _project_name(outer_project),
                deployment.name,
                outer_name,
                outer_string,
                flat_project,
            )
        )
        or ""
    )


def _unpack(
    event: DeploymentEvent,
) -> tuple[EventDialect, str | None, DeploymentObject, EnvelopePayload | None]:
    match event:
        case EnvelopeEvent(type=tag, payload=payload):
            return (EventDialect.ENVELOPE, tag, payload.deployment, payload)
        case LegacyEnvelopeEvent(type=tag, payload=deployment):
            return (EventDialect.LEGACY_ENVELOPE, tag, deployment, None)
        case FlatDeploymentEvent(type=tag):
            return (EventDialect.FLAT, tag, event, None)
        case _:
            typ.assert_never(event)


def normalize_event(event: ParsedEvent) -> NormalizedEvent:
    """Extract canonical fields, or classify the event as ignored.

    Events already ignored while parsing are returned unchanged.

    Returns
    -------
    ReadyDeployment | IgnoredEvent
        ``IgnoredEvent`` when the kind is not a ready deployment.

    Raises
    ------
    ValidationFailureError
        If a ready deployment lacks a preview address or a ref.

    """
    if isinstance(event, IgnoredEvent):
        return event
    dialect, tag, deployment, outer = _unpack(event)
    kind, matched_by = _kind_of(tag, deployment)
    if kind not in READY_KINDS:
        return IgnoredEvent(dialect=dialect, kind=kind)

    preview_url = _preview_url(deployment, outer)
    if preview_url is None:
        raise ValidationFailureError.missing_field("url")
    ref = _ref(deployment)
    if ref is None:
        raise ValidationFailureError.missing_field("ref")

    deployment_id = deployment.id
    return ReadyDeployment(
        dialect=dialect,
        kind=kind,
        matched_by=matched_by,
        preview_url=preview_url,
        ref=ref,
        project=_project(deployment, outer),
        known_commit=_meta_value(deployment.meta, _COMMIT_META_KEYS),
        deployment_id=str(deployment_id) if deployment_id is not None else None,
    )
