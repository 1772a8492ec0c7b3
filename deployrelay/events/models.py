"""Typed shapes of the deployment event dialects.

Three envelope dialects have been sent by the hosting platform over time:

``envelope``
    ``{"type": ..., "payload": {"deployment": {...}, "project": {...}}}``
``legacy-envelope``
    ``{"type": ..., "payload": {<deployment fields>}}``
``flat``
    The deployment object itself at the top level, optionally with ``type``.

Unknown keys are ignored by decoding; only the fields the relay reads are
declared.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import msgspec


class EventDialect(enum.StrEnum):
    """Envelope dialects recognised by the normaliser."""

    ENVELOPE = "envelope"
    LEGACY_ENVELOPE = "legacy-envelope"
    FLAT = "flat"


class ProjectInfo(msgspec.Struct, kw_only=True):
    """Project reference embedded in deployment events."""

    id: str | None = None
    name: str | None = None


class DeploymentObject(msgspec.Struct, kw_only=True, rename="camel"):
    """Deployment fields shared by every dialect.

    Attributes
    ----------
    url
        Deployment hostname or absolute URL.
    preview_url, target_url, alias
        Alternative address fields used by some senders.
    name
        Project name used in the deployment URL.
    ref
        Git ref reported directly on the deployment.
    meta
        Arbitrary key/value metadata provided at deploy time, including the
        source-control commit ref and sha.
    state, ready_state
        Deployment state, e.g. ``READY`` or ``ERROR``.

    """

    id: str | int | None = None
    url: str | None = None
    preview_url: str | None = None
    target_url: str | None = None
    alias: list[str] | str | None = None
    name: str | None = None
    ref: str | None = None
    meta: dict[str, typ.Any] | None = None
    state: str | None = None
    ready_state: str | None = None
    project: ProjectInfo | str | None = None


class FlatDeploymentEvent(DeploymentObject, kw_only=True):
    """Deployment object delivered without an envelope."""

    type: str | None = None


class EnvelopePayload(msgspec.Struct, kw_only=True, rename="camel"):
    """Payload of the current envelope dialect."""

    deployment: DeploymentObject
    url: str | None = None
    preview_url: str | None = None
    target_url: str | None = None
    alias: list[str] | str | None = None
    name: str | None = None
    project: ProjectInfo | str | None = None
    target: str | None = None


class EnvelopeEvent(msgspec.Struct, kw_only=True, rename="camel"):
    """``{type, payload: {deployment}}`` envelope."""

    payload: EnvelopePayload
    type: str | None = None
    id: str | None = None
    created_at: int | None = None


class LegacyEnvelopeEvent(msgspec.Struct, kw_only=True, rename="camel"):
    """``{type, payload}`` envelope whose payload is the deployment itself."""

    payload: DeploymentObject
    type: str | None = None
    id: str | None = None
    created_at: int | None = None


DeploymentEvent: typ.TypeAlias = EnvelopeEvent | LegacyEnvelopeEvent | FlatDeploymentEvent


@dataclasses.dataclass(frozen=True, slots=True)
class ReadyDeployment:
    """Canonical fields extracted from a ready-deployment event.

    Attributes
    ----------
    dialect
        Envelope dialect the event arrived in.
    kind
        Canonical kind tag of the event.
    matched_by
        Which rule recognised the event as ready, e.g. ``type`` or ``state``.
    preview_url
        Preview address as sent; may lack a scheme.
    ref
        Branch name or commit identifier.
    project
        Project name, empty when the event carried none.
    known_commit
        Commit id taken from metadata, when present.
    deployment_id
        Platform deployment identifier, when present.

    """

    dialect: EventDialect
    kind: str
    matched_by: str
    preview_url: str
    ref: str
    project: str
    known_commit: str | None = None
    deployment_id: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class IgnoredEvent:
    """An event that is well formed but not a ready deployment."""

    dialect: EventDialect
    kind: str


NormalizedEvent: typ.TypeAlias = ReadyDeployment | IgnoredEvent

ParsedEvent: typ.TypeAlias = DeploymentEvent | IgnoredEvent
