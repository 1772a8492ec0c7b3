"""Deployment event dialects and their normalisation."""

from __future__ import annotations

from .models import (
    DeploymentEvent,
    EventDialect,
    IgnoredEvent,
    NormalizedEvent,
    ParsedEvent,
    ReadyDeployment,
)
from .normalizer import READY_KINDS, classify_document, normalize_event, parse_event

__all__ = [
    "READY_KINDS",
    "DeploymentEvent",
    "EventDialect",
    "IgnoredEvent",
    "NormalizedEvent",
    "ParsedEvent",
    "ReadyDeployment",
    "classify_document",
    "normalize_event",
    "parse_event",
]
