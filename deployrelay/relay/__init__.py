"""Relay pipeline: commit resolution, check runs and workflow dispatch."""

from __future__ import annotations

from .best_effort import best_effort
from .checks import CheckRunManager
from .commits import CommitResolver, CommitSource, ResolvedCommit
from .dispatch import DispatchContext, WorkflowDispatcher, ensure_scheme
from .observability import ErrorCategory, RelayEventLogger, RelayEventType
from .pipeline import RelayOutcome, RelayPipeline, RelayResult

__all__ = [
    "CheckRunManager",
    "CommitResolver",
    "CommitSource",
    "DispatchContext",
    "ErrorCategory",
    "RelayEventLogger",
    "RelayEventType",
    "RelayOutcome",
    "RelayPipeline",
    "RelayResult",
    "ResolvedCommit",
    "WorkflowDispatcher",
    "best_effort",
    "ensure_scheme",
]
