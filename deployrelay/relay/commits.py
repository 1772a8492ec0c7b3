"""Resolve the commit a deployment ref points at.

Resolution stops at the first success: a commit id already present in the
event metadata, then the forge's commit-by-ref lookup, then the branch head.
The check run must anchor to a real commit, so exhausting all three is fatal.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from deployrelay.errors import UnresolvableRefError
from deployrelay.github.errors import GitHubAPIError, GitHubResponseShapeError

__all__ = ["CommitLookup", "CommitResolver", "CommitSource", "ResolvedCommit"]


class CommitSource(enum.StrEnum):
    """Where a resolved commit id came from."""

    EVENT_METADATA = "event-metadata"
    COMMIT_LOOKUP = "commit-lookup"
    BRANCH_HEAD = "branch-head"


@dataclasses.dataclass(frozen=True, slots=True)
class ResolvedCommit:
    """A definitive commit id and the strategy that produced it."""

    sha: str
    source: CommitSource


class CommitLookup(typ.Protocol):
    """Forge lookups used to resolve a ref."""

    async def get_commit_sha(self, ref: str) -> str:
        """Return the commit matching a branch name or commit id."""
        ...

    async def get_branch_head_sha(self, branch: str) -> str:
        """Return the head commit of a branch."""
        ...


class CommitResolver:
    """Produce a single commit id for a ref."""

    def __init__(self, lookup: CommitLookup) -> None:
        """Initialise with the forge lookups."""
        self._lookup = lookup

    async def resolve(self, ref: str, known_commit: str | None = None) -> ResolvedCommit:
        """Return the commit for ``ref``.

        Parameters
        ----------
        ref
            Branch name or commit id from the event.
        known_commit
            Commit id from event metadata; when present no lookup is issued.

        Raises
        ------
        UnresolvableRefError
            If both forge lookups fail.

        """
        if known_commit:
            return ResolvedCommit(sha=known_commit, source=CommitSource.EVENT_METADATA)

        try:
            sha = await self._lookup.get_commit_sha(ref)
        except (GitHubAPIError, GitHubResponseShapeError):
            pass
        else:
            return ResolvedCommit(sha=sha, source=CommitSource.COMMIT_LOOKUP)

        try:
            sha = await self._lookup.get_branch_head_sha(ref)
        except (GitHubAPIError, GitHubResponseShapeError) as exc:
            raise UnresolvableRefError(ref, str(exc)) from exc
        return ResolvedCommit(sha=sha, source=CommitSource.BRANCH_HEAD)
