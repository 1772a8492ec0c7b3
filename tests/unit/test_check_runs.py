"""Unit tests for the relay check-run lifecycle and best-effort helper."""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

import pytest

from deployrelay.errors import CheckRunCreateError
from deployrelay.github.errors import GitHubAPIError, GitHubResponseShapeError
from deployrelay.relay import CheckRunManager, best_effort

_FIXED_NOW = dt.datetime(2026, 3, 4, 5, 6, 7, 890_000, tzinfo=dt.UTC)


@dataclasses.dataclass(slots=True)
class _StubCheckRuns:
    create_error: Exception | None = None
    complete_error: Exception | None = None
    created: list[dict[str, typ.Any]] = dataclasses.field(default_factory=list)
    completed: list[dict[str, typ.Any]] = dataclasses.field(default_factory=list)

    async def create_check_run(self, *, name: str, head_sha: str, started_at: str) -> int:
        if self.create_error is not None:
            raise self.create_error
        self.created.append(
            {"name": name, "head_sha": head_sha, "started_at": started_at}
        )
        return 99

    async def complete_check_run(  # noqa: PLR0913
        self,
        check_run_id: int | str,
        *,
        conclusion: str,
        completed_at: str,
        title: str,
        summary: str,
    ) -> None:
        if self.complete_error is not None:
            raise self.complete_error
        self.completed.append(
            {
                "check_run_id": check_run_id,
                "conclusion": conclusion,
                "completed_at": completed_at,
                "title": title,
                "summary": summary,
            }
        )


def _manager(client: _StubCheckRuns) -> CheckRunManager:
    return CheckRunManager(
        client,
        name_prefix="E2E Tests — ",
        failure_title="E2E Tests (relay error)",
        clock=lambda: _FIXED_NOW,
    )


class TestCheckRunManager:
    """Creation and failure of check runs."""

    def test_check_name_appends_project(self) -> None:
        """The run name is the fixed prefix followed by the project."""
        assert _manager(_StubCheckRuns()).check_name("dashboard") == (
            "E2E Tests — dashboard"
        )

    @pytest.mark.asyncio
    async def test_create_returns_string_id(self) -> None:
        """Creation anchors to the commit and stamps a UTC start time."""
        client = _StubCheckRuns()

        check_run_id = await _manager(client).create("a" * 40, "dashboard")

        assert check_run_id == "99"
        assert client.created == [
            {
                "name": "E2E Tests — dashboard",
                "head_sha": "a" * 40,
                "started_at": "2026-03-04T05:06:07Z",
            }
        ]

    @pytest.mark.parametrize(
        "failure",
        [
            GitHubAPIError.http_error(403, "Resource not accessible by integration"),
            GitHubResponseShapeError.missing("id"),
        ],
    )
    @pytest.mark.asyncio
    async def test_create_failure_is_wrapped(self, failure: Exception) -> None:
        """Forge failures during creation become CheckRunCreateError."""
        client = _StubCheckRuns(create_error=failure)

        with pytest.raises(CheckRunCreateError, match="Failed to create check run"):
            await _manager(client).create("a" * 40, "dashboard")

    @pytest.mark.asyncio
    async def test_mark_failed_completes_with_failure(self) -> None:
        """Failing a run records the conclusion, title and summary."""
        client = _StubCheckRuns()

        await _manager(client).mark_failed("99", "workflow_dispatch failed: 422 x")

        assert client.completed == [
            {
                "check_run_id": "99",
                "conclusion": "failure",
                "completed_at": "2026-03-04T05:06:07Z",
                "title": "E2E Tests (relay error)",
                "summary": "workflow_dispatch failed: 422 x",
            }
        ]

    @pytest.mark.asyncio
    async def test_mark_failed_propagates_errors(self) -> None:
        """The manager itself does not swallow completion failures."""
        client = _StubCheckRuns(complete_error=GitHubAPIError.http_error(500, ""))

        with pytest.raises(GitHubAPIError):
            await _manager(client).mark_failed("99", "summary")


class TestBestEffort:
    """Tests for best_effort."""

    @pytest.mark.asyncio
    async def test_success_returns_true(self) -> None:
        """A completed operation reports success and no error."""
        errors: list[tuple[str, Exception]] = []

        async def _ok() -> None:
            return None

        ok = await best_effort(
            _ok(),
            description="noop",
            on_error=lambda desc, exc: errors.append((desc, exc)),
        )

        assert ok is True
        assert errors == []

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self) -> None:
        """A failing operation is reported to the callback and discarded."""
        errors: list[tuple[str, Exception]] = []
        boom = GitHubAPIError.http_error(502, "bad gateway")

        async def _fail() -> None:
            raise boom

        ok = await best_effort(
            _fail(),
            description="mark check run 99 failed",
            on_error=lambda desc, exc: errors.append((desc, exc)),
        )

        assert ok is False
        assert errors == [("mark check run 99 failed", boom)]
