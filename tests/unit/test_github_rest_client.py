"""Unit tests for the GitHub REST client."""

from __future__ import annotations

import json
import secrets
import typing as typ

import httpx
import pytest

from deployrelay.config import RepositoryRef
from deployrelay.github import (
    GitHubRestClient,
    GitHubRestConfig,
    StaticTokenProvider,
)
from deployrelay.github.errors import GitHubAPIError, GitHubResponseShapeError
from tests.helpers.forge_fakes import (
    BRANCH_SHA,
    CHECK_RUN_ID,
    COMMIT_SHA,
    FakeGitHub,
)

_TOKEN = secrets.token_hex(8)
_API = "https://api.github.test"


def _make_client(
    transport: httpx.AsyncBaseTransport,
) -> tuple[GitHubRestClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=transport)
    client = GitHubRestClient(
        GitHubRestConfig(repository=RepositoryRef("octo", "reef"), api_url=_API),
        StaticTokenProvider(_TOKEN),
        http_client=http_client,
    )
    return client, http_client


class _CountingProvider:
    def __init__(self) -> None:
        self.calls = 0

    async def token(self) -> str:
        self.calls += 1
        return f"token-{self.calls}"


@pytest.mark.asyncio
async def test_get_commit_sha_sends_standard_headers() -> None:
    """Commit lookups carry bearer auth and the pinned API version."""
    captured: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"sha": COMMIT_SHA})

    client, http_client = _make_client(httpx.MockTransport(_handler))
    async with http_client:
        sha = await client.get_commit_sha("main")

    assert sha == COMMIT_SHA
    request = captured[0]
    assert str(request.url) == f"{_API}/repos/octo/reef/commits/main"
    assert request.headers["Authorization"] == f"Bearer {_TOKEN}"
    assert request.headers["Accept"] == "application/vnd.github+json"
    assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"
    assert request.headers["User-Agent"] == "deploy-relay"


@pytest.mark.asyncio
async def test_refs_with_slashes_are_escaped_per_endpoint() -> None:
    """Commit lookups escape slashes; branch lookups keep them as path parts."""
    fake = FakeGitHub()
    client, http_client = _make_client(fake.transport)
    async with http_client:
        await client.get_commit_sha("feature/login")
        branch_sha = await client.get_branch_head_sha("feature/login")

    assert branch_sha == BRANCH_SHA
    commit_call, branch_call = fake.calls
    assert commit_call.path == "/repos/octo/reef/commits/feature%2Flogin"
    assert branch_call.path == "/repos/octo/reef/git/ref/heads/feature/login"


@pytest.mark.asyncio
async def test_unknown_ref_raises_api_error_with_status() -> None:
    """A 422 from the commit endpoint surfaces as GitHubAPIError."""
    client, http_client = _make_client(FakeGitHub(commit_status=422).transport)
    async with http_client:
        with pytest.raises(GitHubAPIError) as excinfo:
            await client.get_commit_sha("nope")

    assert excinfo.value.status_code == 422
    assert "HTTP 422" in str(excinfo.value)


@pytest.mark.asyncio
async def test_missing_sha_raises_shape_error() -> None:
    """A success response without ``sha`` is a shape error."""

    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"commit": {}})

    client, http_client = _make_client(httpx.MockTransport(_handler))
    async with http_client:
        with pytest.raises(GitHubResponseShapeError, match="sha"):
            await client.get_commit_sha("main")


@pytest.mark.asyncio
async def test_network_failure_raises_api_error() -> None:
    """Transport failures are reported without a status code."""
    client, http_client = _make_client(FakeGitHub(raise_on=frozenset({"commit"})).transport)
    async with http_client:
        with pytest.raises(GitHubAPIError, match="network error") as excinfo:
            await client.get_commit_sha("main")

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_timeout_raises_api_error() -> None:
    """Timeouts surface as GitHubAPIError naming the request."""

    def _handler(request: httpx.Request) -> httpx.Response:
        msg = "slow"
        raise httpx.ReadTimeout(msg, request=request)

    client, http_client = _make_client(httpx.MockTransport(_handler))
    async with http_client:
        with pytest.raises(GitHubAPIError, match="timed out: GET"):
            await client.get_commit_sha("main")


@pytest.mark.asyncio
async def test_create_check_run_posts_queued_run() -> None:
    """Check runs are created queued with a start timestamp."""
    fake = FakeGitHub()
    client, http_client = _make_client(fake.transport)
    async with http_client:
        check_run_id = await client.create_check_run(
            name="E2E Tests — dashboard",
            head_sha=COMMIT_SHA,
            started_at="2026-01-02T03:04:05Z",
        )

    assert check_run_id == CHECK_RUN_ID
    (call,) = fake.calls_to("create_check_run")
    assert call.json == {
        "name": "E2E Tests — dashboard",
        "head_sha": COMMIT_SHA,
        "status": "queued",
        "started_at": "2026-01-02T03:04:05Z",
    }


@pytest.mark.asyncio
async def test_create_check_run_requires_integer_id() -> None:
    """A check-run response without a numeric id is a shape error."""

    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"id": "not-a-number"})

    client, http_client = _make_client(httpx.MockTransport(_handler))
    async with http_client:
        with pytest.raises(GitHubResponseShapeError, match="id"):
            await client.create_check_run(name="n", head_sha="s", started_at="t")


@pytest.mark.asyncio
async def test_complete_check_run_patches_output() -> None:
    """Completing a run sends status, conclusion and an output block."""
    fake = FakeGitHub()
    client, http_client = _make_client(fake.transport)
    async with http_client:
        await client.complete_check_run(
            "4242",
            conclusion="failure",
            completed_at="2026-01-02T03:04:05Z",
            title="E2E Tests (relay error)",
            summary="workflow_dispatch failed: 422 nope",
        )

    (call,) = fake.calls_to("patch_check_run")
    assert call.path == "/repos/octo/reef/check-runs/4242"
    assert call.json == {
        "status": "completed",
        "completed_at": "2026-01-02T03:04:05Z",
        "conclusion": "failure",
        "output": {
            "title": "E2E Tests (relay error)",
            "summary": "workflow_dispatch failed: 422 nope",
        },
    }


@pytest.mark.asyncio
async def test_dispatch_workflow_posts_ref_and_inputs() -> None:
    """Dispatch posts the ref and inputs to the named workflow file."""
    fake = FakeGitHub()
    client, http_client = _make_client(fake.transport)
    inputs = {"url": "https://x.example.com", "project": "p", "check_run_id": "1"}
    async with http_client:
        await client.dispatch_workflow("e2e.yaml", ref="main", inputs=inputs)

    (call,) = fake.calls_to("dispatch")
    assert call.path == "/repos/octo/reef/actions/workflows/e2e.yaml/dispatches"
    assert call.json == {"ref": "main", "inputs": inputs}


@pytest.mark.asyncio
async def test_dispatch_failure_keeps_status_and_body() -> None:
    """A rejected dispatch exposes the upstream status and body."""
    fake = FakeGitHub(dispatch_status=422)
    client, http_client = _make_client(fake.transport)
    async with http_client:
        with pytest.raises(GitHubAPIError) as excinfo:
            await client.dispatch_workflow("e2e.yaml", ref="main", inputs={})

    assert excinfo.value.status_code == 422
    assert "No ref found" in excinfo.value.body


@pytest.mark.asyncio
async def test_get_workflow_missing_raises_404() -> None:
    """Looking up an absent workflow raises with status 404."""
    client, http_client = _make_client(FakeGitHub(workflow_status=404).transport)
    async with http_client:
        with pytest.raises(GitHubAPIError) as excinfo:
            await client.get_workflow("e2e.yaml")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_token_is_fetched_once_per_client() -> None:
    """The bearer token is requested once and reused across calls."""
    provider = _CountingProvider()
    fake = FakeGitHub()
    async with httpx.AsyncClient(transport=fake.transport) as http_client:
        client = GitHubRestClient(
            GitHubRestConfig(repository=RepositoryRef("octo", "reef"), api_url=_API),
            provider,
            http_client=http_client,
        )
        await client.get_commit_sha("main")
        await client.dispatch_workflow("e2e.yaml", ref="main", inputs={})

    assert provider.calls == 1
    assert {call.authorization for call in fake.calls} == {"Bearer token-1"}


@pytest.mark.asyncio
async def test_owned_client_is_closed_on_exit() -> None:
    """A client created by GitHubRestClient is closed with it."""
    async with GitHubRestClient(
        GitHubRestConfig(repository=RepositoryRef("octo", "reef")),
        StaticTokenProvider(_TOKEN),
    ) as client:
        http_client = typ.cast("httpx.AsyncClient", client._client)  # noqa: SLF001

    assert http_client.is_closed


@pytest.mark.asyncio
async def test_injected_client_is_left_open() -> None:
    """An injected client remains usable after the REST client closes."""
    fake = FakeGitHub()
    client, http_client = _make_client(fake.transport)
    async with http_client:
        await client.aclose()
        assert not http_client.is_closed
        response = await http_client.get(f"{_API}/repos/octo/reef/commits/main")
        assert json.loads(response.content)["sha"] == COMMIT_SHA
