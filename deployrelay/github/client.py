"""GitHub REST client for the calls the relay drives.

One client is built per inbound request.  Every call carries the configured
timeout and a bearer token from the injected credential provider; the token is
fetched once and reused for the rest of the request.
"""

from __future__ import annotations

import dataclasses
import typing as typ
from urllib.parse import quote

import httpx

from .errors import GitHubAPIError, GitHubResponseShapeError

if typ.TYPE_CHECKING:
    from deployrelay.config import RepositoryRef

    from .credentials import ForgeCredentialProvider

__all__ = [
    "GitHubRestClient",
    "GitHubRestConfig",
    "github_headers",
    "send_github_request",
]

_API_VERSION = "2022-11-28"


def github_headers(token: str, user_agent: str) -> dict[str, str]:
    """Return the standard headers for an authenticated GitHub call."""
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": _API_VERSION,
        "User-Agent": user_agent,
    }


async def send_github_request(  # noqa: PLR0913
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    token: str,
    user_agent: str,
    json: dict[str, object] | None = None,
) -> httpx.Response:
    """Send one request and raise ``GitHubAPIError`` unless it succeeded.

    Raises
    ------
    GitHubAPIError
        On timeouts, network failures and non-2xx responses.

    """
    try:
        response = await client.request(
            method,
            url,
            json=json,
            headers=github_headers(token, user_agent),
        )
    except httpx.TimeoutException as exc:
        raise GitHubAPIError.timeout(method, url) from exc
    except httpx.RequestError as exc:
        raise GitHubAPIError.network_error(str(exc)) from exc

    if not response.is_success:
        raise GitHubAPIError.http_error(response.status_code, response.text)
    return response


def _json_object(response: httpx.Response, *, field: str) -> dict[str, typ.Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise GitHubResponseShapeError.missing(field) from exc
    if not isinstance(data, dict):
        raise GitHubResponseShapeError.missing(field)
    return data


def _string_at(data: dict[str, typ.Any], *path: str) -> str:
    current: object = data
    for key in path:
        if not isinstance(current, dict):
            raise GitHubResponseShapeError.missing(".".join(path))
        current = typ.cast("dict[str, object]", current).get(key)
    if not isinstance(current, str) or not current:
        raise GitHubResponseShapeError.missing(".".join(path))
    return current


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST client."""

    repository: RepositoryRef
    api_url: str = "https://api.github.com"
    timeout_s: float = 10.0
    user_agent: str = "deploy-relay"


class GitHubRestClient:
    """Minimal async GitHub REST client scoped to one repository.

    Parameters
    ----------
    config
        Repository, endpoint and timeout settings.
    credentials
        Provider of the bearer token used for every call.
    http_client
        Optional ``httpx.AsyncClient``; when omitted the instance creates and
        owns one bound by ``config.timeout_s``.

    """

    def __init__(
        self,
        config: GitHubRestConfig,
        credentials: ForgeCredentialProvider,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client for one repository."""
        self._config = config
        self._credentials = credentials
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            follow_redirects=True,
        )
        self._token: str | None = None

    @property
    def config(self) -> GitHubRestConfig:
        """Read-only access to the client configuration."""
        return self._config

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GitHubRestClient:
        """Return the client for use as an async context manager."""
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        """Close owned resources on exit."""
        await self.aclose()

    def _repo_url(self, suffix: str) -> str:
        repo = self._config.repository
        return (
            f"{self._config.api_url}/repos/"
            f"{quote(repo.owner, safe='')}/{quote(repo.name, safe='')}{suffix}"
        )

    async def _bearer(self) -> str:
        if self._token is None:
            self._token = await self._credentials.token()
        return self._token

    async def _request(
        self,
        method: str,
        suffix: str,
        *,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        return await send_github_request(
            self._client,
            method,
            self._repo_url(suffix),
            token=await self._bearer(),
            user_agent=self._config.user_agent,
            json=json,
        )

    async def get_commit_sha(self, ref: str) -> str:
        """Return the commit sha for a branch name or commit id.

        Raises
        ------
        GitHubAPIError
            If the lookup fails, including unknown refs.
        GitHubResponseShapeError
            If the response carries no ``sha``.

        """
        response = await self._request("GET", f"/commits/{quote(ref, safe='')}")
        return _string_at(_json_object(response, field="sha"), "sha")

    async def get_branch_head_sha(self, branch: str) -> str:
        """Return the head commit sha of ``refs/heads/<branch>``."""
        response = await self._request(
            "GET", f"/git/ref/heads/{quote(branch, safe='/')}"
        )
        return _string_at(_json_object(response, field="object"), "object", "sha")

    async def create_check_run(
        self,
        *,
        name: str,
        head_sha: str,
        started_at: str,
    ) -> int:
        """Create a queued check run and return its id."""
        response = await self._request(
            "POST",
            "/check-runs",
            json={
                "name": name,
                "head_sha": head_sha,
                "status": "queued",
                "started_at": started_at,
            },
        )
        check_run_id = _json_object(response, field="id").get("id")
        if not isinstance(check_run_id, int) or isinstance(check_run_id, bool):
            raise GitHubResponseShapeError.missing("id")
        return check_run_id

    async def complete_check_run(  # noqa: PLR0913
        self,
        check_run_id: int | str,
        *,
        conclusion: str,
        completed_at: str,
        title: str,
        summary: str,
    ) -> None:
        """Mark a check run completed with ``conclusion`` and an output summary."""
        await self._request(
            "PATCH",
            f"/check-runs/{quote(str(check_run_id), safe='')}",
            json={
                "status": "completed",
                "completed_at": completed_at,
                "conclusion": conclusion,
                "output": {"title": title, "summary": summary},
            },
        )

    async def dispatch_workflow(
        self,
        workflow_file: str,
        *,
        ref: str,
        inputs: dict[str, str],
    ) -> None:
        """Trigger ``workflow_dispatch`` for ``workflow_file`` on ``ref``."""
        await self._request(
            "POST",
            f"/actions/workflows/{quote(workflow_file, safe='')}/dispatches",
            json={"ref": ref, "inputs": dict(inputs)},
        )

    async def get_workflow(self, workflow_file: str) -> dict[str, typ.Any]:
        """Return workflow metadata; raises ``GitHubAPIError`` when absent."""
        response = await self._request(
            "GET", f"/actions/workflows/{quote(workflow_file, safe='')}"
        )
        return _json_object(response, field="workflow")
