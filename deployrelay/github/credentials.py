"""Forge credential providers.

The relay depends only on ``ForgeCredentialProvider.token()``.  Two
implementations exist: a static token, and an installable-app identity that
mints a scoped installation token for each request.
"""

from __future__ import annotations

import collections.abc as cabc
import time
import typing as typ
from urllib.parse import quote

import jwt

from deployrelay.errors import ConfigMissingError

from .client import send_github_request
from .errors import GitHubAPIError, GitHubAppAuthError, GitHubConfigError

if typ.TYPE_CHECKING:
    import httpx

    from deployrelay.config import AppCredentials, RelaySettings, RepositoryRef

__all__ = [
    "AppInstallationTokenProvider",
    "ForgeCredentialProvider",
    "StaticTokenProvider",
    "build_credential_provider",
]

# Issued-at is backdated to tolerate clock drift; GitHub caps expiry at 10 min
_JWT_BACKDATE_S = 60
_JWT_LIFETIME_S = 10 * 60

_MISSING_CREDENTIAL_NAMES = (
    "RELAY_GITHUB_TOKEN",
    "RELAY_GITHUB_APP_ID",
    "RELAY_GITHUB_APP_PRIVATE_KEY",
)


def _json_field(response: httpx.Response, key: str) -> object:
    try:
        data = response.json()
    except ValueError:
        return None
    return data.get(key) if isinstance(data, dict) else None


@typ.runtime_checkable
class ForgeCredentialProvider(typ.Protocol):
    """Capability returning a bearer token for forge calls."""

    async def token(self) -> str:
        """Return a bearer token valid for the current request."""
        ...


class StaticTokenProvider:
    """Provider returning a pre-configured long-lived token."""

    def __init__(self, token: str) -> None:
        """Initialise with a non-empty token."""
        if not token.strip():
            raise GitHubConfigError.empty_token()
        self._token = token.strip()

    async def token(self) -> str:
        """Return the configured token."""
        return self._token


class AppInstallationTokenProvider:
    """Provider minting an installation token from an app identity.

    Parameters
    ----------
    app
        App id, private key and optional installation id.
    repository
        Repository used to discover the installation when no id is configured.
    http_client
        Client used for the app-authenticated calls.
    api_url
        Base URL of the forge REST API.
    user_agent
        ``User-Agent`` header value.
    clock
        Source of the current UNIX time, injectable for tests.

    """

    def __init__(  # noqa: PLR0913
        self,
        app: AppCredentials,
        repository: RepositoryRef,
        *,
        http_client: httpx.AsyncClient,
        api_url: str = "https://api.github.com",
        user_agent: str = "deploy-relay",
        clock: cabc.Callable[[], float] = time.time,
    ) -> None:
        """Initialise the provider."""
        self._app = app
        self._repository = repository
        self._client = http_client
        self._api_url = api_url
        self._user_agent = user_agent
        self._clock = clock

    def app_jwt(self) -> str:
        """Return an RS256 JWT identifying the app.

        Raises
        ------
        GitHubConfigError
            If the private key cannot sign the token.

        """
        now = int(self._clock())
        payload = {
            "iat": now - _JWT_BACKDATE_S,
            "exp": now + _JWT_LIFETIME_S,
            "iss": self._app.app_id,
        }
        try:
            return jwt.encode(payload, self._app.private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise GitHubConfigError.invalid_private_key() from exc

    async def _installation_id(self, app_jwt: str) -> str:
        if self._app.installation_id:
            return self._app.installation_id
        url = (
            f"{self._api_url}/repos/{quote(self._repository.owner, safe='')}/"
            f"{quote(self._repository.name, safe='')}/installation"
        )
        try:
            response = await send_github_request(
                self._client,
                "GET",
                url,
                token=app_jwt,
                user_agent=self._user_agent,
            )
        except GitHubAPIError as exc:
            raise GitHubAppAuthError.from_api_error("installation lookup", exc) from exc
        installation_id = _json_field(response, "id")
        if installation_id is None:
            raise GitHubAppAuthError("GitHub App installation response missing 'id'")
        return str(installation_id)

    async def token(self) -> str:
        """Mint and return an installation access token.

        Raises
        ------
        GitHubAppAuthError
            If the installation lookup or the token exchange fails.

        """
        app_jwt = self.app_jwt()
        installation_id = await self._installation_id(app_jwt)
        url = (
            f"{self._api_url}/app/installations/"
            f"{quote(installation_id, safe='')}/access_tokens"
        )
        try:
            response = await send_github_request(
                self._client,
                "POST",
                url,
                token=app_jwt,
                user_agent=self._user_agent,
            )
        except GitHubAPIError as exc:
            raise GitHubAppAuthError.from_api_error("token exchange", exc) from exc
        token = _json_field(response, "token")
        if not isinstance(token, str) or not token:
            raise GitHubAppAuthError.missing_token()
        return token


def build_credential_provider(
    settings: RelaySettings,
    repository: RepositoryRef,
    *,
    http_client: httpx.AsyncClient,
) -> ForgeCredentialProvider:
    """Return the provider for the configured credential.

    App credentials take precedence over a static token.

    Raises
    ------
    ConfigMissingError
        If neither credential is configured.

    """
    if settings.app is not None:
        return AppInstallationTokenProvider(
            settings.app,
            repository,
            http_client=http_client,
            api_url=settings.api_url,
        )
    if settings.token:
        return StaticTokenProvider(settings.token)
    raise ConfigMissingError(_MISSING_CREDENTIAL_NAMES)
