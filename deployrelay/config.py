"""Configuration for the deployment relay.

Secrets are optional at construction so the service can start and report a
``500`` per request when the operator has not supplied them.  Values that are
present but unparsable fail at startup instead.
"""

from __future__ import annotations

import dataclasses
import os

from deployrelay.errors import ConfigMissingError, RelayConfigError

# Default configuration values - single source of truth
_DEFAULT_WORKFLOW_FILE = "e2e.yaml"
_DEFAULT_CHECK_NAME_PREFIX = "E2E Tests — "
_DEFAULT_CHECK_FAILURE_TITLE = "E2E Tests (relay error)"
_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 10.0
_DEFAULT_SIGNATURE_HEADER = "x-vercel-signature"


def _env(*names: str) -> str | None:
    """Return the first non-blank value among ``names``."""
    for name in names:
        value = os.environ.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def normalize_private_key(raw: str) -> str:
    """Replace escaped newline sequences in a PEM key with real newlines."""
    return raw.replace("\\n", "\n").strip() + "\n"


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Owner/name pair identifying the forge repository."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        """Return the ``owner/name`` slug."""
        return f"{self.owner}/{self.name}"


@dataclasses.dataclass(frozen=True, slots=True)
class AppCredentials:
    """Installable-app identity used to mint installation tokens."""

    app_id: str
    private_key: str
    installation_id: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class RelaySettings:
    """Settings passed into the relay pipeline at construction.

    Attributes
    ----------
    webhook_secret
        Shared secret used to verify inbound signatures.
    owner, repo
        Forge repository receiving check runs and workflow dispatches.
    token
        Static forge token.
    app
        App identity; preferred over ``token`` when both are configured.
    workflow_file
        Filename of the workflow triggered via ``workflow_dispatch``.
    check_name_prefix
        Fixed prefix of the check-run name; the project name is appended.
    check_failure_title
        Output title recorded when the relay fails a check run.
    api_url
        Base URL of the forge REST API.
    timeout_s
        Bound applied to every outbound forge call.
    signature_header
        Request header carrying the body signature.

    """

    webhook_secret: str | None = None
    owner: str | None = None
    repo: str | None = None
    token: str | None = None
    app: AppCredentials | None = None
    workflow_file: str = _DEFAULT_WORKFLOW_FILE
    check_name_prefix: str = _DEFAULT_CHECK_NAME_PREFIX
    check_failure_title: str = _DEFAULT_CHECK_FAILURE_TITLE
    api_url: str = _DEFAULT_API_URL
    timeout_s: float = _DEFAULT_TIMEOUT_S
    signature_header: str = _DEFAULT_SIGNATURE_HEADER

    @staticmethod
    def _parse_timeout_from_env() -> float:
        """Parse and validate ``RELAY_HTTP_TIMEOUT_S``.

        Raises
        ------
        RelayConfigError
            If the value is not a positive number.

        """
        raw_timeout = os.environ.get("RELAY_HTTP_TIMEOUT_S")
        if raw_timeout is None:
            return _DEFAULT_TIMEOUT_S

        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise RelayConfigError.invalid_value(
                "RELAY_HTTP_TIMEOUT_S", raw_timeout, "Must be a positive number"
            ) from exc

        if timeout <= 0:
            raise RelayConfigError.invalid_value(
                "RELAY_HTTP_TIMEOUT_S", raw_timeout, "Must be a positive number"
            )
        return timeout

    @staticmethod
    def _app_from_env() -> AppCredentials | None:
        app_id = _env("RELAY_GITHUB_APP_ID", "GH_APP_ID")
        private_key = _env("RELAY_GITHUB_APP_PRIVATE_KEY", "GH_APP_PRIVATE_KEY")
        if app_id is None or private_key is None:
            return None
        return AppCredentials(
            app_id=app_id,
            private_key=normalize_private_key(private_key),
            installation_id=_env(
                "RELAY_GITHUB_APP_INSTALLATION_ID", "GH_APP_INSTALLATION_ID"
            ),
        )

    @classmethod
    def from_env(cls) -> RelaySettings:
        """Build settings from environment variables.

        Reads the following environment variables (legacy names in brackets):

        - ``RELAY_WEBHOOK_SECRET`` [``VERCEL_WEBHOOK_SECRET``]
        - ``RELAY_GITHUB_OWNER`` [``GH_OWNER``], ``RELAY_GITHUB_REPO`` [``GH_REPO``]
        - ``RELAY_GITHUB_TOKEN`` [``GH_TOKEN_RELAY``]
        - ``RELAY_GITHUB_APP_ID``, ``RELAY_GITHUB_APP_PRIVATE_KEY`` and
          optionally ``RELAY_GITHUB_APP_INSTALLATION_ID``
        - ``RELAY_WORKFLOW_FILE``, ``RELAY_CHECK_NAME_PREFIX``,
          ``RELAY_CHECK_FAILURE_TITLE``
        - ``RELAY_GITHUB_API_URL``, ``RELAY_HTTP_TIMEOUT_S``,
          ``RELAY_SIGNATURE_HEADER``

        Raises
        ------
        RelayConfigError
            If a numeric value cannot be parsed.

        """
        return cls(
            webhook_secret=_env("RELAY_WEBHOOK_SECRET", "VERCEL_WEBHOOK_SECRET"),
            owner=_env("RELAY_GITHUB_OWNER", "GH_OWNER"),
            repo=_env("RELAY_GITHUB_REPO", "GH_REPO"),
            token=_env("RELAY_GITHUB_TOKEN", "GH_TOKEN_RELAY"),
            app=cls._app_from_env(),
            workflow_file=_env("RELAY_WORKFLOW_FILE") or _DEFAULT_WORKFLOW_FILE,
            check_name_prefix=os.environ.get(
                "RELAY_CHECK_NAME_PREFIX", _DEFAULT_CHECK_NAME_PREFIX
            ),
            check_failure_title=_env("RELAY_CHECK_FAILURE_TITLE")
            or _DEFAULT_CHECK_FAILURE_TITLE,
            api_url=(_env("RELAY_GITHUB_API_URL") or _DEFAULT_API_URL).rstrip("/"),
            timeout_s=cls._parse_timeout_from_env(),
            signature_header=_env("RELAY_SIGNATURE_HEADER")
            or _DEFAULT_SIGNATURE_HEADER,
        )

    @property
    def has_forge_credentials(self) -> bool:
        """Return True when a repository and some credential are configured."""
        return (
            self.owner is not None
            and self.repo is not None
            and (self.token is not None or self.app is not None)
        )

    def require_secret(self) -> str:
        """Return the webhook secret or raise ``ConfigMissingError``."""
        if not self.webhook_secret:
            raise ConfigMissingError(["RELAY_WEBHOOK_SECRET"])
        return self.webhook_secret

    def require_repository(self) -> RepositoryRef:
        """Return the forge repository or raise ``ConfigMissingError``."""
        missing = [
            name
            for name, value in (
                ("RELAY_GITHUB_OWNER", self.owner),
                ("RELAY_GITHUB_REPO", self.repo),
            )
            if not value
        ]
        if missing:
            raise ConfigMissingError(missing)
        return RepositoryRef(owner=str(self.owner), name=str(self.repo))
