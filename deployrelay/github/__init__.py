"""GitHub REST client and credential providers."""

from __future__ import annotations

from .client import GitHubRestClient, GitHubRestConfig
from .credentials import (
    AppInstallationTokenProvider,
    ForgeCredentialProvider,
    StaticTokenProvider,
    build_credential_provider,
)
from .errors import (
    GitHubAPIError,
    GitHubAppAuthError,
    GitHubConfigError,
    GitHubResponseShapeError,
)

__all__ = [
    "AppInstallationTokenProvider",
    "ForgeCredentialProvider",
    "GitHubAPIError",
    "GitHubAppAuthError",
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "GitHubRestConfig",
    "StaticTokenProvider",
    "build_credential_provider",
]
