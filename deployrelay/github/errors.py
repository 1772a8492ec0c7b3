"""GitHub REST client errors."""

from __future__ import annotations

from deployrelay.errors import preview_body


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        """Initialise with a message, optional HTTP status and response body."""
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, body: str) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        preview = preview_body(body)
        return cls(
            f"GitHub HTTP {status_code} {preview}".rstrip(),
            status_code=status_code,
            body=preview,
        )

    @classmethod
    def timeout(cls, method: str, path: str) -> GitHubAPIError:
        """Return an error for requests that exceeded the configured bound."""
        return cls(f"GitHub request timed out: {method} {path}")

    @classmethod
    def network_error(cls, detail: str) -> GitHubAPIError:
        """Return an error for DNS, connection or TLS failures."""
        return cls(f"GitHub network error: {detail}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"GitHub response missing expected field: {field}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")

    @classmethod
    def invalid_private_key(cls) -> GitHubConfigError:
        """Return an error when the app private key cannot sign a JWT."""
        return cls("GitHub App private key could not be used to sign a JWT")


class GitHubAppAuthError(RuntimeError):
    """Raised when an installation token cannot be minted."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def from_api_error(cls, step: str, exc: GitHubAPIError) -> GitHubAppAuthError:
        """Wrap a failed app-authenticated request."""
        return cls(f"GitHub App {step} failed: {exc}", status_code=exc.status_code)

    @classmethod
    def missing_token(cls) -> GitHubAppAuthError:
        """Return an error when the token response carries no token."""
        return cls("GitHub App installation token response missing 'token'")
