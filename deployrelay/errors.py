"""Failure taxonomy for one relay request.

Every exception here is terminal for the request that raised it.  The API
layer maps each class onto an HTTP status; ignored events are not errors and
do not appear here.

Usage
-----
Raise the specific failure and let the Falcon handlers translate it::

    from deployrelay.errors import ValidationFailureError

    raise ValidationFailureError.missing_field("url")

"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = [
    "CheckRunCreateError",
    "ConfigInvalidError",
    "ConfigMissingError",
    "DispatchFailureError",
    "ForgeAuthError",
    "MalformedInputError",
    "RelayConfigError",
    "RelayError",
    "SignatureRejectedError",
    "UnresolvableRefError",
    "ValidationFailureError",
]

# Upstream response bodies are truncated to this many characters in messages
_BODY_PREVIEW_LIMIT = 500


def preview_body(body: str) -> str:
    """Return ``body`` truncated for inclusion in diagnostics."""
    text = body.strip()
    if len(text) > _BODY_PREVIEW_LIMIT:
        return text[:_BODY_PREVIEW_LIMIT] + "..."
    return text


class RelayError(Exception):
    """Base class for request-terminating relay failures.

    Attributes
    ----------
    title
        Short, stable summary used as the response title.

    """

    title = "Relay failure"


class SignatureRejectedError(RelayError):
    """Raised when the request signature is missing or does not match.

    The message is identical whichever side was at fault so responses never
    reveal whether the secret or the token caused the rejection.
    """

    title = "Unauthorized"

    def __init__(self) -> None:
        """Initialise with the fixed rejection message."""
        super().__init__("Invalid signature")


class MalformedInputError(RelayError):
    """Raised when the request body cannot be decoded as an event."""

    title = "Malformed input"

    @classmethod
    def invalid_json(cls) -> MalformedInputError:
        """Return an error for bodies that are not valid JSON."""
        return cls("Invalid JSON")

    @classmethod
    def not_an_object(cls) -> MalformedInputError:
        """Return an error for JSON documents that are not objects."""
        return cls("Event body must be a JSON object")

    @classmethod
    def invalid_shape(cls, detail: str) -> MalformedInputError:
        """Return an error for events whose fields have the wrong types."""
        return cls(f"Invalid event shape: {detail}")


class ValidationFailureError(RelayError):
    """Raised when a ready-deployment event lacks a required field.

    Attributes
    ----------
    field
        Name of the missing field.

    """

    title = "Invalid deployment event"

    def __init__(self, reason: str, *, field: str) -> None:
        """Initialise with a reason and the offending field name."""
        self.reason = reason
        self.field = field
        super().__init__(f"{field}: {reason}")

    @classmethod
    def missing_field(cls, field: str) -> ValidationFailureError:
        """Return an error for a required field absent from the event."""
        labels = {"url": "deployment URL", "ref": "branch ref"}
        return cls(f"Missing {labels.get(field, field)}", field=field)


class RelayConfigError(Exception):
    """Raised at startup when a configuration value cannot be parsed."""

    @classmethod
    def invalid_value(cls, name: str, value: str, constraint: str) -> RelayConfigError:
        """Return an error for an environment value that fails validation."""
        return cls(f"Invalid {name} '{value}'. {constraint}")


class ConfigMissingError(RelayError):
    """Raised when a request needs configuration the operator did not supply.

    Attributes
    ----------
    names
        Environment variable names that are missing.

    """

    title = "Relay misconfigured"

    def __init__(self, names: cabc.Sequence[str], *, problem: str = "Missing") -> None:
        """Initialise with the environment variable names at fault."""
        self.names = tuple(names)
        super().__init__(f"{problem} {'/'.join(self.names)}")


class UnresolvableRefError(RelayError):
    """Raised when no commit could be found for the deployment ref.

    Attributes
    ----------
    ref
        The branch name or commit identifier that was looked up.

    """

    title = "Unresolvable ref"

    def __init__(self, ref: str, detail: str | None = None) -> None:
        """Initialise with the ref attempted and an optional detail."""
        self.ref = ref
        message = f"Failed to resolve head SHA for ref '{ref}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CheckRunCreateError(RelayError):
    """Raised when the forge rejects check-run creation."""

    title = "Check run creation failed"

    def __init__(self, detail: str) -> None:
        """Initialise with the upstream diagnostic."""
        super().__init__(f"Failed to create check run: {detail}")


class DispatchFailureError(RelayError):
    """Raised when the forge rejects the workflow dispatch.

    Attributes
    ----------
    status_code
        HTTP status returned by the forge, when one was received.
    body
        Truncated upstream response body.

    """

    title = "Workflow dispatch failed"

    def __init__(self, status_code: int | None, body: str) -> None:
        """Initialise with the upstream status and body."""
        self.status_code = status_code
        self.body = preview_body(body)
        status = status_code if status_code is not None else "no response"
        super().__init__(f"GitHub workflow_dispatch failed: {status} {self.body}")

    @property
    def summary(self) -> str:
        """Return the diagnostic recorded on the failed check run."""
        status = self.status_code if self.status_code is not None else "no response"
        return f"workflow_dispatch failed: {status} {self.body}"


class ConfigInvalidError(ConfigMissingError):
    """Raised when a configured credential is present but unusable."""

    title = "Relay misconfigured"

    def __init__(self, names: cabc.Sequence[str]) -> None:
        """Initialise with the environment variable names at fault."""
        super().__init__(names, problem="Invalid")


class ForgeAuthError(RelayError):
    """Raised when the forge refuses to mint an installation token."""

    title = "Forge authentication failed"

    def __init__(self, detail: str) -> None:
        """Initialise with the upstream diagnostic."""
        super().__init__(f"Failed to obtain GitHub installation token: {detail}")
