"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import pytest

from deployrelay.config import RelaySettings
from tests.helpers.deployment_events import DEFAULT_SECRET
from tests.helpers.forge_fakes import FakeGitHub


def make_settings(**overrides: object) -> RelaySettings:
    """Return fully configured settings with optional overrides."""
    values: dict[str, object] = {
        "webhook_secret": DEFAULT_SECRET,
        "owner": "octo",
        "repo": "reef",
        "token": "ghp_static",
        "api_url": "https://api.github.test",
        "timeout_s": 5.0,
    }
    values.update(overrides)
    return RelaySettings(**values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> RelaySettings:
    """Return fully configured relay settings."""
    return make_settings()


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Return a GitHub fake that accepts every call."""
    return FakeGitHub()
