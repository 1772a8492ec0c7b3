"""Unit tests for deployrelay.api.app application factory.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_app.py

"""

from __future__ import annotations

import falcon
import falcon.asgi
import falcon.testing
import pytest

from deployrelay.api.app import WEBHOOK_ROUTES, AppDependencies, create_app
from deployrelay.config import RelaySettings
from deployrelay.signature import sign
from tests.conftest import make_settings
from tests.helpers.deployment_events import DEFAULT_SECRET, envelope_event, signed
from tests.helpers.forge_fakes import CHECK_RUN_ID, COMMIT_SHA, FakeGitHub


@pytest.fixture
def bare_client() -> falcon.testing.TestClient:
    """Build a test client with no configuration at all."""
    return falcon.testing.TestClient(create_app())


@pytest.fixture
def full_client(
    settings: RelaySettings, fake_github: FakeGitHub
) -> falcon.testing.TestClient:
    """Build a fully configured test client backed by the GitHub fake."""
    return falcon.testing.TestClient(
        create_app(AppDependencies(settings=settings, transport=fake_github.transport))
    )


def _post(
    client: falcon.testing.TestClient,
    body: bytes,
    signature: str | None,
    path: str = WEBHOOK_ROUTES[0],
) -> falcon.testing.Result:
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["x-vercel-signature"] = signature
    return client.simulate_post(path, body=body, headers=headers)


class TestCreateAppUnconfigured:
    """Tests for create_app() without settings."""

    def test_returns_falcon_app(self) -> None:
        """Create_app() returns a Falcon ASGI App."""
        assert isinstance(create_app(), falcon.asgi.App), "expected Falcon ASGI App"

    def test_health_is_ok(self, bare_client: falcon.testing.TestClient) -> None:
        """Liveness does not depend on configuration."""
        result = bare_client.simulate_get("/health")
        assert result.status == falcon.HTTP_200, "expected HTTP 200 from /health"
        assert result.json == {"status": "ok"}, "wrong /health body"

    def test_ready_reports_missing_names(
        self, bare_client: falcon.testing.TestClient
    ) -> None:
        """Readiness lists every missing variable name."""
        result = bare_client.simulate_get("/ready")
        assert result.status == falcon.HTTP_503, "expected HTTP 503 from /ready"
        assert result.json == {
            "status": "misconfigured",
            "missing": [
                "RELAY_WEBHOOK_SECRET",
                "RELAY_GITHUB_OWNER",
                "RELAY_GITHUB_REPO",
                "RELAY_GITHUB_TOKEN",
            ],
        }

    def test_delivery_is_configuration_error(
        self, bare_client: falcon.testing.TestClient
    ) -> None:
        """Deliveries fail closed with 500 when no secret is configured."""
        body, signature = signed(envelope_event())
        result = _post(bare_client, body, signature)
        assert result.status == falcon.HTTP_500, "expected HTTP 500"
        assert result.json["title"] == "Relay misconfigured"
        assert "RELAY_WEBHOOK_SECRET" in result.json["description"]


class TestCreateAppConfigured:
    """Tests for create_app() with full settings."""

    def test_ready_is_ready(self, full_client: falcon.testing.TestClient) -> None:
        """Readiness passes once secret, repository and token are set."""
        result = full_client.simulate_get("/ready")
        assert result.status == falcon.HTTP_200, "expected HTTP 200 from /ready"
        assert result.json == {"status": "ready"}

    @pytest.mark.parametrize("path", WEBHOOK_ROUTES)
    def test_webhook_routes_dispatch(
        self, full_client: falcon.testing.TestClient, path: str
    ) -> None:
        """Both webhook paths relay a ready deployment."""
        body, signature = signed(envelope_event())
        result = _post(full_client, body, signature, path)
        assert result.status == falcon.HTTP_200, result.text
        assert result.json == {
            "status": "ok",
            "project": "dashboard",
            "ref": "main",
            "head_sha": COMMIT_SHA,
            "check_run_id": str(CHECK_RUN_ID),
        }

    def test_ignored_event_is_accepted(
        self, full_client: falcon.testing.TestClient, fake_github: FakeGitHub
    ) -> None:
        """Irrelevant events are acknowledged with 202."""
        body, signature = signed(envelope_event(kind="deployment.error"))
        result = _post(full_client, body, signature)
        assert result.status == falcon.HTTP_202, "expected HTTP 202"
        assert result.json == {"status": "ignored", "kind": "deployment.error"}
        assert fake_github.calls == []

    def test_invalid_utf8_body_is_bad_request(
        self, full_client: falcon.testing.TestClient, fake_github: FakeGitHub
    ) -> None:
        """A signed body with invalid UTF-8 in a string yields 400."""
        body = (
            b'{"type":"deployment.succeeded",'
            b'"payload":{"deployment":{"url":"x\xff"}}}'
        )
        result = _post(full_client, body, sign(body, DEFAULT_SECRET))
        assert result.status == falcon.HTTP_400, result.text
        assert result.json["description"] == "Invalid JSON"
        assert fake_github.calls == []

    def test_get_is_not_allowed(self, full_client: falcon.testing.TestClient) -> None:
        """Only POST is routed on the webhook path."""
        result = full_client.simulate_get(WEBHOOK_ROUTES[0])
        assert result.status == falcon.HTTP_405, "expected HTTP 405"

    def test_custom_signature_header(self, fake_github: FakeGitHub) -> None:
        """The signature header name is configurable."""
        client = falcon.testing.TestClient(
            create_app(
                AppDependencies(
                    settings=make_settings(signature_header="x-relay-signature"),
                    transport=fake_github.transport,
                )
            )
        )
        body, signature = signed(envelope_event())
        result = client.simulate_post(
            WEBHOOK_ROUTES[0], body=body, headers={"x-relay-signature": signature}
        )
        assert result.status == falcon.HTTP_200, result.text
