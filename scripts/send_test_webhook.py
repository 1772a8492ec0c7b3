#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.12"
# dependencies = ["cyclopts>=2.9", "httpx>=0.27"]
# ///
"""Send a signed deployment-ready webhook to a running relay.

Usage:
    uv run scripts/send_test_webhook.py dashboard https://dash-abc123.vercel.app main
    uv run scripts/send_test_webhook.py dashboard dash-abc.example.com --dry-run

Environment variables:
    RELAY_WEBHOOK_SECRET - Shared secret used to sign the body
    WEBHOOK_ENDPOINT     - Relay endpoint receiving the delivery
"""

from __future__ import annotations

import hashlib
import hmac
import json
import os
import sys
import time

import httpx
from cyclopts import App

app = App(
    name="send_test_webhook",
    help="Send a signed deployment-ready webhook to the relay",
    version="0.1.0",
)

DEFAULT_SECRET = "your-secret-here"
DEFAULT_ENDPOINT = "http://127.0.0.1:8080/api/deployments"
SIGNATURE_HEADER = "x-vercel-signature"


def build_body(project: str, url: str, branch: str, *, now_ms: int) -> bytes:
    """Return the JSON body of a ``deployment.succeeded`` envelope."""
    envelope = {
        "type": "deployment.succeeded",
        "id": f"local-test-{now_ms // 1000}",
        "createdAt": now_ms,
        "payload": {
            "deployment": {
                "id": "local-dep-123",
                "url": url,
                "name": project,
                "meta": {"branch": branch},
            },
            "target": "staging",
            "project": {"id": "local-project"},
        },
    }
    return json.dumps(envelope, indent=2).encode("utf-8")


def sign_body(body: bytes, secret: str) -> str:
    """Return the hex HMAC-SHA1 signature of ``body``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()


@app.default
def send(  # noqa: PLR0913
    project: str,
    url: str,
    branch: str = "main",
    *,
    secret: str | None = None,
    endpoint: str | None = None,
    dry_run: bool = False,
) -> int:
    """Build, sign and POST a deployment-ready event.

    Parameters
    ----------
    project
        Project name placed in the deployment.
    url
        Preview URL of the deployment.
    branch
        Branch recorded in ``meta.branch``.
    secret
        Signing secret; defaults to ``RELAY_WEBHOOK_SECRET``.
    endpoint
        Relay URL; defaults to ``WEBHOOK_ENDPOINT``.
    dry_run
        Print the body and signature without sending.

    """
    signing_secret = secret or os.environ.get("RELAY_WEBHOOK_SECRET", DEFAULT_SECRET)
    target = endpoint or os.environ.get("WEBHOOK_ENDPOINT", DEFAULT_ENDPOINT)
    body = build_body(project, url, branch, now_ms=int(time.time() * 1000))
    signature = sign_body(body, signing_secret)

    print(f"Endpoint:  {target}")
    print(f"Project:   {project}")
    print(f"URL:       {url}")
    print(f"Branch:    {branch}")
    print(f"Signature: {signature}")
    if dry_run:
        print(body.decode("utf-8"))
        return 0

    try:
        response = httpx.post(
            target,
            content=body,
            headers={"Content-Type": "application/json", SIGNATURE_HEADER: signature},
            timeout=30.0,
        )
    except httpx.HTTPError as exc:
        print(f"Delivery failed: {exc}", file=sys.stderr)
        return 1

    print(f"Response:  {response.status_code} {response.text}")
    return 0 if response.is_success else 1


if __name__ == "__main__":
    sys.exit(app())
