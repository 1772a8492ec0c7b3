"""HMAC verification of inbound webhook bodies.

The digest is computed over the raw request bytes, before any JSON parsing.
Verification fails closed: a missing secret or a missing token is a rejection.
"""

from __future__ import annotations

import hashlib
import hmac

__all__ = ["sign", "verify_signature"]

_DIGEST = hashlib.sha1


def _require_bytes(body: object) -> bytes:
    if not isinstance(body, (bytes, bytearray, memoryview)):
        msg = "signature verification requires the raw request bytes"
        raise TypeError(msg)
    return bytes(body)


def sign(body: bytes, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA1 of ``body`` keyed by ``secret``."""
    raw = _require_bytes(body)
    return hmac.new(secret.encode("utf-8"), raw, _DIGEST).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Return whether ``signature`` authenticates ``body`` under ``secret``.

    Parameters
    ----------
    body
        Raw request body exactly as received.
    signature
        Token supplied by the caller; hex case and surrounding whitespace are
        ignored.
    secret
        Shared secret.  ``None`` or empty always rejects.

    Returns
    -------
    bool
        ``True`` only when both inputs are present and the digests match.

    Raises
    ------
    TypeError
        If ``body`` is not a bytes-like object.  Decoded or re-serialized
        bodies cannot prove authenticity.

    """
    raw = _require_bytes(body)
    if not secret or not signature:
        return False
    expected = sign(raw, secret).encode("ascii")
    supplied = signature.strip().lower().encode("utf-8", errors="replace")
    return hmac.compare_digest(expected, supplied)
