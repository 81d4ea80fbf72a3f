"""
User bearer tokens.

A token is ``<urlsafe-b64 JSON payload>.<hex HMAC-SHA256>`` where the payload
holds ``sub`` (user id) and ``exp`` (unix seconds).  The secret comes from
``config.jwt_secret`` (env var: ``JWT_SECRET``).
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Optional

from config.settings import config


class InvalidToken(Exception):
    pass


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


def _secret(secret: Optional[str]) -> str:
    return secret if secret is not None else config.jwt_secret


def create_token(user_id: str, *, secret: Optional[str] = None, ttl: Optional[int] = None) -> str:
    """Issue a signed token for ``user_id``."""
    if ttl is None:
        ttl = config.jwt_expiry_seconds
    raw = json.dumps({"sub": user_id, "exp": int(time.time()) + ttl}).encode()
    return base64.urlsafe_b64encode(raw).decode() + "." + _sign(raw, _secret(secret))


def verify_token(token: str, *, secret: Optional[str] = None) -> str:
    """Return the user id of a valid token; raises ``InvalidToken`` otherwise."""
    encoded, sep, signature = token.partition(".")
    if not sep:
        raise InvalidToken("bad format")
    try:
        raw = base64.urlsafe_b64decode(encoded.encode())
    except (binascii.Error, ValueError) as exc:
        raise InvalidToken("bad encoding") from exc

    if not hmac.compare_digest(signature, _sign(raw, _secret(secret))):
        raise InvalidToken("bad signature")

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise InvalidToken("bad payload") from exc
    if payload.get("exp", 0) < time.time():
        raise InvalidToken("token expired")
    return payload["sub"]
