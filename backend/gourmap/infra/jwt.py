"""Access token helpers.

Tokens are HS256-signed with ``settings.secret_key`` and minted by the
session service; this backend only verifies them. ``encode_access`` exists
for local tooling and tests.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from jwt import InvalidTokenError

from gourmap.settings import settings


ISSUER = "gourmap-api"
AUDIENCE = "gourmap-fe"
ACCESS_TTL_SECONDS = 15 * 60


@dataclass(slots=True, frozen=True)
class AccessClaims:
    sub: str
    expires_at: int
    username: Optional[str] = None
    session_id: Optional[str] = None


def encode_access(
    sub: str,
    *,
    username: Optional[str] = None,
    session_id: Optional[str] = None,
    ttl_seconds: int = ACCESS_TTL_SECONDS,
) -> str:
    now = int(time.time())
    body: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "exp": now + ttl_seconds, "sub": sub}
    if username is not None:
        body["username"] = username
    if session_id is not None:
        body["sid"] = session_id
    return jwt.encode(body, settings.secret_key, algorithm="HS256")


def decode_access(token: str) -> AccessClaims:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": ["exp", "iat", "iss", "aud", "sub"]},
    )
    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise InvalidTokenError("missing_claim:sub")
    username = payload.get("username")
    session_id = payload.get("sid")
    return AccessClaims(
        sub=sub,
        expires_at=int(payload["exp"]),
        username=str(username) if username is not None else None,
        session_id=str(session_id).strip() if session_id is not None else None,
    )
