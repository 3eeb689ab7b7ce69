"""Read-only inspection of the session JWT.

The client cannot verify the relay's signature; it only peeks at ``exp`` and
``sub`` so an obviously expired token is not sent over the wire.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import jwt

from chat_sync.application.ports.clock import utc_now

logger = logging.getLogger(__name__)


def read_claims(token: str) -> dict[str, Any] | None:
    """Return unverified claims, or None when the token is not a JWT."""
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.PyJWTError:
        logger.debug("Session token is not a decodable JWT")
        return None


def is_expired(token: str, *, now: datetime | None = None, leeway: float = 0.0) -> bool:
    """True only for a JWT whose exp has passed. Opaque tokens are never expired."""
    claims = read_claims(token)
    if not claims or "exp" not in claims:
        return False
    try:
        exp = float(claims["exp"])
    except (TypeError, ValueError):
        return False
    current = (now or utc_now()).timestamp()
    return exp + leeway < current


def subject_id(token: str) -> int | None:
    claims = read_claims(token)
    if not claims:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
