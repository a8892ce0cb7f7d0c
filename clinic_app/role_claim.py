"""
Signed Role Claim

Short-lived cookie that lets the request gate make routing decisions without
calling the identity backend.

Format: "<role>|<expires_epoch_seconds>.<signature>"
Signature: HMAC-SHA256 over the payload bytes, URL-safe base64 without padding.

With no secret configured the claim is issued unsigned (empty signature) and
only unsigned claims verify. That mode is for local development only.

Verification is pure and never raises; anything malformed is simply invalid.
"""

import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .config import DS_COOKIE_SECRET, ROLE_COOKIE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleClaim:
    valid: bool
    role: Optional[str] = None
    expires: Optional[int] = None


INVALID = RoleClaim(valid=False)


def _now() -> int:
    return int(time.time())


def sign_payload(payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def issue_role_claim(
    role: str,
    ttl_seconds: int = ROLE_COOKIE_TTL_SECONDS,
    secret: Optional[str] = None,
    now: Optional[int] = None,
) -> str:
    secret = DS_COOKIE_SECRET if secret is None else secret
    expires = (_now() if now is None else now) + ttl_seconds
    payload = f"{role or ''}|{expires}"
    signature = sign_payload(payload, secret) if secret else ""
    return f"{payload}.{signature}"


def verify_role_claim(
    value: Optional[str], secret: Optional[str] = None, now: Optional[int] = None
) -> RoleClaim:
    if not value:
        return INVALID
    secret = DS_COOKIE_SECRET if secret is None else secret

    try:
        idx = value.rfind(".")
        payload, signature = (value[:idx], value[idx + 1 :]) if idx > 0 else (value, "")

        role_part, expires_str = payload.split("|", 1)
        expires = int(expires_str)
    except (ValueError, TypeError):
        logger.debug("Malformed role claim")
        return INVALID

    if expires <= (_now() if now is None else now):
        return INVALID

    if secret:
        expected = sign_payload(payload, secret).encode("ascii")
        if not hmac.compare_digest(expected, signature.encode("utf-8", "replace")):
            logger.warning("⚠️ Role claim signature mismatch")
            return INVALID
    elif signature != "":
        return INVALID

    return RoleClaim(valid=True, role=role_part or None, expires=expires)
