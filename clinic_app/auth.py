import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import (
    ACCESS_TOKEN_COOKIE_NAME,
    IDENTITY_API_KEY,
    IDENTITY_TIMEOUT_SECONDS,
    IDENTITY_URL,
)
from .errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: Optional[str]
    role: Optional[str]

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class IdentityBackend:
    """
    Client for the authoritative identity/session backend.

    Exposes the two calls the booking core needs: resolve the user behind an
    access token, and load that user's profile (which carries the role).
    """

    def __init__(
        self,
        base_url: str = IDENTITY_URL,
        api_key: str = IDENTITY_API_KEY,
        timeout: float = IDENTITY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"apikey": self.api_key},
        )

    async def get_current_user(self, access_token: Optional[str]) -> Optional[dict]:
        """User record for the token, or None when absent, rejected or unreachable"""
        if not access_token:
            return None

        try:
            async with self._client() as client:
                response = await client.get(
                    "/auth/v1/user", headers={"Authorization": f"Bearer {access_token}"}
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Identity backend unreachable: {e}")
            return None

        if response.status_code == 200:
            return response.json()
        if response.status_code not in (401, 403):
            logger.error(f"❌ Identity backend returned HTTP {response.status_code} for user lookup")
        return None

    async def get_profile(self, user_id: str) -> Optional[dict]:
        """Profile row (id, email, role) for a user id"""
        try:
            async with self._client() as client:
                response = await client.get(
                    "/rest/v1/profiles",
                    params={"id": f"eq.{user_id}", "select": "id,email,role"},
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Identity backend unreachable for profile {user_id}: {e}")
            return None

        if response.status_code != 200:
            logger.error(f"❌ Failed to fetch profile {user_id}: HTTP {response.status_code}")
            return None
        rows = response.json()
        return rows[0] if rows else None


def get_identity_backend(request: Request) -> IdentityBackend:
    return request.app.state.identity


def extract_access_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None
) -> Optional[str]:
    """Bearer header wins over the session cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE_NAME)


async def resolve_user(identity: IdentityBackend, access_token: Optional[str]) -> Optional[CurrentUser]:
    """Full slow-path lookup: user behind the token plus the role from their profile"""
    user = await identity.get_current_user(access_token)
    if not user or not user.get("id"):
        return None

    profile = await identity.get_profile(user["id"])
    role = profile.get("role") if profile else None
    return CurrentUser(id=user["id"], email=user.get("email"), role=role or None)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityBackend = Depends(get_identity_backend),
) -> Optional[CurrentUser]:
    return await resolve_user(identity, extract_access_token(request, credentials))


async def get_current_user(
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> CurrentUser:
    """Authenticated user, checked against the identity backend on every call"""
    if not user:
        raise Unauthorized(
            "Not authenticated. Please provide a valid Bearer token or session cookie."
        )
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        logger.warning(f"⚠️ User {user.email} attempted an admin action with role {user.role!r}")
        raise Forbidden("Admin role required")
    return user
