"""
Request Gate Middleware

Two-tier routing gate for page paths that depend on who is signed in.

1. Fast tier: verify the signed role claim cookie locally (no I/O). A valid
   claim may short-circuit with a UX redirect (signed-in user on /signin,
   admin on /dashboard, non-admin on /admin). It never grants access.
2. Slow tier: ask the identity backend who the user is and what role their
   profile carries. This is the binding decision. The role claim cookie is
   refreshed (or cleared) on every slow-tier response.

API endpoints do not rely on this gate; privileged ones depend on
auth.require_admin, which always goes to the identity backend.
"""

import logging
from typing import Callable, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .auth import CurrentUser, extract_access_token, resolve_user
from .config import ENVIRONMENT, ROLE_COOKIE_NAME, ROLE_COOKIE_TTL_SECONDS
from .role_claim import issue_role_claim, verify_role_claim

logger = logging.getLogger(__name__)

PROTECTED_PATHS = [
    "/admin",
    "/dashboard",
    "/signin",
    "/signup",
    "/profile-settings",
    "/my-bookings",
    "/order-history",
    "/book-consultation",
    "/confirm-booking",
]
AUTH_PATHS = ("/signin", "/signup")
ADMIN_HOME = "/admin"
USER_HOME = "/dashboard"
SIGNIN_PATH = "/signin"
SIGNOUT_PATH = "/auth/signout"


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_protected_path(path: str) -> bool:
    return any(_under(path, p) for p in PROTECTED_PATHS)


def role_home(role: Optional[str]) -> str:
    return ADMIN_HOME if role == "admin" else USER_HOME


def signout_redirect(target: str = SIGNIN_PATH) -> str:
    return f"{SIGNOUT_PATH}?{urlencode({'redirect': target})}"


def fast_path_redirect(path: str, role: str) -> Optional[str]:
    """Advisory redirect for a verified claim, or None to fall through"""
    if any(_under(path, p) for p in AUTH_PATHS):
        return role_home(role)
    if _under(path, ADMIN_HOME) and role != "admin":
        # stale or forged claim: force a fresh sign-in
        return signout_redirect(SIGNIN_PATH)
    if _under(path, USER_HOME) and role == "admin":
        return ADMIN_HOME
    return None


def slow_path_redirect(path: str, user: Optional[CurrentUser]) -> Optional[str]:
    """Binding redirect from the identity backend's answer, or None to serve"""
    if any(_under(path, p) for p in AUTH_PATHS):
        return role_home(user.role) if user else None
    if _under(path, ADMIN_HOME):
        if not user:
            return SIGNIN_PATH
        if not user.is_admin:
            return signout_redirect(SIGNIN_PATH)
        return None
    if _under(path, USER_HOME) and user and user.is_admin:
        return ADMIN_HOME
    return None


def set_role_cookie(response: Response, role: Optional[str]) -> None:
    response.set_cookie(
        key=ROLE_COOKIE_NAME,
        value=issue_role_claim(role or "", ROLE_COOKIE_TTL_SECONDS),
        httponly=True,
        secure=ENVIRONMENT == "production",
        samesite="lax",
        max_age=ROLE_COOKIE_TTL_SECONDS,
        path="/",
    )


def clear_role_cookie(response: Response) -> None:
    response.set_cookie(key=ROLE_COOKIE_NAME, value="", max_age=0, path="/")


class RequestGateMiddleware(BaseHTTPMiddleware):
    """Fast role-claim check with fallback to the identity backend"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not is_protected_path(path):
            return await call_next(request)

        claim = verify_role_claim(request.cookies.get(ROLE_COOKIE_NAME))
        if claim.valid and claim.role:
            target = fast_path_redirect(path, claim.role)
            if target:
                logger.debug(f"➡️ Gate fast path: {path} -> {target} (role={claim.role})")
                return RedirectResponse(url=target)

        identity = request.app.state.identity
        try:
            user = await resolve_user(identity, extract_access_token(request))
        except Exception as e:
            # Identity backend failures resolve to the signed-out flow, never a 500
            logger.error(f"❌ Gate slow path failed for {path}: {e}")
            user = None

        target = slow_path_redirect(path, user)
        if target:
            logger.debug(f"➡️ Gate slow path: {path} -> {target}")
            response = RedirectResponse(url=target)
        else:
            response = await call_next(request)

        if user:
            set_role_cookie(response, user.role)
        else:
            clear_role_cookie(response)
        return response
