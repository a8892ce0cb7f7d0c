import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from ..auth import CurrentUser, get_optional_user
from ..config import ACCESS_TOKEN_COOKIE_NAME
from ..gate import SIGNIN_PATH, clear_role_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _safe_redirect(target: Optional[str]) -> str:
    """Only same-site relative paths; anything else goes to sign-in"""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return SIGNIN_PATH


@router.get("/me")
async def get_me(user: Optional[CurrentUser] = Depends(get_optional_user)):
    """Role of the signed-in user, resolved against the identity backend"""
    return {"role": user.role if user else None}


@router.api_route("/signout", methods=["GET", "POST"])
async def signout(redirect: Optional[str] = Query(None)):
    """Drop the session and role claim cookies immediately, then redirect"""
    response = RedirectResponse(url=_safe_redirect(redirect), status_code=303)
    clear_role_cookie(response)
    response.delete_cookie(ACCESS_TOKEN_COOKIE_NAME, path="/")
    logger.info("👋 User signed out")
    return response
