# Backend/api/routers/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.responses import RedirectResponse

from app.config import settings
from app.core.logging import get_logger
from app.core.responses import success_envelope
from app.deps.auth import (
    User,
    create_access_token,
    create_oauth_state,
    get_current_user,
    get_current_user_optional,
    verify_oauth_state,
)
from services.google_oauth_service import (
    GoogleOAuthError,
    GoogleOAuthService,
    get_google_oauth_service,
)

logger = get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


def _frontend(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


@router.get("/google")
async def google_login(
    oauth: GoogleOAuthService = Depends(get_google_oauth_service),
):
    """Start the Google sign-in flow."""
    if not oauth.is_configured:
        logger.error("google_oauth_not_configured")
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")
    return RedirectResponse(oauth.authorization_url(create_oauth_state()), status_code=302)


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    oauth: GoogleOAuthService = Depends(get_google_oauth_service),
):
    """
    Google redirects here. Success sends the browser to the frontend with the
    bearer token; every failure goes to the frontend login page.
    """
    login_url = _frontend("/login")
    if error or not code:
        logger.warning("google_callback_denied", reason=error or "missing_code")
        return RedirectResponse(login_url, status_code=302)
    if not verify_oauth_state(state):
        logger.warning("google_callback_bad_state")
        return RedirectResponse(login_url, status_code=302)

    try:
        profile = await oauth.authenticate(code)
    except GoogleOAuthError as e:
        logger.warning("google_callback_failed", error=str(e))
        return RedirectResponse(login_url, status_code=302)

    user = User(
        google_id=profile.google_id,
        email=profile.email,
        name=profile.name,
        picture=profile.picture,
    )
    token = create_access_token(user)
    logger.info("user_signed_in", google_id=user.google_id)
    return RedirectResponse(_frontend(f"/auth-success?token={token}"), status_code=302)


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """Identity from the bearer token."""
    return success_envelope(data=user.to_api())


@router.post("/logout")
async def logout(user: Optional[User] = Depends(get_current_user_optional)):
    # Tokens are stateless; the client drops its copy.
    if user:
        logger.info("user_logged_out", google_id=user.google_id)
    return success_envelope(message="Logged out successfully")
