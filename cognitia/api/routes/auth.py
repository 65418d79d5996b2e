"""FastAPI authentication routes.

Google sign-in: consent URL, OAuth callback (popup handoff page), the
handoff receiver script, plus session introspection and logout.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from cognitia.core.errors import AuthExchangeError, ConfigurationError
from ..deps import get_handoff_channel, get_identity_bridge, get_optional_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# Mounted without the /api prefix: Google redirects the popup here.
callback_router = APIRouter(prefix="/auth", tags=["auth"])


# ── API routes ───────────────────────────────────────────────────────────

@router.get("/google/url")
async def google_auth_url(bridge=Depends(get_identity_bridge)):
    """Return the Google consent URL. 500 when APP_URL or client id is unset."""
    url = bridge.build_authorization_url()
    return {"url": url}


@router.post("/signin")
async def legacy_signin():
    return JSONResponse(status_code=405, content={"error": "Use /api/auth/google/url instead"})


@router.get("/me")
async def get_me(user: Optional[dict] = Depends(get_optional_user)):
    """Current session user, if any."""
    if not user:
        return {"success": True, "authenticated": False, "user": None}
    return {"success": True, "authenticated": True, "user": user}


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"success": True, "message": "Logged out successfully"}


# ── Popup routes ─────────────────────────────────────────────────────────

@callback_router.get("/google/callback", response_class=HTMLResponse)
@callback_router.get("/google/callback/", response_class=HTMLResponse, include_in_schema=False)
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    bridge=Depends(get_identity_bridge),
    channel=Depends(get_handoff_channel),
):
    """Complete the code exchange and hand the user to the opener window."""
    if not code:
        return PlainTextResponse("No code provided", status_code=400)

    try:
        user = await bridge.complete_exchange(code)
    except (AuthExchangeError, ConfigurationError) as e:
        logger.error(f"Google callback failed: {e}")
        return PlainTextResponse("Authentication failed", status_code=500)

    request.session["user_id"] = user["id"]
    request.session["name"] = user.get("name")
    return HTMLResponse(channel.render_success_page(user))


@callback_router.get("/handoff.js")
async def handoff_receiver(channel=Depends(get_handoff_channel)):
    """Receiver script the opener page loads to accept the handoff."""
    return Response(channel.receiver_script(), media_type="application/javascript")
