"""
Lead Suite - Routes Auth
Login / Logout / Session / Company switch / Secure login links.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from config import get_db, verify_password
from errors import ApiError, Forbidden, Unauthorized
from models import GenerateLoginLink, MagicLogin, SessionClaims, SwitchCompany, UserLogin
from routes.deps import get_session_claims, load_session_claims
from services.activity_logger import log_activity
from services.magic_link import consume_login_token, issue_login_token
from services.sessions import (
    clear_session_cookies,
    client_ip,
    decode_session,
    end_session,
    hydrate_claims,
    read_session_cookie,
    set_session_cookies,
    start_session,
    token_for_claims,
)

logger = logging.getLogger("auth")

router = APIRouter(tags=["Auth"])


def _user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"


# ==================== LOGIN / LOGOUT ====================

@router.post("/auth/login")
async def login(data: UserLogin, request: Request, response: Response, db=Depends(get_db)):
    """Connexion email + mot de passe."""
    user = await db.users.find_one({"email": data.email}, {"_id": 0})

    if not user or not verify_password(data.password, user.get("passwordHash")):
        logger.info(f"[LOGIN] Failed for {data.email}")
        raise Unauthorized("Invalid email or password")

    if not user.get("isActive", True):
        raise Forbidden("Account disabled")

    ip = client_ip(request)
    token, claims = await start_session(db, user, ip, _user_agent(request))
    set_session_cookies(response, token)

    await log_activity(db, user, "login", "user", entity_id=user["id"], ip_address=ip)

    return claims.model_dump(mode="json")


@router.post("/auth/logout")
async def logout(request: Request, response: Response, db=Depends(get_db)):
    """Always clears cookies; marks the user logged out when the cookie is readable."""
    try:
        payload = decode_session(read_session_cookie(request))
    except ApiError:
        payload = None

    if payload is not None:
        user = await db.users.find_one({"id": payload.userId}, {"_id": 0, "id": 1, "email": 1, "name": 1, "currentSessionToken": 1})
        if user and user.get("currentSessionToken") == payload.sessionToken:
            await end_session(db, user["id"])
            await log_activity(db, user, "logout", "user", entity_id=user["id"], ip_address=client_ip(request))

    clear_session_cookies(response)
    return {"success": True}


@router.get("/auth/me")
async def get_me(claims: SessionClaims = Depends(get_session_claims)):
    return claims.model_dump(mode="json")


@router.post("/auth/switch-company")
async def switch_company(
    data: SwitchCompany,
    response: Response,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    if claims.membership_for(data.activeCompanyId) is None:
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → switch to {data.activeCompanyId}")
        raise Forbidden("Not a member of this company")

    user = await db.users.find_one({"id": claims.user_id}, {"_id": 0, "passwordHash": 0})
    if not user:
        raise Unauthorized()

    switched = await hydrate_claims(db, user, claims.session_token, claims.session_epoch, data.activeCompanyId)
    set_session_cookies(response, token_for_claims(switched))
    return switched.model_dump(mode="json")


# ==================== SECURE LOGIN LINKS ====================

@router.post("/admin/generate-login-link")
async def generate_login_link(
    data: GenerateLoginLink,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    ip = client_ip(request)
    result = await issue_login_token(db, claims, data.userId, ip, _user_agent(request))
    await log_activity(
        db,
        {"id": claims.user_id, "email": claims.email, "name": claims.name},
        "magic_link_issued",
        "login_token",
        entity_id=data.userId,
        ip_address=ip,
    )
    return result


@router.post("/auth/magic-login")
async def magic_login(data: MagicLogin, request: Request, response: Response, db=Depends(get_db)):
    user = await consume_login_token(db, data.token)

    ip = client_ip(request)
    token, _ = await start_session(db, user, ip, _user_agent(request))
    set_session_cookies(response, token)

    await log_activity(db, user, "magic_link_consumed", "user", entity_id=user["id"], ip_address=ip)
    return {"ok": True}


# ==================== SESSION VALIDATION ====================

@router.get("/session/validate")
async def validate_session(request: Request, response: Response, db=Depends(get_db)):
    """Never errors: {"valid": false} also clears the cookies."""
    try:
        await load_session_claims(request, db)
    except ApiError:
        clear_session_cookies(response)
        return {"valid": False}
    return {"valid": True}
