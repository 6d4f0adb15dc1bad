"""
Lead Suite - Route dependencies
Session gate and small permission guards shared by the routers.
"""

import logging
from typing import Optional

from fastapi import Depends, Request

from config import get_db
from errors import Forbidden, Unauthorized
from models import SessionClaims
from services.capabilities import can_view_all
from services.sessions import decode_session, hydrate_claims, read_session_cookie

logger = logging.getLogger("deps")


async def load_session_claims(request: Request, db) -> SessionClaims:
    """
    Cookie → user → claims. The cookie only says who you claim to be;
    the user document decides whether that session is still the current one.
    """
    payload = decode_session(read_session_cookie(request))

    user = await db.users.find_one({"id": payload.userId}, {"_id": 0, "passwordHash": 0})
    if not user:
        raise Unauthorized()
    if not user.get("isActive", True):
        raise Forbidden("Account disabled")

    if (
        not user.get("isLoggedIn")
        or user.get("currentSessionToken") != payload.sessionToken
        or int(user.get("sessionEpoch") or 0) != payload.epoch
    ):
        raise Forbidden("Session superseded")

    return await hydrate_claims(db, user, payload.sessionToken, payload.epoch, payload.activeCompanyId)


async def get_session_claims(request: Request, db=Depends(get_db)) -> SessionClaims:
    claims = await load_session_claims(request, db)
    request.state.claims = claims
    return claims


async def require_admin(claims: SessionClaims = Depends(get_session_claims)) -> SessionClaims:
    """Admin or superadmin in the active company."""
    if not claims.is_admin:
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → admin required")
        raise Forbidden()
    return claims


async def require_view_all(claims: SessionClaims = Depends(get_session_claims)) -> SessionClaims:
    if not can_view_all(claims):
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → can_view_all_leads required")
        raise Forbidden()
    return claims


def resolve_company_id(request: Request, claims: Optional[SessionClaims], body: Optional[dict] = None) -> Optional[str]:
    """Query ?companyId= > body.companyId > x-company-id header > session."""
    cid = request.query_params.get("companyId")
    if not cid and isinstance(body, dict):
        cid = body.get("companyId")
    if not cid:
        cid = request.headers.get("x-company-id")
    if not cid and claims is not None:
        cid = claims.active_company_id
    return str(cid) if cid else None
