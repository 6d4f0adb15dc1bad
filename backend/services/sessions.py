"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Lead Suite - Sessions                                                       ║
║                                                                              ║
║  Cookie = JWT HS256 signé {userId, sessionToken, epoch, activeCompanyId}.    ║
║  Le document user reste la source de vérité :                                ║
║    - currentSessionToken + sessionEpoch identifient LA session valide        ║
║    - chaque connexion fait $inc sessionEpoch (atomique)                      ║
║      → la dernière connexion invalide toutes les précédentes                 ║
║  Les claims (rôle, caps, memberships) sont recalculés depuis la DB           ║
║  à chaque requête.                                                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

import jwt
from fastapi import Request, Response
from pydantic import ValidationError
from pymongo import ReturnDocument

from config import (
    SESSION_SECRET,
    SESSION_MAX_AGE_SECONDS,
    SESSION_COOKIE_NAME,
    SECURE_SESSION_COOKIE_NAME,
    COOKIE_SECURE,
    generate_token,
    now_iso,
    utcnow,
)
from errors import Unauthorized
from models import SessionClaims, SessionToken
from services.capabilities import (
    build_membership_views,
    caps_from_view,
    choose_active_company,
)

logger = logging.getLogger("sessions")

JWT_ALGORITHM = "HS256"


# ==================== JWT CODEC ====================

def encode_session(payload: SessionToken, now=None) -> str:
    now = now or utcnow()
    claims = payload.model_dump()
    claims["iat"] = now
    claims["exp"] = now + timedelta(seconds=SESSION_MAX_AGE_SECONDS)
    return jwt.encode(claims, SESSION_SECRET, algorithm=JWT_ALGORITHM)


def decode_session(token: Optional[str]) -> SessionToken:
    if not token:
        raise Unauthorized()
    try:
        data = jwt.decode(token, SESSION_SECRET, algorithms=[JWT_ALGORITHM])
        return SessionToken(**data)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except (jwt.InvalidTokenError, ValidationError):
        raise Unauthorized()


# ==================== COOKIES ====================

def read_session_cookie(request: Request) -> Optional[str]:
    token = request.cookies.get(SECURE_SESSION_COOKIE_NAME) or request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def set_session_cookies(response: Response, token: str):
    response.set_cookie(
        SESSION_COOKIE_NAME, token,
        max_age=SESSION_MAX_AGE_SECONDS, path="/",
        httponly=True, samesite="lax", secure=COOKIE_SECURE,
    )
    # __Secure- prefix is only accepted by browsers with the Secure flag
    response.set_cookie(
        SECURE_SESSION_COOKIE_NAME, token,
        max_age=SESSION_MAX_AGE_SECONDS, path="/",
        httponly=True, samesite="lax", secure=True,
    )


def clear_session_cookies(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=COOKIE_SECURE)
    response.delete_cookie(SECURE_SESSION_COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=True)


# ==================== CLAIMS ====================

async def hydrate_claims(
    db,
    user: dict,
    session_token: str,
    epoch: int,
    requested_company: Optional[str] = None,
) -> SessionClaims:
    """Build the caller's claims from the user's memberships and their companies."""
    memberships = user.get("memberships") or []
    company_ids = list({str(m.get("companyId")) for m in memberships if m.get("companyId")})

    companies_by_id = {}
    if company_ids:
        companies = await db.companies.find(
            {"id": {"$in": company_ids}},
            {"_id": 0, "id": 1, "name": 1, "code": 1, "roleMode": 1, "active": 1}
        ).to_list(len(company_ids))
        companies_by_id = {c["id"]: c for c in companies}

    views = build_membership_views(memberships, companies_by_id)
    active_id = choose_active_company(views, requested_company)
    active = next((v for v in views if v.companyId == active_id), None)

    return SessionClaims(
        user_id=user["id"],
        session_token=session_token,
        session_epoch=epoch,
        name=user.get("name") or "",
        email=user.get("email"),
        active_company_id=active_id,
        active_company_code=active.companyCode if active else None,
        role=active.role if active else None,
        role_mode=active.roleMode if active else "hybrid",
        caps=caps_from_view(active),
        memberships=views,
    )


def token_for_claims(claims: SessionClaims) -> str:
    return encode_session(SessionToken(
        sub=claims.user_id,
        userId=claims.user_id,
        sessionToken=claims.session_token,
        epoch=claims.session_epoch,
        activeCompanyId=claims.active_company_id,
        name=claims.name,
        email=claims.email,
    ))


# ==================== ROTATION ====================

async def rotate_session(db, user_id: str, ip: str = None, user_agent: str = None) -> Tuple[str, int]:
    """
    New session for `user_id`. sessionEpoch is incremented in the same atomic
    update that stores the new token, so concurrent sign-ins are totally
    ordered and only the last one stays valid.
    """
    session_token = generate_token()
    now = now_iso()
    updated = await db.users.find_one_and_update(
        {"id": user_id},
        {
            "$inc": {"sessionEpoch": 1},
            "$set": {
                "currentSessionToken": session_token,
                "isLoggedIn": True,
                "lastLoginAt": now,
                "lastKnownIP": ip or "unknown",
                "lastUserAgent": user_agent or "unknown",
            },
            "$push": {"loginHistory": {
                "ip": ip or "unknown",
                "userAgent": user_agent or "unknown",
                "loggedInAt": now,
            }},
        },
        projection={"_id": 0, "sessionEpoch": 1},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise Unauthorized("User not found")

    logger.info(f"[LOGIN] Session rotated for {user_id} (epoch {updated['sessionEpoch']})")
    return session_token, updated["sessionEpoch"]


async def start_session(db, user: dict, ip: str = None, user_agent: str = None,
                        requested_company: Optional[str] = None) -> Tuple[str, SessionClaims]:
    """Rotate, hydrate and sign. Returns (cookie value, claims)."""
    session_token, epoch = await rotate_session(db, user["id"], ip, user_agent)
    claims = await hydrate_claims(db, user, session_token, epoch, requested_company)
    return token_for_claims(claims), claims


async def end_session(db, user_id: str):
    await db.users.update_one(
        {"id": user_id},
        {"$set": {"isLoggedIn": False, "lastLogoutAt": now_iso()}}
    )
    logger.info(f"[LOGOUT] {user_id}")


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
