"""
Lead Suite - Secure login links

Cycle de vie d'un token :
    issued ──(consume avant expiresAt)──▶ consumed
       └────(expiresAt dépassé)─────────▶ expired
Un token ne se consomme qu'une fois : le passage used=False → True est un
update conditionnel, deux consommations concurrentes ne peuvent pas réussir.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import LOGIN_LINK_TTL_HOURS, PUBLIC_BASE_URL, generate_login_token, new_id, now_iso, utcnow
from errors import BadRequest, Forbidden, NotFound
from models import OPERATOR_ROLES, LoginToken, SessionClaims

logger = logging.getLogger("magic_link")

STATE_ISSUED = "issued"
STATE_CONSUMED = "consumed"
STATE_EXPIRED = "expired"


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def token_state(doc: Optional[dict], now: datetime = None) -> Optional[str]:
    if not doc:
        return None
    if doc.get("used"):
        return STATE_CONSUMED
    now = now or utcnow()
    if _aware(doc["expiresAt"]) < _aware(now):
        return STATE_EXPIRED
    return STATE_ISSUED


def is_eligible(user: dict) -> bool:
    return any(m.get("role") in OPERATOR_ROLES for m in user.get("memberships") or [])


async def issue_login_token(
    db,
    requester: SessionClaims,
    target_user_id: Optional[str],
    ip: str = None,
    user_agent: str = None,
) -> dict:
    if not requester.is_admin:
        logger.warning(f"[PERMISSION_DENIED] {requester.user_id} tried to issue a login link")
        raise Forbidden("Unauthorized")
    if not target_user_id:
        raise BadRequest("User ID required")
    if target_user_id == requester.user_id:
        raise BadRequest("You cannot generate a secure login link for yourself.")

    user = await db.users.find_one({"id": target_user_id}, {"_id": 0, "id": 1, "memberships": 1})
    if not user:
        raise NotFound("User not found")
    if not is_eligible(user):
        raise BadRequest("This user is not eligible for secure login link.")

    token = generate_login_token()
    expires_at = utcnow() + timedelta(hours=LOGIN_LINK_TTL_HOURS)
    doc = LoginToken(
        id=new_id(),
        userId=target_user_id,
        token=token,
        userAgent=user_agent or "unknown",
        ip=ip or "unknown",
        expiresAt=expires_at,
        createdAt=now_iso(),
    )
    await db.login_tokens.insert_one(doc.model_dump())

    logger.info(f"[MAGIC_LINK] Issued for {target_user_id} by {requester.user_id}")
    return {
        "link": f"{PUBLIC_BASE_URL}/secure-login?token={token}",
        "expiresAt": expires_at.isoformat(),
    }


async def consume_login_token(db, token: Optional[str], now: datetime = None) -> dict:
    """
    Marks the token used and returns the target user document.
    Session rotation is left to the caller (routes/auth.magic_login).
    """
    if not token:
        raise BadRequest("Missing token")

    doc = await db.login_tokens.find_one({"token": token}, {"_id": 0})
    state = token_state(doc, now)
    if state is None or state == STATE_CONSUMED:
        raise BadRequest("Invalid or used")
    if state == STATE_EXPIRED:
        raise BadRequest("Expired")

    user = await db.users.find_one({"id": doc["userId"]}, {"_id": 0, "passwordHash": 0})
    if not user:
        raise NotFound("User not found")

    claimed = await db.login_tokens.find_one_and_update(
        {"token": token, "used": False},
        {"$set": {"used": True, "usedAt": now_iso()}},
    )
    if claimed is None:
        # another request consumed it first
        raise BadRequest("Invalid or used")

    logger.info(f"[MAGIC_LINK] Consumed by {user['id']}")
    return user
