"""
Lead Suite - Routes Users (proxy vers le distributeur)
Création, liste, suppression, reset mot de passe.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request

from errors import BadRequest, Forbidden
from models import SessionClaims, UserCaps, UserCreateForward
from routes.deps import get_session_claims, resolve_company_id
from services import upstream
from services.capabilities import is_superadmin

logger = logging.getLogger("users")

router = APIRouter(prefix="/users", tags=["Users"])


def _company_id(request: Request, claims: SessionClaims) -> Optional[str]:
    # body.companyId is checked separately on create
    return resolve_company_id(request, claims)


@router.post("")
async def create_user(
    request: Request,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
):
    payload = body if isinstance(body, dict) else {}

    company_id = _company_id(request, claims)
    if not company_id:
        raise BadRequest("companyId is required")
    if isinstance(payload.get("companyId"), str) and payload["companyId"] != company_id:
        raise BadRequest("companyId mismatch between query/header and body")

    if payload.get("role") == "superadmin" and not is_superadmin(claims.memberships):
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → create superadmin")
        raise Forbidden("Only superadmin can create superadmin users")

    # whitelist: only the known fields travel upstream
    forward_body = UserCreateForward(**{
        k: v for k, v in payload.items()
        if k in ("name", "email", "employeeId", "password", "role") and isinstance(v, str)
    })
    if isinstance(payload.get("caps"), dict):
        caps = payload["caps"]
        forward_body.caps = UserCaps(**{k: bool(caps.get(k)) for k in UserCaps.model_fields})

    status, data = await upstream.forward(
        "POST", "/api/users",
        headers=upstream.upstream_headers(claims, company_id),
        json_body=forward_body.model_dump(exclude_none=True),
    )
    return upstream.as_response(status, data)


@router.get("")
async def list_users(request: Request, search: str = "", claims: SessionClaims = Depends(get_session_claims)):
    company_id = _company_id(request, claims)
    status, data = await upstream.forward(
        "GET", "/api/users",
        headers=upstream.upstream_headers(claims, company_id),
        params={"search": search, "companyId": company_id},
    )
    return upstream.as_response(status, data)


@router.delete("")
async def delete_user(request: Request, id: Optional[str] = None, claims: SessionClaims = Depends(get_session_claims)):
    if not id:
        raise BadRequest("id is required")
    status, data = await upstream.forward(
        "DELETE", f"/api/users/{id}",
        headers=upstream.upstream_headers(claims, _company_id(request, claims)),
    )
    return upstream.as_response(status, data)


@router.patch("")
async def reset_password(
    request: Request,
    id: Optional[str] = None,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
):
    if not id:
        raise BadRequest("id is required")
    status, data = await upstream.forward(
        "PATCH", f"/api/users/{id}/password",
        headers=upstream.upstream_headers(claims, _company_id(request, claims)),
        json_body=body if isinstance(body, dict) else {},
    )
    return upstream.as_response(status, data)
