"""
Routes pour les Leads
- proxies vers le distributeur (POST/GET /leads, /leads/upload)
- soumission locale (/leads/submit)
- vues uploader et receiver
"""

import re
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

from config import get_db, new_id, now_iso
from errors import BadRequest, Forbidden, NotFound, Unauthorized
from models import (
    EMPLOYEE_LIST_PROJECTION,
    VALID_LEAD_STATUSES,
    LeadDocument,
    LeadStatus,
    LeadStatusUpdate,
    LeadSubmit,
    SessionClaims,
)
from routes.deps import get_session_claims, resolve_company_id
from services import upstream
from services.activity_logger import log_activity
from services.capabilities import company_allows, get_effective_caps, has_upload_permission
from services.working_day import working_day

logger = logging.getLogger("leads")

router = APIRouter(tags=["Leads"])

DUPLICATE_LEAD_MESSAGE = "Lead already submitted for this working day"
LEAD_SEARCH_FIELDS = ("fb_id_name", "client_name", "number", "address", "post_link")


def search_filter(q: str, fields=LEAD_SEARCH_FIELDS) -> dict:
    """Case-insensitive literal match on any of `fields`."""
    rx = {"$regex": re.escape(q), "$options": "i"}
    return {"$or": [{f: rx} for f in fields]}


# ==================== PROXY DISTRIBUTEUR ====================

@router.post("/leads")
async def create_lead_upstream(
    request: Request,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
):
    if not claims.session_token:
        raise Unauthorized("Unauthorized: missing sessionToken")
    company_id = resolve_company_id(request, claims, body)
    if not company_id:
        raise BadRequest("companyId is required")

    status, data = await upstream.forward(
        "POST", "/api/leads",
        headers=upstream.upstream_headers(claims, company_id),
        json_body=body or {},
    )
    return upstream.as_response(status, data)


@router.get("/leads")
async def list_leads_upstream(request: Request, claims: SessionClaims = Depends(get_session_claims)):
    company_id = request.query_params.get("companyId")
    if not company_id:
        raise BadRequest("companyId is required")

    status, data = await upstream.forward(
        "GET", "/api/leads",
        headers=upstream.upstream_headers(claims, company_id),
        params=dict(request.query_params),
    )
    return upstream.as_response(status, data)


@router.post("/leads/upload")
async def upload_leads_upstream(
    request: Request,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
):
    """Bulk upload. Company falls back to the user's first membership."""
    company_id = resolve_company_id(request, None, body)
    if not company_id and claims.memberships:
        company_id = claims.memberships[0].companyId

    if not has_upload_permission(claims.memberships, company_id):
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → upload in {company_id}")
        raise Forbidden()

    status, data = await upstream.forward(
        "POST", "/api/leads/upload",
        headers=upstream.upstream_headers(claims, company_id),
        json_body=body or {},
    )
    return upstream.as_response(status, data)


# ==================== SOUMISSION LOCALE ====================

@router.post("/leads/submit", status_code=201)
async def submit_lead(
    data: LeadSubmit,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """
    Lead saisi par un uploader.
    workingDay est calculé ici : un même numéro ne peut être soumis
    qu'une fois par working day (index unique).
    """
    user = await db.users.find_one({"id": claims.user_id}, {"_id": 0, "memberships": 1})
    caps = await get_effective_caps(db, user, claims.active_company_id)
    if not claims.active_company_id or not caps["canUploadLeads"]:
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → submit lead in {claims.active_company_id}")
        raise Forbidden()

    target_company_id = claims.active_company_id
    if data.targetCompanyId:
        target = await db.companies.find_one(
            {"id": data.targetCompanyId}, {"_id": 0, "id": 1, "roleMode": 1, "active": 1}
        )
        if not target:
            raise BadRequest("Target company not found")
        if target.get("active") is False:
            raise BadRequest("Target company is inactive")
        if not company_allows(target.get("roleMode"))["receiveLeads"]:
            raise BadRequest("Target company cannot receive leads")
        target_company_id = target["id"]

    now = now_iso()
    lead = LeadDocument(
        id=new_id(),
        **data.model_dump(exclude={"targetCompanyId"}),
        lead_status=LeadStatus.PENDING,
        submitted_by=claims.user_id,
        workingDay=working_day(),
        sourceCompanyId=claims.active_company_id,
        targetCompanyId=target_company_id,
        createdAt=now,
        updatedAt=now,
    ).model_dump(mode="json")

    try:
        await db.leads.insert_one(dict(lead))
    except DuplicateKeyError:
        logger.info(f"[LEAD] Duplicate {lead['number']} on {lead['workingDay']}")
        raise BadRequest(DUPLICATE_LEAD_MESSAGE)

    logger.info(f"[LEAD] {lead['id']} submitted by {claims.user_id} for {lead['workingDay']}")
    return lead


@router.get("/leads/uploader/leads")
async def uploader_leads(
    page: int = 1,
    pageSize: int = 20,
    q: str = "",
    status: str = "",
    workingDay: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Leads soumis par l'utilisateur dans la company active."""
    page = page if page > 0 else 1
    pageSize = min(pageSize, 200) if pageSize > 0 else 20

    query = {"submitted_by": claims.user_id}
    if status.strip():
        query["lead_status"] = status.strip()
    if workingDay.strip():
        query["workingDay"] = workingDay.strip()
    if claims.active_company_id:
        query["sourceCompanyId"] = claims.active_company_id
    if q.strip():
        query.update(search_filter(q.strip()))

    items = await db.leads.find(query, {"_id": 0}) \
        .sort("createdAt", -1) \
        .skip((page - 1) * pageSize) \
        .limit(pageSize) \
        .to_list(pageSize)
    total = await db.leads.count_documents(query)
    days = await db.leads.distinct("workingDay", query)

    return {
        "items": items,
        "page": page,
        "pageSize": pageSize,
        "total": total,
        "workingDays": sorted((d for d in days if d), reverse=True),
    }


# ==================== RECEIVER ====================

@router.get("/employee/leads")
async def employee_leads(
    page: int = 1,
    limit: int = 30,
    workingDay: str = "",
    q: str = "",
    status: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Leads assignés à l'utilisateur, paginés sans count (limit+1)."""
    role = getattr(claims.role, "value", claims.role)
    if role == "fb_submitter" and not claims.caps.canReceiveLeads:
        raise Forbidden()

    page = max(page, 1)
    limit = min(max(limit, 10), 100)

    query = {"assigned_to": claims.user_id}
    if workingDay.strip():
        query["workingDay"] = workingDay.strip()
    if status.strip():
        query["lead_status"] = status.strip()
    if q.strip():
        query.update(search_filter(q.strip(), ("number", "address", "fb_id_name", "client_name")))

    docs = await db.leads.find(query, EMPLOYEE_LIST_PROJECTION) \
        .sort("createdAt", -1) \
        .skip((page - 1) * limit) \
        .limit(limit + 1) \
        .to_list(limit + 1)

    items = docs[:limit]
    has_more = len(docs) > limit

    # Screenshots per lead, for this page only
    by_lead_shot_count = {}
    if items:
        shots = await db.screenshots.find(
            {"lead": {"$in": [x["id"] for x in items]}},
            {"_id": 0, "lead": 1}
        ).to_list(None)
        for s in shots:
            by_lead_shot_count[s["lead"]] = by_lead_shot_count.get(s["lead"], 0) + 1

    return {"items": items, "hasMore": has_more, "byLeadShotCount": by_lead_shot_count}


@router.put("/employee/leads/status")
async def update_lead_status(
    data: LeadStatusUpdate,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    if not data.id or not data.status:
        raise BadRequest("Missing id/status")
    if data.status not in VALID_LEAD_STATUSES:
        raise BadRequest(f"Invalid status. Allowed: {', '.join(VALID_LEAD_STATUSES)}")

    lead = await db.leads.find_one({"id": data.id}, {"_id": 0, "id": 1, "assigned_to": 1, "lead_status": 1})
    if not lead:
        raise NotFound("Lead not found")
    if str(lead.get("assigned_to")) != claims.user_id:
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → status of lead {data.id}")
        raise Forbidden()

    await db.leads.update_one(
        {"id": data.id},
        {"$set": {"lead_status": data.status, "updatedAt": now_iso()}}
    )

    await log_activity(
        db,
        {"id": claims.user_id, "email": claims.email, "name": claims.name},
        "status_change",
        "lead",
        entity_id=data.id,
        details={"from": lead.get("lead_status"), "to": data.status},
        ip_address=request.client.host if request.client else None,
    )

    return {"ok": True, "id": data.id, "status": data.status}


@router.get("/employee/leads/days")
async def employee_lead_days(claims: SessionClaims = Depends(get_session_claims), db=Depends(get_db)):
    days = await db.leads.distinct("workingDay", {"assigned_to": claims.user_id})
    return JSONResponse(sorted((d for d in days if d), reverse=True))
