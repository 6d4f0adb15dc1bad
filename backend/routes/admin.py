"""
Lead Suite - Routes Admin
Vues admin des leads, companies, receivers, distribution et screenshots.
Les actions de distribution sont relayées au distributeur (SERVER_API).
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request
from fastapi.responses import JSONResponse

from config import get_db, is_valid_id
from errors import BadRequest, Forbidden, NotFound
from models import ADMIN_LIST_PROJECTION, DistributionToggle, SessionClaims
from routes.deps import get_session_claims, require_admin, require_view_all
from routes.leads import search_filter
from services import upstream
from services.capabilities import has_distribution_permission, is_superadmin, receiver_company_ids
from services.realtime import EVENT_REVIEWED, publish_screenshot_event

logger = logging.getLogger("admin")

router = APIRouter(prefix="/admin", tags=["Admin"])

MAX_WORKING_DAYS = 365
USER_REF_PROJECTION = {"_id": 0, "id": 1, "name": 1, "email": 1, "employeeId": 1}
COMPANY_PROJECTION = {"_id": 0, "id": 1, "name": 1, "code": 1, "active": 1, "roleMode": 1}
RECEIVING_MODES = ["receiver", "hybrid"]


def parse_sort(sort: str):
    """'-createdAt' → ('createdAt', -1)"""
    direction = -1 if sort.startswith("-") else 1
    key = sort.lstrip("-") or "createdAt"
    return key, direction


def company_scope(company_id: str) -> dict:
    return {"$or": [
        {"assignedCompanyId": company_id},
        {"targetCompanyId": company_id},
        {"sourceCompanyId": company_id},
    ]}


def _mode(value) -> str:
    return getattr(value, "value", value)


def _has_receiver_membership(claims: SessionClaims, company_id: str) -> bool:
    m = claims.membership_for(company_id)
    return m is not None and _mode(m.roleMode) in RECEIVING_MODES


def distribution_company_id(request: Request) -> Optional[str]:
    """?companyId= or x-company-id header (no session fallback)."""
    return request.query_params.get("companyId") or request.headers.get("x-company-id") or None


def require_distribution(claims: SessionClaims, company_id: Optional[str]):
    if not has_distribution_permission(claims.memberships, company_id):
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → distribution in {company_id or 'any'}")
        raise Forbidden()


# ==================== LEADS ====================

@router.get("/leads")
async def list_leads(
    workingDay: str = "",
    status: str = "",
    search: str = "",
    page: int = 1,
    limit: int = 25,
    sort: str = "-createdAt",
    claims: SessionClaims = Depends(require_view_all),
    db=Depends(get_db),
):
    page = max(page, 1)
    limit = min(max(limit, 1), 200)

    query = {}
    if workingDay:
        query["workingDay"] = workingDay
    if status:
        query["lead_status"] = status
    if search:
        query.update(search_filter(search, ("fb_id_name", "client_name", "number", "address")))
    if claims.active_company_id:
        query["$and"] = [company_scope(claims.active_company_id)]

    key, direction = parse_sort(sort)
    rows = await db.leads.find(query, ADMIN_LIST_PROJECTION) \
        .sort(key, direction) \
        .skip((page - 1) * limit) \
        .limit(limit) \
        .to_list(limit)
    total = await db.leads.count_documents(query)

    return {
        "page": page,
        "limit": limit,
        "total": total,
        "hasMore": page * limit < total,
        "data": rows,
    }


@router.get("/leads/working-days")
async def lead_working_days(claims: SessionClaims = Depends(require_view_all), db=Depends(get_db)):
    days = await db.leads.distinct("workingDay", {})
    days = sorted((d for d in days if isinstance(d, str) and d), reverse=True)
    return {"workingDays": days[:MAX_WORKING_DAYS], "count": len(days)}


@router.get("/leads/{lead_id}")
async def get_lead(lead_id: str, claims: SessionClaims = Depends(require_view_all), db=Depends(get_db)):
    if not is_valid_id(lead_id):
        raise BadRequest("Invalid id")

    lead = await db.leads.find_one({"id": lead_id}, {"_id": 0})
    if not lead:
        raise NotFound()

    # populate submitted_by / assigned_to
    refs = [r for r in (lead.get("submitted_by"), lead.get("assigned_to")) if r]
    users = {}
    if refs:
        async for u in db.users.find({"id": {"$in": refs}}, USER_REF_PROJECTION):
            users[u["id"]] = u
    for field in ("submitted_by", "assigned_to"):
        if lead.get(field):
            lead[field] = users.get(lead[field], lead[field])

    return {"data": lead}


# ==================== COMPANIES ====================

@router.get("/companies")
async def list_companies(
    active: Optional[str] = None,
    need: Optional[str] = None,
    scope: Optional[str] = None,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """
    active=1          → only active companies
    need=distribute   → only companies where the user can distribute
    scope=memberships → restrict to membership companies, even for superadmin
    """
    query = {}
    if active == "1":
        query["active"] = True

    if need == "distribute":
        company_ids = [
            m.companyId for m in claims.memberships
            if _mode(m.role) in ("superadmin", "admin") or m.can_distribute_leads
        ]
    else:
        company_ids = [m.companyId for m in claims.memberships]

    superadmin = is_superadmin(claims.memberships)
    if scope == "memberships" or not superadmin:
        if not company_ids:
            return JSONResponse([])
        query["id"] = {"$in": company_ids}
    elif need == "distribute" and company_ids:
        query["id"] = {"$in": company_ids}

    companies = await db.companies.find(query, COMPANY_PROJECTION).sort("name", 1).to_list(None)
    return JSONResponse(companies)


# ==================== RECEIVER ====================

@router.get("/receiver/companies")
async def receiver_companies(claims: SessionClaims = Depends(require_admin), db=Depends(get_db)):
    company_ids = [m.companyId for m in claims.memberships]
    if not company_ids:
        return {"success": True, "companies": []}

    companies = await db.companies.find(
        {"id": {"$in": company_ids}, "active": True, "roleMode": {"$in": RECEIVING_MODES}},
        {"_id": 0, "id": 1, "name": 1, "roleMode": 1}
    ).to_list(None)
    return {"success": True, "companies": companies}


@router.get("/receiver/lead-summary")
async def receiver_lead_summary(
    companyId: Optional[str] = None,
    day: str = "",
    claims: SessionClaims = Depends(require_admin),
    db=Depends(get_db),
):
    """Compteurs par receiver (assigned_to) et par statut."""
    if not companyId:
        raise BadRequest("companyId required")
    if not _has_receiver_membership(claims, companyId):
        raise Forbidden()

    query = {"assignedCompanyId": companyId}
    if day:
        query["workingDay"] = day

    leads = await db.leads.find(query, {"_id": 0, "assigned_to": 1, "lead_status": 1}).to_list(None)

    counters = {}
    for lead in leads:
        uid = lead.get("assigned_to")
        row = counters.setdefault(uid, {
            "total": 0, "approved": 0, "pending": 0,
            "rejected": 0, "working": 0, "assigned": 0,
        })
        row["total"] += 1
        status = lead.get("lead_status")
        if status == "in_progress":
            row["working"] += 1
        elif status in row:
            row[status] += 1

    user_ids = [uid for uid in counters if uid]
    users = {}
    if user_ids:
        async for u in db.users.find({"id": {"$in": user_ids}}, USER_REF_PROJECTION):
            users[u["id"]] = u

    summary = []
    for uid, row in counters.items():
        u = users.get(uid, {})
        summary.append({
            "userId": uid,
            "name": u.get("name") or "Unknown",
            "email": u.get("email"),
            "employeeId": u.get("employeeId"),
            **row,
        })
    summary.sort(key=lambda r: (-r["total"], r["name"]))

    return {"success": True, "summary": summary}


@router.get("/receiver/working-days")
async def receiver_working_days(
    companyId: Optional[str] = None,
    claims: SessionClaims = Depends(require_admin),
    db=Depends(get_db),
):
    if not companyId:
        raise BadRequest("companyId required")
    if not _has_receiver_membership(claims, companyId):
        raise Forbidden()

    days = await db.leads.distinct("workingDay", {"assignedCompanyId": companyId})
    return {"success": True, "days": sorted((d for d in days if d), reverse=True)}


# ==================== DISTRIBUTION (proxy) ====================

@router.get("/distribution/today")
async def distribution_today(request: Request, claims: SessionClaims = Depends(get_session_claims)):
    company_id = distribution_company_id(request)
    require_distribution(claims, company_id)

    status, data = await upstream.forward(
        "GET", "/api/admin/distribution/today",
        headers=upstream.upstream_headers(claims, company_id),
        params={"companyId": company_id},
    )
    return upstream.as_response(status, data)


@router.post("/distribution/today/toggle")
async def toggle_distribution_today(
    request: Request,
    data: Optional[DistributionToggle] = None,
    claims: SessionClaims = Depends(get_session_claims),
):
    company_id = distribution_company_id(request)
    require_distribution(claims, company_id)
    active = bool(data and data.active)

    status, body = await upstream.forward(
        "POST", "/api/admin/distribution/today/toggle",
        headers=upstream.upstream_headers(claims, company_id),
        params={"companyId": company_id},
        json_body={"active": active, "activatedBy": claims.user_id},
    )
    logger.info(f"[DISTRIBUTION] {claims.user_id} set today={active} for {company_id or 'global'} → {status}")
    return upstream.as_response(status, body)


@router.patch("/receivers/{receiver_id}")
async def update_receiver(
    receiver_id: str,
    request: Request,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
):
    payload = body if isinstance(body, dict) else {}
    company_id = distribution_company_id(request)
    if not company_id and isinstance(payload.get("companyId"), str) and payload["companyId"].strip():
        company_id = payload["companyId"]

    require_distribution(claims, company_id)

    if company_id:
        payload = {**payload, "companyId": company_id}

    status, data = await upstream.forward(
        "PATCH", f"/api/admin/receivers/{receiver_id}",
        headers=upstream.upstream_headers(claims, company_id),
        json_body=payload,
    )
    return upstream.as_response(status, data)


@router.post("/receivers/bulk")
async def bulk_update_receivers(
    request: Request,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
):
    payload = body if isinstance(body, dict) else {}
    company_id = str(payload.get("companyId") or distribution_company_id(request) or "") or None

    require_distribution(claims, company_id)

    status, data = await upstream.forward(
        "POST", "/api/admin/receivers/bulk",
        headers=upstream.upstream_headers(claims, company_id),
        json_body=payload,
    )
    return upstream.as_response(status, data)


# ==================== LEAD TRANSFER (proxy) ====================

def _lead_transfer_company(claims: SessionClaims) -> str:
    company_ids = receiver_company_ids(claims)
    if not company_ids:
        raise Forbidden("No receiver company access found.")
    return company_ids[0]


@router.get("/lead-transfer")
async def lead_transfer_operators(claims: SessionClaims = Depends(get_session_claims)):
    company_id = _lead_transfer_company(claims)
    status, data = await upstream.forward(
        "GET", "/api/admin/lead-transfer/operators",
        headers=upstream.upstream_headers(claims, company_id),
    )
    return upstream.as_response(status, data)


@router.post("/lead-transfer")
async def lead_transfer(body: Optional[dict] = Body(None), claims: SessionClaims = Depends(get_session_claims)):
    company_id = _lead_transfer_company(claims)
    status, data = await upstream.forward(
        "POST", "/api/admin/lead-transfer",
        headers=upstream.upstream_headers(claims, company_id),
        json_body=body or {},
    )
    return upstream.as_response(status, data)


# ==================== SCREENSHOTS ====================

@router.get("/screenshots")
async def list_screenshots(
    workingDay: str = "",
    reviewed: Optional[str] = None,
    productId: str = "",
    page: int = 1,
    limit: int = 50,
    claims: SessionClaims = Depends(require_admin),
    db=Depends(get_db),
):
    page = max(page, 1)
    limit = min(max(limit, 1), 200)

    query = {}
    if claims.active_company_id:
        query["companyId"] = claims.active_company_id
    if workingDay:
        query["workingDay"] = workingDay
    if productId:
        query["productId"] = productId
    if reviewed in ("true", "1"):
        query["reviewed"] = True
    elif reviewed in ("false", "0"):
        query["reviewed"] = False

    rows = await db.screenshots.find(query, {"_id": 0}) \
        .sort("uploadedAt", -1) \
        .skip((page - 1) * limit) \
        .limit(limit) \
        .to_list(limit)
    total = await db.screenshots.count_documents(query)

    return {"page": page, "limit": limit, "total": total, "hasMore": page * limit < total, "data": rows}


@router.patch("/screenshots/review")
async def review_screenshot(
    background_tasks: BackgroundTasks,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(require_admin),
    db=Depends(get_db),
):
    payload = body if isinstance(body, dict) else {}
    status, data = await upstream.forward(
        "PATCH", "/employee/screenshots/review",
        headers=upstream.upstream_headers(claims),
        json_body=payload,
    )

    screenshot_id = payload.get("id") or payload.get("screenshotId")
    if 200 <= status < 300 and screenshot_id:
        doc = await db.screenshots.find_one({"id": str(screenshot_id)}, {"_id": 0})
        if doc:
            background_tasks.add_task(publish_screenshot_event, EVENT_REVIEWED, doc)

    return upstream.as_response(status, data)
