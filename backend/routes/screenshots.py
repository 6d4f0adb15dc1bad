"""
Lead Suite - Routes Screenshots (preuves de signup)

Upload : le lead fait foi pour le scope company (assignedCompanyId),
le produit doit être actif, du même mois et de la même company.
Après création : realtime + push en tâche de fond.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from config import get_db, is_valid_id, new_id, now_iso
from errors import BadRequest, Forbidden, NotFound
from models import ScreenshotDelete, ScreenshotDocument, ScreenshotUpload, SessionClaims
from routes.deps import get_session_claims
from services.activity_logger import log_activity
from services.realtime import EVENT_UPLOADED, broadcast_screenshot_push, publish_screenshot_event
from services.working_day import is_working_day_string, month_of_working_day

logger = logging.getLogger("screenshots")

router = APIRouter(prefix="/employee/screenshots", tags=["Screenshots"])

RECENT_URLS = 3


@router.post("/upload", status_code=201)
async def upload_screenshot(
    data: ScreenshotUpload,
    background_tasks: BackgroundTasks,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    # Validation sans toucher la DB
    if not is_valid_id(data.leadId):
        raise BadRequest("Invalid leadId")
    if not is_valid_id(data.productId):
        raise BadRequest("Invalid productId")
    if not isinstance(data.url, str) or not data.url.strip():
        raise BadRequest("Invalid url")
    if not is_working_day_string(data.workingDay):
        raise BadRequest("Invalid workingDay")

    lead = await db.leads.find_one({"id": data.leadId}, {"_id": 0, "id": 1, "assignedCompanyId": 1})
    if not lead:
        raise NotFound("Lead not found")
    company_id = lead.get("assignedCompanyId")
    if not company_id:
        raise BadRequest("Lead has no assignedCompanyId")

    product = await db.company_monthly_products.find_one({"id": data.productId}, {"_id": 0})
    if not product:
        raise NotFound("Product not found")
    if product.get("active") is False:
        raise BadRequest("Product is inactive")

    month = month_of_working_day(data.workingDay)
    if product.get("month") != month:
        raise BadRequest(f"Product belongs to {product.get('month')}, but workingDay is {month}")
    if str(product.get("companyId")) != str(company_id):
        raise Forbidden("Product and lead belong to different companies")

    product_name = str(product.get("name", "")).strip()
    doc = ScreenshotDocument(
        id=new_id(),
        lead=data.leadId,
        url=data.url.strip(),
        uploadedBy=claims.user_id,
        uploadedAt=now_iso(),
        workingDay=data.workingDay,
        companyId=str(company_id),
        productId=product["id"],
        productName=product_name,
        productMonth=product["month"],
    ).model_dump()
    await db.screenshots.insert_one(dict(doc))
    logger.info(f"[SCREENSHOT] {doc['id']} uploaded by {claims.user_id} for lead {data.leadId}")

    background_tasks.add_task(publish_screenshot_event, EVENT_UPLOADED, doc)
    background_tasks.add_task(broadcast_screenshot_push, doc)

    return {
        "_id": doc["id"],
        "productName": doc["productName"],
        "productMonth": doc["productMonth"],
        "workingDay": doc["workingDay"],
        "url": doc["url"],
    }


@router.delete("/delete")
async def delete_screenshot(
    data: ScreenshotDelete,
    request: Request,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Admin: tout screenshot de la company active. Sinon : uniquement les siens."""
    if not is_valid_id(data.id):
        raise BadRequest("Invalid id")

    doc = await db.screenshots.find_one({"id": data.id}, {"_id": 0})
    if not doc:
        raise NotFound()

    if claims.active_company_id and str(doc.get("companyId") or "") != claims.active_company_id:
        raise Forbidden("Forbidden (company mismatch)")

    is_uploader = str(doc.get("uploadedBy") or "") == claims.user_id
    if not claims.is_admin and not is_uploader:
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → delete screenshot {data.id}")
        raise Forbidden()

    await db.screenshots.delete_one({"id": data.id})

    await log_activity(
        db,
        {"id": claims.user_id, "email": claims.email, "name": claims.name},
        "delete",
        "screenshot",
        entity_id=data.id,
        details={"lead": doc.get("lead"), "workingDay": doc.get("workingDay")},
        ip_address=request.client.host if request.client else None,
    )
    return {"success": True}


@router.get("/summary")
async def screenshot_summary(
    workingDay: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Totaux du jour pour l'utilisateur + détail par produit."""
    if not is_working_day_string(workingDay):
        raise BadRequest("workingDay (YYYY-MM-DD) required")

    query = {"uploadedBy": claims.user_id, "workingDay": workingDay}
    if claims.active_company_id:
        query["companyId"] = claims.active_company_id

    shots = await db.screenshots.find(query, {"_id": 0}).sort("uploadedAt", 1).to_list(None)

    per_product = {}
    for s in shots:
        key = s.get("productName") or s.get("product") or "Unknown"
        row = per_product.setdefault(key, {
            "product": key,
            "count": 0,
            "leads": set(),
            "firstUploadAt": s.get("uploadedAt"),
            "lastUploadAt": s.get("uploadedAt"),
            "urls": [],
        })
        row["count"] += 1
        row["leads"].add(s.get("lead"))
        row["lastUploadAt"] = s.get("uploadedAt")
        row["urls"].append(s.get("url"))

    items = []
    for row in per_product.values():
        items.append({
            "product": row["product"],
            "count": row["count"],
            "distinctLeads": len(row["leads"]),
            "firstUploadAt": row["firstUploadAt"],
            "lastUploadAt": row["lastUploadAt"],
            "recentUrls": list(reversed(row["urls"]))[:RECENT_URLS],
        })
    items.sort(key=lambda r: (-r["count"], r["product"]))

    return {
        "workingDay": workingDay,
        "total": len(shots),
        "distinctLeads": len({s.get("lead") for s in shots}),
        "items": items,
    }


@router.get("/search")
async def search_screenshots(
    leadId: str = "",
    workingDay: str = "",
    product: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Screenshots d'un lead (modale), filtres optionnels workingDay / produit."""
    if not is_valid_id(leadId):
        raise BadRequest("Invalid leadId")

    query = {"lead": leadId}
    if workingDay:
        if not is_working_day_string(workingDay):
            raise BadRequest("Invalid workingDay (YYYY-MM-DD)")
        query["workingDay"] = workingDay
    if product.strip():
        query["productName"] = product.strip()
    if claims.active_company_id:
        query["companyId"] = claims.active_company_id

    rows = await db.screenshots.find(query, {"_id": 0, "id": 1, "url": 1, "productName": 1}) \
        .sort("uploadedAt", -1) \
        .to_list(None)

    return JSONResponse([
        {"_id": r["id"], "url": r.get("url"), "productName": r.get("productName"), "product": r.get("productName")}
        for r in rows
    ])
