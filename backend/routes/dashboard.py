"""
Lead Suite - Routes Dashboard (signups du jour)

Compte les screenshots d'un working day pour les companies receiver/hybrid
de l'utilisateur : totaux par company et par produit, puis une matrice
uploader × produit.
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends

from config import get_db
from errors import BadRequest
from models import SessionClaims
from routes.deps import get_session_claims
from services.capabilities import RECEIVING_MODES, is_superadmin
from services.working_day import is_working_day_string

logger = logging.getLogger("dashboard")

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

UNKNOWN_UPLOADER = "(Unknown)"


def _empty_totals() -> dict:
    return {"total": 0, "reviewed": 0, "unreviewed": 0}


async def receiving_companies(db, claims: SessionClaims) -> List[dict]:
    """Active receiver/hybrid companies of the caller's memberships, in membership order."""
    ids = [m.companyId for m in claims.memberships]
    if not ids:
        return []
    docs = await db.companies.find(
        {"id": {"$in": ids}, "roleMode": {"$in": list(RECEIVING_MODES)}, "active": {"$ne": False}},
        {"_id": 0, "id": 1, "name": 1}
    ).to_list(len(ids))
    by_id = {d["id"]: d for d in docs}
    return [by_id[cid] for cid in ids if cid in by_id]


@router.get("/signup-summary")
async def signup_summary(
    workingDay: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    if not is_working_day_string(workingDay):
        raise BadRequest("Invalid workingDay (YYYY-MM-DD required)")

    companies = await receiving_companies(db, claims)
    if not companies:
        return {"workingDay": workingDay, "companies": [], "totals": _empty_totals()}

    pipeline = [
        {"$match": {"companyId": {"$in": [c["id"] for c in companies]}, "workingDay": workingDay}},
        {"$group": {
            "_id": {
                "companyId": "$companyId",
                "productId": "$productId",
                "productName": "$productName",
                "reviewed": "$reviewed",
            },
            "count": {"$sum": 1},
        }},
    ]

    # companyId -> productName -> row
    by_company: Dict[str, Dict[str, dict]] = {}
    for doc in await db.screenshots.aggregate(pipeline).to_list(None):
        key = doc["_id"]
        products = by_company.setdefault(key["companyId"], {})
        row = products.setdefault(key.get("productName") or "", {
            "productId": str(key.get("productId") or ""),
            "productName": key.get("productName") or "",
            **_empty_totals(),
        })
        row["total"] += doc["count"]
        if key.get("reviewed") is True:
            row["reviewed"] += doc["count"]
        else:
            row["unreviewed"] += doc["count"]

    out = []
    totals = _empty_totals()
    for company in companies:
        products = by_company.get(company["id"], {})
        rows = [products[name] for name in sorted(products)]
        company_totals = _empty_totals()
        for row in rows:
            for k in company_totals:
                company_totals[k] += row[k]
        for k in totals:
            totals[k] += company_totals[k]
        out.append({
            "companyId": company["id"],
            "companyName": company.get("name") or "(unknown)",
            "totals": company_totals,
            "byProduct": rows,
        })

    return {"workingDay": workingDay, "companies": out, "totals": totals}


@router.get("/signup-summary/matrix")
async def signup_matrix(
    workingDay: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Une ligne par uploader, une colonne par produit, par company."""
    if not is_working_day_string(workingDay):
        raise BadRequest("Invalid workingDay (YYYY-MM-DD)")

    is_admin = is_superadmin(claims.memberships) or any(
        getattr(m.role, "value", m.role) == "admin" for m in claims.memberships
    )

    companies = await receiving_companies(db, claims)
    if not companies:
        return {"workingDay": workingDay, "isAdmin": is_admin, "companies": []}

    pipeline = [
        {"$match": {"companyId": {"$in": [c["id"] for c in companies]}, "workingDay": workingDay}},
        {"$group": {
            "_id": {"companyId": "$companyId", "uploadedBy": "$uploadedBy", "productName": "$productName"},
            "count": {"$sum": 1},
        }},
    ]
    counts = await db.screenshots.aggregate(pipeline).to_list(None)

    uploader_ids = list({c["_id"].get("uploadedBy") for c in counts if c["_id"].get("uploadedBy")})
    users = {}
    if uploader_ids:
        docs = await db.users.find(
            {"id": {"$in": uploader_ids}}, {"_id": 0, "id": 1, "name": 1, "employeeId": 1}
        ).to_list(len(uploader_ids))
        users = {u["id"]: u for u in docs}

    products_by_company: Dict[str, set] = {}
    rows_by_company: Dict[str, Dict[str, dict]] = {}
    for c in counts:
        key = c["_id"]
        cid = key["companyId"]
        uid = key.get("uploadedBy") or "null"
        pname = key.get("productName") or ""
        products_by_company.setdefault(cid, set()).add(pname)

        user = users.get(uid, {})
        row = rows_by_company.setdefault(cid, {}).setdefault(uid, {
            "_id": uid,
            "employeeId": user.get("employeeId"),
            "name": user.get("name") or UNKNOWN_UPLOADER,
            "total": 0,
            "products": {},
        })
        row["products"][pname] = row["products"].get(pname, 0) + c["count"]
        row["total"] += c["count"]

    out = []
    for company in companies:
        cid = company["id"]
        ordered = sorted(products_by_company.get(cid, set()))
        rows = sorted(rows_by_company.get(cid, {}).values(), key=lambda r: (-r["total"], r["name"]))
        out.append({
            "companyId": cid,
            "companyName": company.get("name") or "(Unknown Company)",
            "orderedProducts": ordered,
            "rows": rows,
            "columnTotals": {p: sum(r["products"].get(p, 0) for r in rows) for p in ordered},
        })

    return {"workingDay": workingDay, "isAdmin": is_admin, "companies": out}
