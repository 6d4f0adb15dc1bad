"""
Lead Suite - Routes Company Products (admin)

Deux listes par company :
- produits mensuels (company_monthly_products), choisis à l'upload de screenshot
- liste simple Company.products (ancienne liste, toujours lue par le front)

Édition réservée aux admins de la company (superadmin partout).
Une company uploader n'a pas de produits mensuels : pas de screenshots côté uploader.
"""

import re
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Request

from config import get_db, is_valid_id, new_id, now_iso
from errors import BadRequest, Forbidden, NotFound
from models import Company, CompanyMonthlyProduct, SessionClaims
from routes.deps import get_session_claims
from services.activity_logger import log_activity
from services.capabilities import ADMIN_ROLES, is_superadmin
from services.working_day import is_month_string

logger = logging.getLogger("company_products")

router = APIRouter(prefix="/admin/companies", tags=["Company Products"])

PRODUCT_NAME_MAX = 80


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _actor(claims: SessionClaims) -> dict:
    return {"id": claims.user_id, "email": claims.email, "name": claims.name}


def _ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _is_company_admin(claims: SessionClaims, company_id: str) -> bool:
    if is_superadmin(claims.memberships):
        return True
    m = claims.membership_for(company_id)
    return m is not None and getattr(m.role, "value", m.role) in ADMIN_ROLES


async def load_company(db, company_id: str) -> Company:
    doc = await db.companies.find_one({"id": company_id}, {"_id": 0})
    if not doc:
        raise NotFound("Company not found")
    return Company(**doc)


async def require_product_editor(db, claims: SessionClaims, company_id: str) -> Company:
    company = await load_company(db, company_id)
    if company.roleMode.value == "uploader":
        raise Forbidden("Editing products is disabled for upload-only companies")
    if not _is_company_admin(claims, company_id):
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → products of {company_id}")
        raise Forbidden()
    return company


def require_month(month: str) -> str:
    if not is_month_string(month):
        raise BadRequest("Invalid or missing ?month=YYYY-MM")
    return month


async def list_monthly(db, company_id: str, month: str) -> List[dict]:
    docs = await db.company_monthly_products.find(
        {"companyId": company_id, "month": month, "active": True},
        {"_id": 0, "id": 1, "name": 1, "order": 1, "active": 1}
    ).sort([("order", 1), ("name", 1)]).to_list(None)
    return [
        {"_id": d["id"], "name": d["name"], "order": d.get("order", 0), "active": bool(d.get("active"))}
        for d in docs
    ]


def _on_insert(company_id: str, month: str, name: str) -> dict:
    """Fields written only when the (companyId, month, name) product is created. active is always $set."""
    doc = CompanyMonthlyProduct(id=new_id(), companyId=company_id, month=month, name=name, slug=slugify(name))
    return doc.model_dump(exclude={"companyId", "month", "name", "active"})


# ==================== PRODUITS MENSUELS ====================

@router.get("/{company_id}/monthly-products")
async def get_monthly_products(
    company_id: str,
    month: str = "",
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Liste du mois. Vide : propose le dernier mois configuré en fallback."""
    await require_product_editor(db, claims, company_id)
    month = require_month(month)

    products = await list_monthly(db, company_id, month)
    if products:
        return {"month": month, "products": products}

    latest = await db.company_monthly_products.find(
        {"companyId": company_id}, {"_id": 0, "month": 1}
    ).sort("month", -1).limit(1).to_list(1)

    fallback = None
    if latest and latest[0].get("month") != month:
        fallback_products = await list_monthly(db, company_id, latest[0]["month"])
        if fallback_products:
            fallback = {"month": latest[0]["month"], "products": fallback_products}

    return {"month": month, "products": [], "fallback": fallback}


@router.put("/{company_id}/monthly-products")
async def replace_monthly_products(
    company_id: str,
    request: Request,
    month: str = "",
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """Remplace la liste du mois : upsert par nom (réactivés), les absents sont désactivés."""
    await require_product_editor(db, claims, company_id)
    month = require_month(month)

    raw = (body or {}).get("products")
    names = []
    for value in raw if isinstance(raw, list) else []:
        name = str(value or "").strip()
        if name and name not in names:
            names.append(name)

    for name in names:
        await db.company_monthly_products.update_one(
            {"companyId": company_id, "month": month, "name": name},
            {"$set": {"active": True}, "$setOnInsert": _on_insert(company_id, month, name)},
            upsert=True,
        )
    await db.company_monthly_products.update_many(
        {"companyId": company_id, "month": month, "name": {"$nin": names}},
        {"$set": {"active": False}}
    )

    logger.info(f"[PRODUCTS] {company_id} {month} replaced by {claims.user_id} ({len(names)} products)")
    await log_activity(db, _actor(claims), "replace", "monthly_products", entity_id=company_id,
                       details={"month": month, "products": names}, ip_address=_ip(request))

    return {"month": month, "products": await list_monthly(db, company_id, month)}


@router.post("/{company_id}/monthly-products")
async def add_monthly_product(
    company_id: str,
    request: Request,
    month: str = "",
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    await require_product_editor(db, claims, company_id)
    month = require_month(month)

    name = str((body or {}).get("name") or "").strip()
    if not name:
        raise BadRequest("Missing product name")

    # réactive le produit s'il existait déjà (id stable)
    await db.company_monthly_products.update_one(
        {"companyId": company_id, "month": month, "name": name},
        {"$set": {"active": True}, "$setOnInsert": _on_insert(company_id, month, name)},
        upsert=True,
    )

    await log_activity(db, _actor(claims), "create", "monthly_product", entity_id=company_id,
                       details={"month": month, "name": name}, ip_address=_ip(request))

    return {"month": month, "products": await list_monthly(db, company_id, month)}


@router.delete("/{company_id}/monthly-products")
async def delete_monthly_product(
    company_id: str,
    request: Request,
    month: str = "",
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    await require_product_editor(db, claims, company_id)
    month = require_month(month)

    product_id = (body or {}).get("id")
    if not is_valid_id(product_id):
        raise BadRequest("Missing or invalid product id")

    result = await db.company_monthly_products.delete_one({"id": product_id, "companyId": company_id, "month": month})
    if result.deleted_count:
        await log_activity(db, _actor(claims), "delete", "monthly_product", entity_id=product_id,
                           details={"companyId": company_id, "month": month}, ip_address=_ip(request))

    return {"month": month, "products": await list_monthly(db, company_id, month)}


# ==================== LISTE SIMPLE (Company.products) ====================

def _require_legacy_editor(claims: SessionClaims, company_id: str):
    """Admin de la company ou can_create_user."""
    if _is_company_admin(claims, company_id):
        return
    m = claims.membership_for(company_id)
    if m is None or not m.can_create_user:
        logger.warning(f"[PERMISSION_DENIED] {claims.user_id} → product list of {company_id}")
        raise Forbidden()


def _clean_name(value) -> str:
    return str(value or "").strip()[:PRODUCT_NAME_MAX]


async def _company_products(db, company_id: str) -> List[str]:
    return (await load_company(db, company_id)).products


@router.get("/{company_id}/products")
async def get_company_products(
    company_id: str,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    company = await load_company(db, company_id)
    if claims.membership_for(company_id) is None and not is_superadmin(claims.memberships):
        raise Forbidden()
    return {"products": company.products}


@router.post("/{company_id}/products")
async def add_company_product(
    company_id: str,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    await load_company(db, company_id)
    _require_legacy_editor(claims, company_id)

    name = _clean_name((body or {}).get("name"))
    if not name:
        raise BadRequest("Missing name")

    await db.companies.update_one(
        {"id": company_id},
        {"$addToSet": {"products": name}, "$set": {"updatedAt": now_iso()}}
    )
    return {"ok": True, "products": await _company_products(db, company_id)}


@router.put("/{company_id}/products")
async def replace_company_products(
    company_id: str,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    await load_company(db, company_id)
    _require_legacy_editor(claims, company_id)

    raw = (body or {}).get("products")
    if not isinstance(raw, list):
        raise BadRequest("products must be a list")
    products = []
    for value in raw:
        name = _clean_name(value)
        if name and name not in products:
            products.append(name)

    await db.companies.update_one(
        {"id": company_id},
        {"$set": {"products": products, "updatedAt": now_iso()}}
    )
    return {"ok": True, "products": await _company_products(db, company_id)}


@router.delete("/{company_id}/products")
async def remove_company_product(
    company_id: str,
    body: Optional[dict] = Body(None),
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    await load_company(db, company_id)
    _require_legacy_editor(claims, company_id)

    name = _clean_name((body or {}).get("name"))
    if not name:
        raise BadRequest("Missing name")

    await db.companies.update_one(
        {"id": company_id},
        {"$pull": {"products": name}, "$set": {"updatedAt": now_iso()}}
    )
    return {"ok": True, "products": await _company_products(db, company_id)}
