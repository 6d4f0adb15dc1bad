"""
Lead Suite - Routes Products
Produits mensuels d'une company (sélection à l'upload de screenshot).
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from config import get_db
from errors import BadRequest
from models import SessionClaims
from routes.deps import get_session_claims
from services.working_day import is_month_string

router = APIRouter(tags=["Products"])


@router.get("/products")
async def list_products(
    month: str = "",
    companyId: Optional[str] = None,
    claims: SessionClaims = Depends(get_session_claims),
    db=Depends(get_db),
):
    """GET /api/products?month=YYYY-MM[&companyId=...] (défaut : première membership)"""
    if not is_month_string(month):
        raise BadRequest("Invalid or missing month=YYYY-MM")

    company_id = companyId
    if not company_id:
        if not claims.memberships:
            return JSONResponse([])
        company_id = claims.memberships[0].companyId

    docs = await db.company_monthly_products.find(
        {"companyId": company_id, "month": month, "active": True},
        {"_id": 0, "id": 1, "name": 1}
    ).sort([("order", 1), ("name", 1)]).to_list(None)

    return JSONResponse([{"_id": d["id"], "name": d["name"], "month": month} for d in docs])
