"""
Lead Suite - Capability resolution
Membership flags are the user's wish, the company's roleMode is the policy.
Effective capability = membership flag AND company allowance.
Roles are presets for coarse checks (admin areas), caps gate lead flows.
"""

import logging
from typing import Dict, Iterable, List, Optional

from config import UNKNOWN_COMPANY_FAILS_CLOSED
from models import MembershipView, SessionCaps, SessionClaims

logger = logging.getLogger("capabilities")

ADMIN_ROLES = ("superadmin", "admin")
RECEIVING_MODES = ("receiver", "hybrid")


def _get(m, key, default=None):
    if m is None:
        return default
    if isinstance(m, dict):
        return m.get(key, default)
    return getattr(m, key, default)


def _mode_value(mode) -> str:
    return getattr(mode, "value", mode) or "hybrid"


def company_allows(mode) -> Dict[str, bool]:
    mode = _mode_value(mode)
    return {
        "uploadLeads": mode != "receiver",  # uploader/hybrid
        "receiveLeads": mode != "uploader",  # receiver/hybrid
    }


def apply_company_mode(can_upload: bool, can_receive: bool, mode) -> Dict[str, bool]:
    allows = company_allows(mode)
    return {
        "canUploadLeads": bool(can_upload) and allows["uploadLeads"],
        "canReceiveLeads": bool(can_receive) and allows["receiveLeads"],
    }


def find_membership(memberships: Optional[Iterable], company_id: Optional[str]):
    if not memberships or not company_id:
        return None
    for m in memberships:
        if str(_get(m, "companyId")) == str(company_id):
            return m
    return None


def _company_mode(company: Optional[dict]) -> Optional[str]:
    """roleMode of a loaded company. Unknown company: hybrid, or None when failing closed."""
    if company is not None:
        return _mode_value(company.get("roleMode"))
    if UNKNOWN_COMPANY_FAILS_CLOSED:
        return None
    return "hybrid"


def effective_for_membership(membership, company: Optional[dict]) -> dict:
    """
    Raw flags of one membership, its company's roleMode and the effective
    lead caps. roleMode None (unknown company, fail-closed) denies both caps.
    """
    mode = _company_mode(company)
    raw_upload = bool(_get(membership, "canUploadLeads", False))
    raw_receive = bool(_get(membership, "canReceiveLeads", False))
    if mode is None:
        effective = {"canUploadLeads": False, "canReceiveLeads": False}
    else:
        effective = apply_company_mode(raw_upload, raw_receive, mode)
    return {
        "roleMode": mode,
        "canUploadLeads_raw": raw_upload,
        "canReceiveLeads_raw": raw_receive,
        **effective,
    }


async def get_effective_caps(db, user: dict, active_company_id: Optional[str]) -> dict:
    """
    Effective capabilities of `user` in `active_company_id`.
    role is None when the user has no membership in that company,
    roleMode is None when the company is unknown and UNKNOWN_COMPANY_FAILS_CLOSED is set.
    """
    membership = find_membership((user or {}).get("memberships"), active_company_id)
    company = None
    if active_company_id:
        company = await db.companies.find_one({"id": str(active_company_id)}, {"_id": 0, "roleMode": 1})
    if company is None:
        logger.warning(f"[CAPS] Unknown company {active_company_id}")

    effective = effective_for_membership(membership, company)
    return {
        "role": _get(membership, "role"),
        "roleMode": effective["roleMode"],
        "canUploadLeads": effective["canUploadLeads"],
        "canReceiveLeads": effective["canReceiveLeads"],
        "can_distribute_leads": bool(_get(membership, "can_distribute_leads", False)),
        "can_distribute_fbids": bool(_get(membership, "can_distribute_fbids", False)),
        "can_create_user": bool(_get(membership, "can_create_user", False)),
        "can_view_all_leads": bool(_get(membership, "can_view_all_leads", False)),
    }


def build_membership_views(memberships: Optional[List[dict]], companies_by_id: Dict[str, dict]) -> List[MembershipView]:
    """Raw + effective caps for each membership, with company code/name/mode."""
    views = []
    for m in memberships or []:
        cid = str(_get(m, "companyId"))
        company = companies_by_id.get(cid)
        effective = effective_for_membership(m, company)

        code = (company or {}).get("code")
        views.append(MembershipView(
            companyId=cid,
            companyCode=str(code).lower() if code else None,
            companyName=(company or {}).get("name"),
            role=_get(m, "role"),
            active=company.get("active", True) if company else True,
            can_distribute_leads=bool(_get(m, "can_distribute_leads", False)),
            can_distribute_fbids=bool(_get(m, "can_distribute_fbids", False)),
            can_create_user=bool(_get(m, "can_create_user", False)),
            can_view_all_leads=bool(_get(m, "can_view_all_leads", False)),
            **effective,
        ))
    return views


def choose_active_company(views: List[MembershipView], requested: Optional[str] = None) -> Optional[str]:
    """Requested company if it is one of ours, else single / first active / first."""
    if requested and any(v.companyId == str(requested) for v in views):
        return str(requested)
    if len(views) == 1:
        return views[0].companyId
    for v in views:
        if v.active:
            return v.companyId
    return views[0].companyId if views else None


def caps_from_view(view: Optional[MembershipView]) -> SessionCaps:
    if view is None:
        return SessionCaps()
    return SessionCaps(
        canUploadLeads=view.canUploadLeads,
        canReceiveLeads=view.canReceiveLeads,
        can_distribute_leads=view.can_distribute_leads,
        can_distribute_fbids=view.can_distribute_fbids,
        can_create_user=view.can_create_user,
        can_view_all_leads=view.can_view_all_leads,
    )


# ==================== PERMISSION CHECK HELPERS ====================

def can_view_all(claims: Optional[SessionClaims]) -> bool:
    if claims is None:
        return False
    return claims.is_admin or claims.caps.can_view_all_leads


def _is_admin_membership(m) -> bool:
    return _mode_value(_get(m, "role")) in ADMIN_ROLES


def has_distribution_permission(memberships: Optional[Iterable], company_id: Optional[str] = None) -> bool:
    """
    Admin/superadmin or can_distribute_leads.
    With a company: that membership only. Without: any membership.
    """
    memberships = list(memberships or [])
    check = lambda m: m is not None and (_is_admin_membership(m) or bool(_get(m, "can_distribute_leads", False)))
    if company_id:
        return check(find_membership(memberships, company_id))
    return any(check(m) for m in memberships)


def has_upload_permission(memberships: Optional[Iterable], company_id: Optional[str] = None) -> bool:
    memberships = list(memberships or [])
    check = lambda m: m is not None and (_is_admin_membership(m) or bool(_get(m, "canUploadLeads", False)))
    if company_id:
        return check(find_membership(memberships, company_id))
    return any(check(m) for m in memberships)


def is_superadmin(memberships: Optional[Iterable]) -> bool:
    return any(_mode_value(_get(m, "role")) == "superadmin" for m in memberships or [])


def receiver_company_ids(claims: SessionClaims) -> List[str]:
    """Active receiver/hybrid companies of the session, in membership order."""
    return [
        m.companyId for m in claims.memberships
        if m.active and getattr(m.roleMode, "value", m.roleMode) in RECEIVING_MODES
    ]
