"""
Lead Suite - Dashboard area guard
Decides, for a page path, whether to let the request through or where to
redirect it. API and public paths are never guarded.
"""

from typing import Optional
from urllib.parse import urlencode

from models import OPERATOR_ROLES, SessionClaims

SKIP_PREFIXES = (
    "/_next", "/api", "/public", "/favicon", "/sign-in", "/secure-login", "/unauthorize",
    "/docs", "/redoc", "/openapi.json",
)

ADMIN_AREA = "/dashboard/admin"
RECEIVER_SUMMARY_PAGE = "/dashboard/admin/receiver-lead-summary"
UPLOADER_ADMIN_RESTRICTED = {
    "/dashboard/admin/screenshots",
    "/dashboard/signup-summary",
    "/dashboard/admin/distribution",
}

UNAUTHORIZED_PAGE = "/unauthorize"


def is_guarded_path(path: str) -> bool:
    if path == "/":
        return False
    return not path.startswith(SKIP_PREFIXES)


def sign_in_redirect(path: str, query: str = "") -> str:
    callback = f"{path}?{query}" if query else path
    return "/sign-in?" + urlencode({"callbackUrl": callback})


def _role(claims: SessionClaims) -> Optional[str]:
    return getattr(claims.role, "value", claims.role)


def has_receiver_company(claims: SessionClaims) -> bool:
    return any(
        m.active and getattr(m.roleMode, "value", m.roleMode) in ("receiver", "hybrid")
        for m in claims.memberships
    )


def evaluate(path: str, query: str, claims: Optional[SessionClaims]) -> Optional[str]:
    """Redirect target, or None to allow."""
    if not is_guarded_path(path):
        return None

    if claims is None:
        return sign_in_redirect(path, query)

    role = _role(claims)
    if role == "superadmin":
        return None

    if path.startswith(RECEIVER_SUMMARY_PAGE):
        if not claims.is_admin or not has_receiver_company(claims):
            return UNAUTHORIZED_PAGE
        return None

    if path.startswith(ADMIN_AREA) and role in OPERATOR_ROLES:
        return UNAUTHORIZED_PAGE

    uploader_only = (
        len(claims.memberships) == 1
        and getattr(claims.memberships[0].roleMode, "value", claims.memberships[0].roleMode) == "uploader"
    )
    if uploader_only and role == "admin" and path in UPLOADER_ADMIN_RESTRICTED:
        return UNAUTHORIZED_PAGE

    return None
