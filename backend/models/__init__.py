"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Lead Suite - Models Package                                                 ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import LeadStatus, Membership, SessionClaims, etc.              ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Company (tenant)
from .company import (
    RoleMode,
    VALID_ROLE_MODES,
    Company,
)

# Users
from .user import (
    Role,
    VALID_ROLES,
    ADMIN_ROLES,
    OPERATOR_ROLES,
    Membership,
    User,
    UserLogin,
    SwitchCompany,
    GenerateLoginLink,
    MagicLogin,
    UserCaps,
    UserCreateForward,
)

# Lead
from .lead import (
    LeadStatus,
    VALID_LEAD_STATUSES,
    LeadDocument,
    LeadSubmit,
    LeadStatusUpdate,
    ADMIN_LIST_PROJECTION,
    EMPLOYEE_LIST_PROJECTION,
)

# Screenshots & products
from .screenshot import (
    ScreenshotDocument,
    ScreenshotUpload,
    ScreenshotDelete,
    CompanyMonthlyProduct,
)

# Distribution & login tokens
from .distribution import (
    DistributionSwitch,
    DistributionToggle,
    LoginToken,
)

# Session
from .session import (
    SessionCaps,
    MembershipView,
    SessionClaims,
    SessionToken,
)

__all__ = [
    "RoleMode",
    "VALID_ROLE_MODES",
    "Company",
    "Role",
    "VALID_ROLES",
    "ADMIN_ROLES",
    "OPERATOR_ROLES",
    "Membership",
    "User",
    "UserLogin",
    "SwitchCompany",
    "GenerateLoginLink",
    "MagicLogin",
    "UserCaps",
    "UserCreateForward",
    "LeadStatus",
    "VALID_LEAD_STATUSES",
    "LeadDocument",
    "LeadSubmit",
    "LeadStatusUpdate",
    "ADMIN_LIST_PROJECTION",
    "EMPLOYEE_LIST_PROJECTION",
    "ScreenshotDocument",
    "ScreenshotUpload",
    "ScreenshotDelete",
    "CompanyMonthlyProduct",
    "DistributionSwitch",
    "DistributionToggle",
    "LoginToken",
    "SessionCaps",
    "MembershipView",
    "SessionClaims",
    "SessionToken",
]
