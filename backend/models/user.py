"""
Lead Suite - Users & memberships
A user belongs to companies through embedded memberships (one per company).
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    LEAD_OPERATOR = "lead_operator"
    FB_SUBMITTER = "fb_submitter"
    FB_ANALYTICS_VIEWER = "fb_analytics_viewer"


VALID_ROLES = [r.value for r in Role]
ADMIN_ROLES = ("superadmin", "admin")

# Roles allowed to receive a secure login link, and kept out of /dashboard/admin
OPERATOR_ROLES = ("lead_operator", "fb_submitter", "fb_analytics_viewer")


class Membership(BaseModel):
    model_config = ConfigDict(extra="ignore")

    companyId: str
    role: Role

    # raw capability flags
    canUploadLeads: bool = False
    canReceiveLeads: bool = False
    can_distribute_leads: bool = False
    can_distribute_fbids: bool = False
    can_create_user: bool = False
    can_view_all_leads: bool = False

    # read by the distributor (upstream)
    lastReceivedAt: Optional[str] = None
    distributionWeight: float = 1
    maxConcurrentLeads: int = 0
    dailyCap: int = 0  # 0 = unlimited per day


class LoginHistoryEntry(BaseModel):
    ip: str = "unknown"
    userAgent: str = "unknown"
    loggedInAt: Optional[str] = None
    loggedOutAt: Optional[str] = None


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    email: Optional[str] = None
    employeeId: Optional[str] = None
    isActive: bool = True
    memberships: List[Membership] = []

    currentSessionToken: Optional[str] = None
    sessionEpoch: int = 0
    isLoggedIn: bool = False
    lastLoginAt: Optional[str] = None
    lastLogoutAt: Optional[str] = None
    lastKnownIP: Optional[str] = None
    lastUserAgent: Optional[str] = None
    loginHistory: List[LoginHistoryEntry] = []


class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip()


class SwitchCompany(BaseModel):
    activeCompanyId: str


class GenerateLoginLink(BaseModel):
    userId: Optional[str] = None


class MagicLogin(BaseModel):
    token: Optional[str] = None


# Fields forwarded upstream on user creation
class UserCaps(BaseModel):
    canUploadLeads: bool = False
    canReceiveLeads: bool = False
    can_distribute_leads: bool = False
    can_distribute_fbids: bool = False
    can_create_user: bool = False


class UserCreateForward(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    employeeId: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    caps: Optional[UserCaps] = None
