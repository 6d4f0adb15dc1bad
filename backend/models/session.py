"""
Lead Suite - Session claims
One validated shape for everything a request knows about its caller.
Built from the DB (services/sessions.hydrate_claims), never from client input.
"""

from typing import List, Optional
from pydantic import BaseModel

from .company import RoleMode
from .user import Role


class SessionCaps(BaseModel):
    canUploadLeads: bool = False
    canReceiveLeads: bool = False
    can_distribute_leads: bool = False
    can_distribute_fbids: bool = False
    can_create_user: bool = False
    can_view_all_leads: bool = False


class MembershipView(BaseModel):
    companyId: str
    companyCode: Optional[str] = None
    companyName: Optional[str] = None
    role: Role
    roleMode: Optional[RoleMode] = RoleMode.HYBRID  # None: unknown company, fail-closed
    active: bool = True

    # raw flags from the membership
    canUploadLeads_raw: bool = False
    canReceiveLeads_raw: bool = False
    can_distribute_leads: bool = False
    can_distribute_fbids: bool = False
    can_create_user: bool = False
    can_view_all_leads: bool = False

    # after company policy
    canUploadLeads: bool = False
    canReceiveLeads: bool = False


class SessionClaims(BaseModel):
    user_id: str
    session_token: str
    session_epoch: int = 0
    name: str = ""
    email: Optional[str] = None

    active_company_id: Optional[str] = None
    active_company_code: Optional[str] = None
    role: Optional[Role] = None
    role_mode: Optional[RoleMode] = RoleMode.HYBRID
    caps: SessionCaps = SessionCaps()
    memberships: List[MembershipView] = []

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    def membership_for(self, company_id: Optional[str]) -> Optional[MembershipView]:
        if not company_id:
            return None
        for m in self.memberships:
            if m.companyId == str(company_id):
                return m
        return None


class SessionToken(BaseModel):
    """Payload signed into the session cookie."""
    sub: str
    userId: str
    sessionToken: str
    epoch: int = 0
    activeCompanyId: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
