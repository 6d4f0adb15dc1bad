"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Lead Suite - Lead                                                           ║
║                                                                              ║
║  RULES:                                                                      ║
║  1. (number, workingDay) is unique: the same number cannot be submitted      ║
║     twice on the same working day (enforced by a unique index)               ║
║  2. Three company references:                                                ║
║     sourceCompanyId   = where it was submitted                               ║
║     targetCompanyId   = where it should go                                   ║
║     assignedCompanyId = where the distributor actually put it                ║
║  3. assignedCompanyId scopes screenshots uploaded against the lead           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator


class LeadStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"


VALID_LEAD_STATUSES = [s.value for s in LeadStatus]


class LeadDocument(BaseModel):
    """Structure complète d'un lead en base"""
    model_config = ConfigDict(extra="ignore")

    id: str
    fb_id_name: str = ""
    client_name: str = ""
    number: str
    rent: str = ""
    house_apt: str = ""
    house_apt_details: str = ""
    address: str = ""
    post_link: str = ""
    screenshot_link: str = ""
    signup_screenshot_link: str = ""

    lead_status: LeadStatus = LeadStatus.PENDING

    submitted_by: str
    assigned_to: Optional[str] = None
    assigned_at: Optional[str] = None

    workingDay: str

    sourceCompanyId: Optional[str] = None
    targetCompanyId: Optional[str] = None
    assignedCompanyId: Optional[str] = None

    createdAt: str = ""
    updatedAt: str = ""


class LeadSubmit(BaseModel):
    """Lead soumis par un uploader"""
    model_config = ConfigDict(str_strip_whitespace=True)

    number: str
    fb_id_name: str = ""
    client_name: str = ""
    rent: str = ""
    house_apt: str = ""
    house_apt_details: str = ""
    address: str = ""
    post_link: str = ""
    targetCompanyId: Optional[str] = None

    @field_validator("number")
    @classmethod
    def number_required(cls, v):
        if not v:
            raise ValueError("number is required")
        return v


class LeadStatusUpdate(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None


# Columns returned by the admin list view
ADMIN_LIST_PROJECTION = {
    "_id": 0,
    "id": 1,
    "fb_id_name": 1,
    "client_name": 1,
    "number": 1,
    "rent": 1,
    "submitted_by": 1,
    "address": 1,
    "post_link": 1,
    "lead_status": 1,
    "workingDay": 1,
    "assigned_to": 1,
    "createdAt": 1,
}

# Columns returned to the receiver
EMPLOYEE_LIST_PROJECTION = {
    "_id": 0,
    "id": 1,
    "client_name": 1,
    "number": 1,
    "fb_id_name": 1,
    "lead_status": 1,
    "workingDay": 1,
    "rent": 1,
    "house_apt": 1,
    "house_apt_details": 1,
    "address": 1,
    "post_link": 1,
    "assigned_to": 1,
    "createdAt": 1,
}
