"""
Lead Suite - Distribution switch & login tokens
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class DistributionSwitch(BaseModel):
    """
    ON/OFF for automatic assignment on one working day.
    companyId=None is the global switch; one document per (companyId, workingDay).
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    workingDay: str
    isActive: bool = False
    activatedBy: Optional[str] = None
    activatedAt: Optional[str] = None
    companyId: Optional[str] = None


class DistributionToggle(BaseModel):
    active: bool = False


class LoginToken(BaseModel):
    """Single-use magic-link token. expiresAt is a BSON date (TTL index)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    userId: str
    token: str
    userAgent: Optional[str] = None
    ip: Optional[str] = None
    used: bool = False
    expiresAt: datetime
    createdAt: Optional[str] = None
