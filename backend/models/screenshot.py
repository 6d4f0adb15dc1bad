"""
Lead Suite - Screenshots (proof of work) & monthly products
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class ScreenshotDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    lead: str
    productId: str
    productName: str
    productMonth: str  # "YYYY-MM" derived from workingDay
    url: str
    uploadedBy: Optional[str] = None
    uploadedAt: str
    workingDay: str  # "YYYY-MM-DD"
    reviewed: bool = False
    reviewedAt: Optional[str] = None
    reviewedBy: Optional[str] = None
    companyId: Optional[str] = None


class ScreenshotUpload(BaseModel):
    # all optional, each field gets its own 400 message
    leadId: Optional[str] = None
    url: Optional[str] = None
    productId: Optional[str] = None
    workingDay: Optional[str] = None


class ScreenshotDelete(BaseModel):
    id: Optional[str] = None


class CompanyMonthlyProduct(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    companyId: str
    month: str  # "YYYY-MM"
    name: str
    slug: Optional[str] = None
    order: int = 0
    active: bool = True
