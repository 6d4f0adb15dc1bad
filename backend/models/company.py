"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Lead Suite - Company (tenant)                                               ║
║                                                                              ║
║  roleMode decides what a company's members may do at all:                    ║
║  - uploader : members upload leads, never receive                            ║
║  - receiver : members receive leads, never upload                            ║
║  - hybrid   : both                                                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class RoleMode(str, Enum):
    UPLOADER = "uploader"
    RECEIVER = "receiver"
    HYBRID = "hybrid"


VALID_ROLE_MODES = [m.value for m in RoleMode]


class Company(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    code: str
    roleMode: RoleMode = RoleMode.HYBRID
    active: bool = True
    products: List[str] = []
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
