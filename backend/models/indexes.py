"""
Lead Suite - MongoDB indexes
Storage-level invariants live here: duplicate leads per working day and
duplicate distribution switches are rejected by the database itself.
"""

import logging
from pymongo import ASCENDING, DESCENDING

logger = logging.getLogger("indexes")


async def ensure_indexes(db):
    # Leads
    await db.leads.create_index([("number", ASCENDING), ("workingDay", ASCENDING)], unique=True, name="uniq_number_workingDay")
    await db.leads.create_index("id", unique=True)
    await db.leads.create_index("workingDay")
    await db.leads.create_index("lead_status")
    await db.leads.create_index("submitted_by")
    await db.leads.create_index("assigned_to")
    await db.leads.create_index("sourceCompanyId")
    await db.leads.create_index("targetCompanyId")
    await db.leads.create_index("assignedCompanyId")
    await db.leads.create_index([("workingDay", ASCENDING), ("assignedCompanyId", ASCENDING)])
    await db.leads.create_index([("assigned_to", ASCENDING), ("workingDay", DESCENDING), ("createdAt", DESCENDING)])

    # Distribution switches: companyId=None is the global switch
    await db.distribution_switches.create_index(
        [("companyId", ASCENDING), ("workingDay", ASCENDING)], unique=True, name="uniq_company_workingDay"
    )

    # Magic-link tokens (auto-purged once expiresAt passes)
    await db.login_tokens.create_index("token", unique=True)
    await db.login_tokens.create_index("expiresAt", expireAfterSeconds=0)

    # Users & companies
    await db.users.create_index("id", unique=True)
    await db.users.create_index("email", unique=True, sparse=True)
    await db.users.create_index("employeeId", unique=True, sparse=True)
    await db.users.create_index("memberships.companyId")
    await db.companies.create_index("id", unique=True)
    await db.companies.create_index("code", unique=True)

    # Screenshots & products
    await db.screenshots.create_index("id", unique=True)
    await db.screenshots.create_index("lead")
    await db.screenshots.create_index("companyId")
    await db.screenshots.create_index([("workingDay", ASCENDING), ("uploadedBy", ASCENDING), ("productId", ASCENDING)])
    await db.screenshots.create_index([("productMonth", ASCENDING), ("productId", ASCENDING)])
    await db.screenshots.create_index([("companyId", ASCENDING), ("workingDay", ASCENDING)])
    await db.company_monthly_products.create_index("id", unique=True)
    await db.company_monthly_products.create_index(
        [("companyId", ASCENDING), ("month", ASCENDING), ("name", ASCENDING)], unique=True
    )

    await db.activity_logs.create_index("created_at")

    logger.info("✅ Index MongoDB créés")
