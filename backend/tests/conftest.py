"""
Lead Suite - Test fixtures
In-memory MongoDB (mongomock-motor) injected through the get_db dependency.
"""

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from config import get_db, hash_password, new_id, now_iso
from models import ScreenshotDocument
from models.indexes import ensure_indexes
from services.sessions import start_session

PASSWORD = "LeadSuite2026!"


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["lead_suite_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
async def client(db):
    from server import app

    app.dependency_overrides[get_db] = lambda: db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


# ==================== SEED HELPERS ====================

async def make_company(db, code, mode="hybrid", active=True, name=None):
    company = {
        "id": new_id(),
        "name": name or f"Company {code}",
        "code": code,
        "roleMode": mode,
        "active": active,
        "products": [],
        "createdAt": now_iso(),
        "updatedAt": now_iso(),
    }
    await db.companies.insert_one(dict(company))
    return company


def membership(company, role="lead_operator", **flags):
    m = {"companyId": company["id"], "role": role}
    m.update(flags)
    return m


async def make_user(db, email, memberships=None, name=None, active=True):
    user = {
        "id": new_id(),
        "name": name or email.split("@")[0],
        "email": email,
        "employeeId": f"EMP-{email.split('@')[0]}",
        "passwordHash": hash_password(PASSWORD),
        "isActive": active,
        "memberships": memberships or [],
        "sessionEpoch": 0,
        "isLoggedIn": False,
        "loginHistory": [],
    }
    await db.users.insert_one(dict(user))
    return user


async def auth_headers(db, user, company_id=None):
    """Signs the user in (new session) and returns a Bearer header."""
    token, _ = await start_session(db, user, "127.0.0.1", "pytest", company_id)
    return {"Authorization": f"Bearer {token}"}


async def make_lead(db, number, working_day, **fields):
    lead = {
        "id": new_id(),
        "number": number,
        "fb_id_name": fields.pop("fb_id_name", ""),
        "client_name": fields.pop("client_name", ""),
        "address": fields.pop("address", ""),
        "post_link": "",
        "lead_status": fields.pop("lead_status", "pending"),
        "submitted_by": fields.pop("submitted_by", None),
        "assigned_to": fields.pop("assigned_to", None),
        "workingDay": working_day,
        "createdAt": fields.pop("createdAt", now_iso()),
        "updatedAt": now_iso(),
    }
    lead.update(fields)
    await db.leads.insert_one(dict(lead))
    return lead


async def make_screenshot(db, company, uploaded_by, lead_id, working_day, product_name="Card", **fields):
    shot = ScreenshotDocument(
        id=new_id(),
        lead=lead_id,
        productId=fields.pop("productId", new_id()),
        productName=product_name,
        productMonth=working_day[:7],
        url=fields.pop("url", f"https://cdn.test/{new_id()}.png"),
        uploadedBy=uploaded_by,
        uploadedAt=fields.pop("uploadedAt", now_iso()),
        workingDay=working_day,
        companyId=company["id"],
        **fields,
    ).model_dump()
    await db.screenshots.insert_one(dict(shot))
    return shot
