"""
Lead Suite — Company products administration (monthly + simple list)
Run: cd backend && pytest tests/test_company_products_routes.py -v
"""

import pytest

from config import new_id
from models import CompanyMonthlyProduct
from tests.conftest import auth_headers, make_company, make_user, membership


def monthly_url(company, month="2025-09"):
    return f"/api/admin/companies/{company['id']}/monthly-products?month={month}"


async def seed_product(db, company, name, month="2025-09", active=True, order=0):
    product = CompanyMonthlyProduct(id=new_id(), companyId=company["id"], month=month, name=name,
                                    active=active, order=order).model_dump()
    await db.company_monthly_products.insert_one(dict(product))
    return product


async def admin_of(db, company, role="admin"):
    user = await make_user(db, f"{role}-{company['code'].lower()}@test.com", [membership(company, role)])
    return await auth_headers(db, user)


@pytest.mark.asyncio
class TestMonthlyProducts:
    async def test_add_list_delete(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        headers = await admin_of(db, company)

        response = await client.post(monthly_url(company), json={"name": " Card "}, headers=headers)
        assert response.status_code == 200
        assert [p["name"] for p in response.json()["products"]] == ["Card"]

        await client.post(monthly_url(company), json={"name": "Card"}, headers=headers)
        await client.post(monthly_url(company), json={"name": "Loan"}, headers=headers)
        assert await db.company_monthly_products.count_documents({"companyId": company["id"]}) == 2

        stored = await db.company_monthly_products.find_one({"name": "Card"}, {"_id": 0})
        assert CompanyMonthlyProduct(**stored).slug == "card"

        response = await client.get(monthly_url(company), headers=headers)
        data = response.json()
        assert data["month"] == "2025-09"
        assert [p["name"] for p in data["products"]] == ["Card", "Loan"]
        assert "fallback" not in data

        response = await client.request("DELETE", monthly_url(company), json={"id": stored["id"]}, headers=headers)
        assert [p["name"] for p in response.json()["products"]] == ["Loan"]

    async def test_replace_upserts_and_deactivates(self, client, db):
        company = await make_company(db, "HYB")
        keep = await seed_product(db, company, "Card", order=1)
        await seed_product(db, company, "Loan")
        await seed_product(db, company, "Savings", active=False)
        headers = await admin_of(db, company)

        response = await client.put(monthly_url(company), json={"products": ["Card", "Savings", "Insurance", " "]},
                                    headers=headers)
        assert response.status_code == 200
        assert [p["name"] for p in response.json()["products"]] == ["Insurance", "Savings", "Card"]

        card = await db.company_monthly_products.find_one({"name": "Card"})
        assert card["id"] == keep["id"]
        loan = await db.company_monthly_products.find_one({"name": "Loan"})
        assert loan["active"] is False

    async def test_empty_month_offers_fallback(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        await seed_product(db, company, "Card", month="2025-08")
        await seed_product(db, company, "Old", month="2025-07")
        headers = await admin_of(db, company)

        response = await client.get(monthly_url(company, "2025-09"), headers=headers)
        data = response.json()
        assert data["products"] == []
        assert data["fallback"]["month"] == "2025-08"
        assert [p["name"] for p in data["fallback"]["products"]] == ["Card"]

        other = await make_company(db, "RC2", "receiver")
        response = await client.get(monthly_url(other), headers=await admin_of(db, other))
        assert response.json() == {"month": "2025-09", "products": [], "fallback": None}

    async def test_bad_input(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        headers = await admin_of(db, company)

        response = await client.get(monthly_url(company, "2025-9"), headers=headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or missing ?month=YYYY-MM"}

        response = await client.post(monthly_url(company), json={"name": "  "}, headers=headers)
        assert response.json() == {"error": "Missing product name"}

        response = await client.request("DELETE", monthly_url(company), json={"id": "x"}, headers=headers)
        assert response.json() == {"error": "Missing or invalid product id"}

    async def test_uploader_company_locked(self, client, db):
        company = await make_company(db, "UPL", "uploader")
        response = await client.post(monthly_url(company), json={"name": "Card"}, headers=await admin_of(db, company))
        assert response.status_code == 403
        assert response.json() == {"error": "Editing products is disabled for upload-only companies"}

    async def test_permissions(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        elsewhere = await make_company(db, "HYB")

        operator = await make_user(db, "op@test.com", [membership(company)])
        response = await client.post(monthly_url(company), json={"name": "Card"},
                                     headers=await auth_headers(db, operator))
        assert response.status_code == 403

        other_admin = await admin_of(db, elsewhere)
        response = await client.get(monthly_url(company), headers=other_admin)
        assert response.status_code == 403

        root = await admin_of(db, elsewhere, "superadmin")
        response = await client.post(monthly_url(company), json={"name": "Card"}, headers=root)
        assert response.status_code == 200

        response = await client.get(monthly_url({"id": new_id()}), headers=root)
        assert response.status_code == 404
        assert response.json() == {"error": "Company not found"}

    async def test_changes_are_logged(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        headers = await admin_of(db, company)

        await client.put(monthly_url(company), json={"products": ["Card"]}, headers=headers)

        log = await db.activity_logs.find_one({"entity_type": "monthly_products"})
        assert log["action"] == "replace"
        assert log["details"] == {"month": "2025-09", "products": ["Card"]}


@pytest.mark.asyncio
class TestCompanyProductList:
    async def test_add_replace_remove(self, client, db):
        company = await make_company(db, "HYB")
        headers = await admin_of(db, company)
        url = f"/api/admin/companies/{company['id']}/products"

        response = await client.post(url, json={"name": "x" * 100}, headers=headers)
        assert response.json() == {"ok": True, "products": ["x" * 80]}

        response = await client.put(url, json={"products": ["Card", "Loan", "Card", ""]}, headers=headers)
        assert response.json()["products"] == ["Card", "Loan"]

        await client.post(url, json={"name": "Card"}, headers=headers)
        response = await client.request("DELETE", url, json={"name": "Loan"}, headers=headers)
        assert response.json() == {"ok": True, "products": ["Card"]}

        response = await client.get(url, headers=headers)
        assert response.json() == {"products": ["Card"]}

    async def test_user_creator_may_edit(self, client, db):
        company = await make_company(db, "HYB")
        creator = await make_user(db, "hr@test.com", [membership(company, can_create_user=True)])
        operator = await make_user(db, "op@test.com", [membership(company)])
        url = f"/api/admin/companies/{company['id']}/products"

        response = await client.post(url, json={"name": "Card"}, headers=await auth_headers(db, creator))
        assert response.status_code == 200

        response = await client.post(url, json={"name": "Loan"}, headers=await auth_headers(db, operator))
        assert response.status_code == 403

        response = await client.get(url, headers=await auth_headers(db, operator))
        assert response.json() == {"products": ["Card"]}

    async def test_validation(self, client, db):
        company = await make_company(db, "HYB")
        headers = await admin_of(db, company)
        url = f"/api/admin/companies/{company['id']}/products"

        assert (await client.post(url, json={}, headers=headers)).json() == {"error": "Missing name"}
        assert (await client.put(url, json={"products": "Card"}, headers=headers)).status_code == 400
        response = await client.get(f"/api/admin/companies/{new_id()}/products", headers=headers)
        assert response.status_code == 404
