"""
Lead Suite — Admin routes: leads, companies, receiver summary, distribution proxies
Run: cd backend && pytest tests/test_admin_routes.py -v
"""

from unittest.mock import AsyncMock, patch

import pytest

from tests.conftest import auth_headers, make_company, make_lead, make_user, membership


def upstream_ok(body=None, status=200):
    return patch("services.upstream.forward", new=AsyncMock(return_value=(status, body or {"ok": True})))


@pytest.mark.asyncio
class TestAdminLeads:
    async def test_list_scoped_to_active_company(self, client, db):
        mine = await make_company(db, "MINE")
        other = await make_company(db, "OTHER")
        admin = await make_user(db, "admin@test.com", [membership(mine, "admin")])
        await make_lead(db, "1", "2025-09-10", assignedCompanyId=mine["id"])
        await make_lead(db, "2", "2025-09-11", sourceCompanyId=mine["id"])
        await make_lead(db, "3", "2025-09-11", targetCompanyId=other["id"])
        headers = await auth_headers(db, admin)

        response = await client.get("/api/admin/leads", headers=headers)
        data = response.json()
        assert response.status_code == 200
        assert data["total"] == 2
        assert {x["number"] for x in data["data"]} == {"1", "2"}
        assert data["hasMore"] is False

        response = await client.get("/api/admin/leads?workingDay=2025-09-11", headers=headers)
        assert [x["number"] for x in response.json()["data"]] == ["2"]

    async def test_pagination_and_sort(self, client, db):
        company = await make_company(db, "HYB")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        for i in range(3):
            await make_lead(db, f"n{i}", "2025-09-11", sourceCompanyId=company["id"],
                            createdAt=f"2025-09-11T10:0{i}:00")
        headers = await auth_headers(db, admin)

        response = await client.get("/api/admin/leads?limit=2&sort=createdAt", headers=headers)
        data = response.json()
        assert [x["number"] for x in data["data"]] == ["n0", "n1"]
        assert data["hasMore"] is True

    async def test_operator_needs_view_all(self, client, db):
        company = await make_company(db, "HYB")
        op = await make_user(db, "op@test.com", [membership(company)])
        viewer = await make_user(db, "viewer@test.com", [membership(company, can_view_all_leads=True)])

        response = await client.get("/api/admin/leads", headers=await auth_headers(db, op))
        assert response.status_code == 403

        response = await client.get("/api/admin/leads", headers=await auth_headers(db, viewer))
        assert response.status_code == 200

    async def test_working_days(self, client, db):
        company = await make_company(db, "HYB")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        await make_lead(db, "1", "2025-09-10")
        await make_lead(db, "2", "2025-09-12")
        headers = await auth_headers(db, admin)

        response = await client.get("/api/admin/leads/working-days", headers=headers)
        assert response.json() == {"workingDays": ["2025-09-12", "2025-09-10"], "count": 2}

    async def test_lead_detail_populates_users(self, client, db):
        company = await make_company(db, "HYB")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")], name="Admin")
        op = await make_user(db, "op@test.com", [membership(company)], name="Operator")
        lead = await make_lead(db, "1", "2025-09-10", submitted_by=admin["id"], assigned_to=op["id"])
        headers = await auth_headers(db, admin)

        response = await client.get(f"/api/admin/leads/{lead['id']}", headers=headers)
        data = response.json()["data"]
        assert data["submitted_by"]["name"] == "Admin"
        assert data["assigned_to"]["email"] == "op@test.com"
        assert "passwordHash" not in data["assigned_to"]

    async def test_lead_detail_errors(self, client, db):
        company = await make_company(db, "HYB")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        headers = await auth_headers(db, admin)

        response = await client.get("/api/admin/leads/not-an-id", headers=headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid id"}

        response = await client.get("/api/admin/leads/3f2b8c1e-0000-4000-8000-000000000000", headers=headers)
        assert response.status_code == 404


@pytest.mark.asyncio
class TestCompanies:
    async def test_member_sees_own_companies(self, client, db):
        a = await make_company(db, "A", name="Alpha")
        b = await make_company(db, "B", name="Beta", active=False)
        await make_company(db, "C", name="Gamma")
        user = await make_user(db, "u@test.com", [membership(a, "admin"), membership(b)])
        headers = await auth_headers(db, user)

        response = await client.get("/api/admin/companies", headers=headers)
        assert [c["name"] for c in response.json()] == ["Alpha", "Beta"]

        response = await client.get("/api/admin/companies?active=1", headers=headers)
        assert [c["name"] for c in response.json()] == ["Alpha"]

        response = await client.get("/api/admin/companies?need=distribute", headers=headers)
        assert [c["name"] for c in response.json()] == ["Alpha"]

    async def test_superadmin_sees_all(self, client, db):
        a = await make_company(db, "A", name="Alpha")
        await make_company(db, "B", name="Beta")
        root = await make_user(db, "root@test.com", [membership(a, "superadmin")])
        headers = await auth_headers(db, root)

        response = await client.get("/api/admin/companies", headers=headers)
        assert [c["name"] for c in response.json()] == ["Alpha", "Beta"]

        response = await client.get("/api/admin/companies?scope=memberships", headers=headers)
        assert [c["name"] for c in response.json()] == ["Alpha"]

    async def test_no_membership_empty_list(self, client, db):
        user = await make_user(db, "lonely@test.com")
        response = await client.get("/api/admin/companies", headers=await auth_headers(db, user))
        assert response.json() == []


@pytest.mark.asyncio
class TestReceiverSummary:
    async def test_counts_per_receiver(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        ana = await make_user(db, "ana@test.com", [membership(company)], name="Ana")
        bob = await make_user(db, "bob@test.com", [membership(company)], name="Bob")
        cid = company["id"]
        await make_lead(db, "1", "2025-09-11", assignedCompanyId=cid, assigned_to=bob["id"], lead_status="approved")
        await make_lead(db, "2", "2025-09-11", assignedCompanyId=cid, assigned_to=bob["id"], lead_status="in_progress")
        await make_lead(db, "3", "2025-09-11", assignedCompanyId=cid, assigned_to=ana["id"], lead_status="rejected")
        await make_lead(db, "4", "2025-09-10", assignedCompanyId=cid, assigned_to=ana["id"], lead_status="pending")
        await make_lead(db, "5", "2025-09-11", assignedCompanyId="elsewhere", assigned_to=ana["id"])
        headers = await auth_headers(db, admin)

        response = await client.get(f"/api/admin/receiver/lead-summary?companyId={cid}", headers=headers)
        summary = response.json()["summary"]
        assert [row["name"] for row in summary] == ["Ana", "Bob"]
        bob_row = summary[1]
        assert bob_row["total"] == 2
        assert bob_row["approved"] == 1
        assert bob_row["working"] == 1

        response = await client.get(
            f"/api/admin/receiver/lead-summary?companyId={cid}&day=2025-09-11", headers=headers
        )
        assert [(r["name"], r["total"]) for r in response.json()["summary"]] == [("Bob", 2), ("Ana", 1)]

    async def test_requires_receiver_membership(self, client, db):
        uploader = await make_company(db, "UPL", "uploader")
        admin = await make_user(db, "admin@test.com", [membership(uploader, "admin")])
        headers = await auth_headers(db, admin)

        response = await client.get("/api/admin/receiver/lead-summary", headers=headers)
        assert response.status_code == 400
        response = await client.get(f"/api/admin/receiver/lead-summary?companyId={uploader['id']}", headers=headers)
        assert response.status_code == 403

    async def test_receiver_companies_and_days(self, client, db):
        rcv = await make_company(db, "RCV", "receiver", name="Receiver Co")
        upl = await make_company(db, "UPL", "uploader")
        admin = await make_user(db, "admin@test.com", [membership(rcv, "admin"), membership(upl, "admin")])
        await make_lead(db, "1", "2025-09-10", assignedCompanyId=rcv["id"])
        await make_lead(db, "2", "2025-09-12", assignedCompanyId=rcv["id"])
        headers = await auth_headers(db, admin, rcv["id"])

        response = await client.get("/api/admin/receiver/companies", headers=headers)
        assert [c["name"] for c in response.json()["companies"]] == ["Receiver Co"]

        response = await client.get(f"/api/admin/receiver/working-days?companyId={rcv['id']}", headers=headers)
        assert response.json() == {"success": True, "days": ["2025-09-12", "2025-09-10"]}


@pytest.mark.asyncio
class TestDistributionProxies:
    async def test_toggle_forwards_activated_by(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        op = await make_user(db, "dist@test.com", [membership(company, can_distribute_leads=True)])
        headers = await auth_headers(db, op)

        with upstream_ok({"active": True}) as forward:
            response = await client.post(
                f"/api/admin/distribution/today/toggle?companyId={company['id']}",
                json={"active": True}, headers=headers,
            )

        assert response.status_code == 200
        kwargs = forward.call_args.kwargs
        assert kwargs["json_body"] == {"active": True, "activatedBy": op["id"]}
        assert kwargs["params"] == {"companyId": company["id"]}

    async def test_toggle_without_body_deactivates(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        headers = await auth_headers(db, admin)

        with upstream_ok() as forward:
            await client.post("/api/admin/distribution/today/toggle", headers=headers)
        assert forward.call_args.kwargs["json_body"]["active"] is False

    async def test_distribution_denied_without_permission(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        op = await make_user(db, "op@test.com", [membership(company)])
        headers = await auth_headers(db, op)

        with upstream_ok() as forward:
            response = await client.get(f"/api/admin/distribution/today?companyId={company['id']}", headers=headers)
        assert response.status_code == 403
        forward.assert_not_called()

    async def test_receiver_patch_injects_company(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        headers = {**await auth_headers(db, admin), "x-company-id": company["id"]}

        with upstream_ok() as forward:
            await client.patch("/api/admin/receivers/r1", json={"dailyCap": 5}, headers=headers)
        args, kwargs = forward.call_args
        assert args == ("PATCH", "/api/admin/receivers/r1")
        assert kwargs["json_body"] == {"dailyCap": 5, "companyId": company["id"]}

    async def test_bulk(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        headers = await auth_headers(db, admin)

        with upstream_ok(status=207) as forward:
            response = await client.post(
                "/api/admin/receivers/bulk", json={"companyId": company["id"], "items": []}, headers=headers
            )
        assert response.status_code == 207
        assert forward.call_args.kwargs["headers"]["x-company-id"] == company["id"]


@pytest.mark.asyncio
class TestLeadTransfer:
    async def test_uses_first_receiver_company(self, client, db):
        upl = await make_company(db, "UPL", "uploader")
        rcv = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(upl, "admin"), membership(rcv, "admin")])
        headers = await auth_headers(db, admin)

        with upstream_ok({"operators": []}) as forward:
            response = await client.get("/api/admin/lead-transfer", headers=headers)
        assert response.json() == {"operators": []}
        args, kwargs = forward.call_args
        assert args == ("GET", "/api/admin/lead-transfer/operators")
        assert kwargs["headers"]["x-company-id"] == rcv["id"]

    async def test_no_receiver_company(self, client, db):
        upl = await make_company(db, "UPL", "uploader")
        admin = await make_user(db, "admin@test.com", [membership(upl, "admin")])
        headers = await auth_headers(db, admin)

        response = await client.post("/api/admin/lead-transfer", json={}, headers=headers)
        assert response.status_code == 403
        assert response.json() == {"error": "No receiver company access found."}


@pytest.mark.asyncio
class TestAdminScreenshots:
    async def test_list_filters(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        await db.screenshots.insert_many([
            {"id": "s1", "companyId": company["id"], "workingDay": "2025-09-11", "reviewed": True,
             "uploadedAt": "2025-09-11T11:00:00"},
            {"id": "s2", "companyId": company["id"], "workingDay": "2025-09-11", "reviewed": False,
             "uploadedAt": "2025-09-11T12:00:00"},
            {"id": "s3", "companyId": "other", "workingDay": "2025-09-11", "reviewed": False,
             "uploadedAt": "2025-09-11T13:00:00"},
        ])
        headers = await auth_headers(db, admin)

        response = await client.get("/api/admin/screenshots", headers=headers)
        assert [s["id"] for s in response.json()["data"]] == ["s2", "s1"]

        response = await client.get("/api/admin/screenshots?reviewed=false", headers=headers)
        assert [s["id"] for s in response.json()["data"]] == ["s2"]

    async def test_review_publishes_event(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        await db.screenshots.insert_one({"id": "s1", "companyId": company["id"], "workingDay": "2025-09-11"})
        headers = await auth_headers(db, admin)

        publish = AsyncMock()
        with upstream_ok({"reviewed": True}), patch("routes.admin.publish_screenshot_event", new=publish):
            response = await client.patch("/api/admin/screenshots/review", json={"id": "s1"}, headers=headers)

        assert response.status_code == 200
        publish.assert_awaited_once()
        assert publish.call_args.args[0] == "screenshot.reviewed"
        assert publish.call_args.args[1]["id"] == "s1"

    async def test_review_failure_does_not_publish(self, client, db):
        company = await make_company(db, "RCV", "receiver")
        admin = await make_user(db, "admin@test.com", [membership(company, "admin")])
        headers = await auth_headers(db, admin)

        publish = AsyncMock()
        with upstream_ok({"error": "nope"}, status=404), patch("routes.admin.publish_screenshot_event", new=publish):
            response = await client.patch("/api/admin/screenshots/review", json={"id": "s1"}, headers=headers)
        assert response.status_code == 404
        publish.assert_not_called()
