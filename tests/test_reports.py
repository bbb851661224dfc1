"""
Tenant dashboard and reports, and the platform analytics built on the same
aggregates.
"""

from datetime import timedelta

from sqlalchemy import update

from bikedesk.db.base import utcnow
from bikedesk.models.bike import Bike


async def stock_and_sell(add_bike, sell_bike, headers, bikes):
    """bikes: (reg_no, bought, sold or None)"""
    created = {}
    for reg_no, bought, sold in bikes:
        bike = await add_bike(headers, reg_no=reg_no, bought_price=bought)
        if sold is not None:
            response = await sell_bike(headers, bike["id"], sold_price=sold)
            assert response.status_code == 200, response.text
        created[reg_no] = bike
    return created


class TestDashboard:

    async def test_counts_and_money(self, client, world, auth_headers, add_bike, sell_bike):
        headers = auth_headers(world.acme_admin)
        await stock_and_sell(
            add_bike,
            sell_bike,
            headers,
            [("A-1", 1000, 1500), ("A-2", 2000, 2100), ("A-3", 3000, None)],
        )

        data = (await client.get("/api/tenant/dashboard", headers=headers)).json()
        assert data["total_bikes"] == 3
        assert data["sold_bikes"] == 2
        assert data["available_bikes"] == 1
        assert data["total_revenue"] == 3600
        assert data["total_profit"] == 600
        assert data["aging_inventory"] == 0
        assert {s["reg_no"] for s in data["recent_sales"]} == {"A-1", "A-2"}

    async def test_aging_inventory(self, client, db, world, auth_headers, add_bike, sell_bike):
        headers = auth_headers(world.acme_admin)
        created = await stock_and_sell(
            add_bike,
            sell_bike,
            headers,
            [("OLD-1", 1000, None), ("OLD-SOLD", 1000, 1200), ("NEW-1", 1000, None)],
        )
        old_ids = [created["OLD-1"]["id"], created["OLD-SOLD"]["id"]]
        await db.execute(
            update(Bike)
            .where(Bike.id.in_(old_ids))
            .values(created_at=utcnow() - timedelta(days=45))
        )
        await db.commit()

        data = (await client.get("/api/tenant/dashboard", headers=headers)).json()
        assert data["aging_inventory"] == 1

    async def test_only_visible_announcements(self, client, world, auth_headers):
        root = auth_headers(world.superadmin)
        for body in (
            {"message": "Platform update tonight"},
            {"message": "Acme: audit due", "target_company_id": world.acme.id},
            {"message": "SpeedWheel: audit due", "target_company_id": world.speedwheel.id},
        ):
            response = await client.post("/api/superadmin/broadcasts", json=body, headers=root)
            assert response.status_code == 201

        data = (
            await client.get("/api/tenant/dashboard", headers=auth_headers(world.acme_worker))
        ).json()
        messages = {a["message"] for a in data["announcements"]}
        assert messages == {"Platform update tonight", "Acme: audit due"}

        listed = await client.get(
            "/api/tenant/announcements", headers=auth_headers(world.speed_worker)
        )
        assert {a["message"] for a in listed.json()} == {
            "Platform update tonight",
            "SpeedWheel: audit due",
        }


class TestSalesReports:

    async def test_sales_report(self, client, world, auth_headers, add_bike, sell_bike):
        headers = auth_headers(world.acme_worker)
        await stock_and_sell(
            add_bike,
            sell_bike,
            headers,
            [("S-1", 1000, 1500), ("S-2", 2000, 2500), ("S-3", 500, None)],
        )

        report = (await client.get("/api/tenant/sales", headers=headers)).json()
        assert report["total_sales"] == 2
        assert report["total_revenue"] == 4000
        assert report["total_cost"] == 3000
        assert report["total_profit"] == 1000
        assert report["average_profit"] == 500
        assert report["profit_margin"] == 25.0
        assert {row["reg_no"] for row in report["sales"]} == {"S-1", "S-2"}
        assert all(row["profit"] == 500 for row in report["sales"])

    async def test_empty_sales_report(self, client, world, auth_headers):
        report = (
            await client.get("/api/tenant/sales", headers=auth_headers(world.acme_worker))
        ).json()
        assert report["total_sales"] == 0
        assert report["total_revenue"] == 0
        assert report["profit_margin"] == 0
        assert report["sales"] == []

    async def test_reports_are_tenant_scoped(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        await stock_and_sell(
            add_bike, sell_bike, auth_headers(world.acme_admin), [("X-1", 1000, 5000)]
        )
        profit = await client.get(
            "/api/tenant/reports/profit", headers=auth_headers(world.speed_admin)
        )
        assert profit.json() == {"total_profit": 0, "count": 0}

    async def test_admin_stats(self, client, world, auth_headers, add_bike, sell_bike):
        headers = auth_headers(world.acme_admin)
        await stock_and_sell(add_bike, sell_bike, headers, [("Z-1", 100, 150), ("Z-2", 100, None)])

        stats = (await client.get("/api/tenant/admin/stats", headers=headers)).json()
        assert stats == {
            "total_users": 2,
            "admin_users": 1,
            "worker_users": 1,
            "total_bikes": 2,
            "sold_bikes": 1,
            "total_revenue": 150,
            "total_profit": 50,
        }

    async def test_admin_staff_list(self, client, world, auth_headers, add_bike):
        await add_bike(auth_headers(world.acme_worker), reg_no="W-1")
        await add_bike(auth_headers(world.acme_worker), reg_no="W-2")

        staff = (
            await client.get("/api/tenant/admin/users", headers=auth_headers(world.acme_admin))
        ).json()
        counts = {member["email"]: member["bikes_added"] for member in staff}
        assert counts == {"admin@acme-bikes.com": 0, "worker@acme-bikes.com": 2}

    async def test_admin_creates_staff(self, client, world, auth_headers):
        response = await client.post(
            "/api/tenant/admin/users",
            json={"email": "mechanic@acme-bikes.com", "password": "wrench1"},
            headers=auth_headers(world.acme_admin),
        )
        assert response.status_code == 201
        assert response.json()["role"] == "WORKER"
        assert response.json()["company_id"] == world.acme.id

    async def test_admin_cannot_create_superadmin(self, client, world, auth_headers):
        response = await client.post(
            "/api/tenant/admin/users",
            json={"email": "boss@acme-bikes.com", "password": "wrench1", "role": "SUPERADMIN"},
            headers=auth_headers(world.acme_admin),
        )
        assert response.status_code == 400


class TestPlatformAnalytics:

    async def test_system_stats(self, client, world, auth_headers, add_bike, sell_bike):
        await stock_and_sell(
            add_bike, sell_bike, auth_headers(world.acme_admin), [("P-1", 1000, 1300)]
        )
        await stock_and_sell(
            add_bike, sell_bike, auth_headers(world.speed_admin), [("P-2", 2000, None)]
        )

        stats = (
            await client.get(
                "/api/superadmin/analytics/system-stats",
                headers=auth_headers(world.superadmin),
            )
        ).json()
        assert stats["overview"] == {
            "total_users": 6,
            "total_companies": 3,
            "active_companies": 2,
            "suspended_companies": 1,
        }
        assert stats["inventory"] == {"total": 2, "sold": 1, "available": 1}
        assert stats["financial"]["total_revenue"] == 1300
        assert stats["financial"]["total_cost"] == 1000
        assert stats["financial"]["total_profit"] == 300
        assert stats["users"] == {"superadmin": 1, "admin": 3, "worker": 2}

    async def test_company_stats(self, client, world, auth_headers, add_bike, sell_bike):
        await stock_and_sell(
            add_bike,
            sell_bike,
            auth_headers(world.acme_admin),
            [("C-1", 1000, 1200), ("C-2", 1000, 1400), ("C-3", 1000, None)],
        )
        stats = (
            await client.get(
                f"/api/superadmin/companies/{world.acme.id}/stats",
                headers=auth_headers(world.superadmin),
            )
        ).json()
        assert stats["company"]["name"] == "Acme Bikes Ltd"
        assert stats["users"] == {"total": 2, "admins": 1, "workers": 1}
        assert stats["bikes"] == {"total": 3, "sold": 2, "available": 1}
        assert stats["financial"]["total_profit"] == 600
        assert stats["financial"]["average_profit"] == 300

    async def test_company_stats_unknown(self, client, world, auth_headers):
        response = await client.get(
            "/api/superadmin/companies/nope/stats", headers=auth_headers(world.superadmin)
        )
        assert response.status_code == 404

    async def test_rankings_include_idle_companies(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        await stock_and_sell(
            add_bike, sell_bike, auth_headers(world.speed_admin), [("R-1", 1000, 4000)]
        )
        await stock_and_sell(
            add_bike, sell_bike, auth_headers(world.acme_admin), [("R-2", 1000, 2000)]
        )

        rankings = (
            await client.get(
                "/api/superadmin/analytics/company-rankings",
                params={"period": 7},
                headers=auth_headers(world.superadmin),
            )
        ).json()
        assert [r["name"] for r in rankings] == [
            "SpeedWheel Inc",
            "Acme Bikes Ltd",
            "Thunder Motors",
        ]
        assert rankings[0]["revenue"] == 4000
        assert rankings[0]["profit"] == 3000
        assert rankings[0]["profit_margin"] == 75.0
        assert rankings[2] == {
            "id": world.thunder.id,
            "name": "Thunder Motors",
            "revenue": 0,
            "profit": 0,
            "bikes_sold": 0,
            "profit_margin": 0,
        }

    async def test_ranking_ties_break_on_company_id(self, client, world, auth_headers):
        rankings = (
            await client.get(
                "/api/superadmin/analytics/company-rankings",
                headers=auth_headers(world.superadmin),
            )
        ).json()
        ids = [r["id"] for r in rankings]
        assert ids == sorted([world.acme.id, world.speedwheel.id, world.thunder.id])

    async def test_sales_outside_window_excluded(
        self, client, db, world, auth_headers, add_bike, sell_bike
    ):
        created = await stock_and_sell(
            add_bike, sell_bike, auth_headers(world.acme_admin), [("OLD", 1000, 2000)]
        )
        await db.execute(
            update(Bike)
            .where(Bike.id == created["OLD"]["id"])
            .values(sold_at=utcnow() - timedelta(days=40))
        )
        await db.commit()

        root = auth_headers(world.superadmin)
        month = await client.get(
            "/api/superadmin/analytics/company-rankings", params={"period": 30}, headers=root
        )
        quarter = await client.get(
            "/api/superadmin/analytics/company-rankings", params={"period": 90}, headers=root
        )
        acme_month = next(r for r in month.json() if r["id"] == world.acme.id)
        acme_quarter = next(r for r in quarter.json() if r["id"] == world.acme.id)
        assert acme_month["bikes_sold"] == 0
        assert acme_quarter["bikes_sold"] == 1

    async def test_sales_trends(self, client, world, auth_headers, add_bike, sell_bike):
        await stock_and_sell(
            add_bike,
            sell_bike,
            auth_headers(world.acme_admin),
            [("T-1", 1000, 1100), ("T-2", 1000, 1300)],
        )
        trends = (
            await client.get(
                "/api/superadmin/analytics/sales-trends",
                headers=auth_headers(world.superadmin),
            )
        ).json()
        assert trends == [
            {
                "date": utcnow().date().isoformat(),
                "revenue": 2400,
                "profit": 400,
                "sales": 2,
            }
        ]

    async def test_period_bounds(self, client, world, auth_headers):
        root = auth_headers(world.superadmin)
        for period in (0, 3651):
            response = await client.get(
                "/api/superadmin/analytics/sales-trends",
                params={"period": period},
                headers=root,
            )
            assert response.status_code == 400
