"""
Inventory CRUD, tenant isolation and the AVAILABLE → SOLD transition.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from bikedesk.models.bike import Bike
from bikedesk.services.bike_service import BikeService
from conftest import DEFAULT_BIKE, DEFAULT_CUSTOMER


class TestInventory:

    async def test_create_normalises_reg_no(self, client, world, auth_headers, add_bike):
        """Admin logs in, adds a bike; reg_no is stored upper-cased."""
        login = await client.post(
            "/api/auth/login",
            json={
                "email": "admin@acme-bikes.com",
                "password": "secret123",
                "company_id": world.acme.id,
            },
        )
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        bike = await add_bike(headers, reg_no="  abc-1 ")
        assert bike["reg_no"] == "ABC-1"
        assert bike["is_sold"] is False
        assert bike["sold_price"] is None
        assert bike["status"] == "AVAILABLE"
        assert bike["bought_price"] == 8500
        assert bike["company_id"] == world.acme.id
        assert bike["added_by"]["email"] == "admin@acme-bikes.com"

    async def test_duplicate_reg_no_any_case(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_admin)
        await add_bike(headers, reg_no="ABC-1")
        response = await client.post(
            "/api/tenant/bikes",
            json={"name": "Ninja", "reg_no": "abc-1", "aadhaar_number": "999988887777",
                  "bought_price": 7000},
            headers=headers,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_REG_NO"

    async def test_same_reg_no_in_another_company(self, world, auth_headers, add_bike):
        await add_bike(auth_headers(world.acme_admin), reg_no="ABC-1")
        other = await add_bike(auth_headers(world.speed_worker), reg_no="ABC-1")
        assert other["company_id"] == world.speedwheel.id

    @pytest.mark.parametrize(
        "overrides",
        [
            {"bought_price": 0},
            {"bought_price": -10},
            {"aadhaar_number": "12345"},
            {"aadhaar_number": "12345678901a"},
            {"name": "X"},
            {"reg_no": "A"},
        ],
    )
    async def test_rejects_invalid_bike(self, client, world, auth_headers, overrides):
        response = await client.post(
            "/api/tenant/bikes",
            json={**DEFAULT_BIKE, **overrides},
            headers=auth_headers(world.acme_admin),
        )
        assert response.status_code == 400

    async def test_list_masks_identity_number(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_worker)
        await add_bike(headers)
        [bike] = (await client.get("/api/tenant/bikes", headers=headers)).json()
        assert bike["aadhaar_number"] == "********3333"

    async def test_list_is_tenant_scoped(self, client, world, auth_headers, add_bike):
        await add_bike(auth_headers(world.acme_admin), reg_no="ACME-1")
        await add_bike(auth_headers(world.speed_admin), reg_no="SPEED-1")
        response = await client.get("/api/tenant/bikes", headers=auth_headers(world.speed_worker))
        assert [b["reg_no"] for b in response.json()] == ["SPEED-1"]

    async def test_unique_index_settles_reg_no_race(
        self, client, world, auth_headers, add_bike, monkeypatch
    ):
        headers = auth_headers(world.acme_worker)
        await add_bike(headers)

        async def pre_check_misses(*args, **kwargs):
            return None

        monkeypatch.setattr(BikeService, "_ensure_reg_no_free", staticmethod(pre_check_misses))
        response = await client.post("/api/tenant/bikes", json=DEFAULT_BIKE, headers=headers)
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_REG_NO"

        listed = (await client.get("/api/tenant/bikes", headers=headers)).json()
        assert len(listed) == 1

    async def test_update_unsold_bike(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await client.put(
            f"/api/tenant/bikes/{bike['id']}",
            json={"bought_price": 8000.5, "reg_no": "abc-2"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["bought_price"] == 8000.5
        assert response.json()["reg_no"] == "ABC-2"
        assert response.json()["name"] == "CBR600"

    async def test_update_to_taken_reg_no(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_admin)
        await add_bike(headers, reg_no="ABC-1")
        second = await add_bike(headers, reg_no="ABC-2")
        response = await client.put(
            f"/api/tenant/bikes/{second['id']}", json={"reg_no": "abc-1"}, headers=headers
        )
        assert response.status_code == 409

    async def test_delete_unsold_bike(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await client.delete(f"/api/tenant/bikes/{bike['id']}", headers=headers)
        assert response.status_code == 204
        assert (await client.get("/api/tenant/bikes", headers=headers)).json() == []


class TestTenantIsolation:

    async def test_foreign_bike_detail_is_not_found(self, client, world, auth_headers, add_bike):
        bike = await add_bike(auth_headers(world.acme_admin))
        response = await client.get(
            f"/api/tenant/bikes/{bike['id']}/details",
            headers=auth_headers(world.speed_worker),
        )
        assert response.status_code == 404

    async def test_foreign_bike_writes_are_not_found(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        bike = await add_bike(auth_headers(world.acme_admin))
        intruder = auth_headers(world.speed_admin)

        update = await client.put(
            f"/api/tenant/bikes/{bike['id']}", json={"name": "Stolen"}, headers=intruder
        )
        delete = await client.delete(f"/api/tenant/bikes/{bike['id']}", headers=intruder)
        sale = await sell_bike(intruder, bike["id"])

        assert update.status_code == delete.status_code == sale.status_code == 404

        [still_there] = (
            await client.get("/api/tenant/bikes", headers=auth_headers(world.acme_admin))
        ).json()
        assert still_there["name"] == "CBR600"
        assert still_there["is_sold"] is False


class TestMarkSold:

    async def test_sale_creates_customer_and_updates_reports(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)

        response = await sell_bike(headers, bike["id"], sold_price=9000)
        assert response.status_code == 200
        sold = response.json()
        assert sold["is_sold"] is True
        assert sold["status"] == "SOLD"
        assert sold["sold_price"] == 9000
        assert sold["sold_at"] is not None
        assert sold["customer_id"] is not None

        profit = await client.get("/api/tenant/reports/profit", headers=headers)
        assert profit.json() == {"total_profit": 500, "count": 1}

        customers = await client.get(
            "/api/superadmin/customers", headers=auth_headers(world.superadmin)
        )
        [customer] = customers.json()
        assert customer["aadhaar_number"] == "********9012"
        assert customer["total_purchases"] == 1

    async def test_second_sale_is_not_found(
        self, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        assert (await sell_bike(headers, bike["id"])).status_code == 200

        again = await sell_bike(headers, bike["id"], sold_price=12000)
        assert again.status_code == 404
        assert again.json()["detail"] == "Bike not found or already sold"

    async def test_unknown_bike_checked_before_payload(self, client, world, auth_headers):
        response = await client.patch(
            "/api/tenant/bikes/does-not-exist/mark-sold",
            json={},
            headers=auth_headers(world.acme_admin),
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("price", [None, 0, -100])
    async def test_price_required(self, client, world, auth_headers, add_bike, price):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await client.patch(
            f"/api/tenant/bikes/{bike['id']}/mark-sold",
            json={"sold_price": price, "customer": DEFAULT_CUSTOMER},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Valid sold price is required"

    @pytest.mark.parametrize("price", [10**13, "12345678901.5", "9000.129"])
    async def test_price_must_fit_money_column(
        self, world, auth_headers, add_bike, sell_bike, price
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await sell_bike(headers, bike["id"], sold_price=price)
        assert response.status_code == 400
        assert "2 decimal places" in response.json()["detail"]

    async def test_largest_storable_price_accepted(
        self, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await sell_bike(headers, bike["id"], sold_price="9999999999.99")
        assert response.status_code == 200
        assert response.json()["sold_price"] == 9999999999.99

    async def test_oversized_price_on_unknown_bike_is_not_found(
        self, world, auth_headers, sell_bike
    ):
        response = await sell_bike(auth_headers(world.acme_admin), "missing", sold_price=10**13)
        assert response.status_code == 404

    async def test_missing_customer_fields_listed(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await client.patch(
            f"/api/tenant/bikes/{bike['id']}/mark-sold",
            json={"sold_price": 9000, "customer": {"name": "Ravi", "phone": "  "}},
            headers=headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert "phone" in body["detail"]
        assert "address" in body["detail"]
        assert "name" not in body["detail"].split(":")[1]
        assert len(body["errors"]) == 3

    async def test_customer_number_must_be_12_digits(
        self, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        response = await sell_bike(headers, bike["id"], aadhaar_number="12345")
        assert response.status_code == 400
        assert "12 digits" in response.json()["detail"]

    async def test_price_below_cost_rejected(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers, bought_price=8500)
        response = await sell_bike(headers, bike["id"], sold_price=8000)
        assert response.status_code == 400
        assert response.json()["code"] == "PRICE_BELOW_COST"

        [unchanged] = (await client.get("/api/tenant/bikes", headers=headers)).json()
        assert unchanged["is_sold"] is False

    async def test_rejected_sale_creates_no_customer(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        await sell_bike(headers, bike["id"], sold_price=1)

        stats = await client.get(
            "/api/superadmin/customers/stats", headers=auth_headers(world.superadmin)
        )
        assert stats.json()["total_customers"] == 0

    async def test_returning_customer_is_reused(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        acme = auth_headers(world.acme_admin)
        speed = auth_headers(world.speed_admin)
        first = await add_bike(acme, reg_no="ACME-1")
        second = await add_bike(speed, reg_no="SPEED-1")

        one = await sell_bike(acme, first["id"], phone="1111111111")
        two = await sell_bike(speed, second["id"], phone="2222222222")
        assert one.json()["customer_id"] == two.json()["customer_id"]

        stats = await client.get(
            "/api/superadmin/customers/stats", headers=auth_headers(world.superadmin)
        )
        assert stats.json()["total_customers"] == 1
        assert stats.json()["repeat_customers"] == 1

    async def test_customer_inserted_concurrently_is_reused(
        self, client, world, auth_headers, add_bike, sell_bike, monkeypatch
    ):
        headers = auth_headers(world.acme_admin)
        first = await add_bike(headers, reg_no="RACE-1")
        second = await add_bike(headers, reg_no="RACE-2")
        one = await sell_bike(headers, first["id"])
        assert one.status_code == 200

        find_customer = BikeService._find_customer
        lookups = []

        async def stale_first_lookup(db, aadhaar_number):
            lookups.append(aadhaar_number)
            if len(lookups) == 1:
                return None
            return await find_customer(db, aadhaar_number)

        monkeypatch.setattr(BikeService, "_find_customer", staticmethod(stale_first_lookup))
        two = await sell_bike(headers, second["id"], name="Ravi K.")
        assert two.status_code == 200, two.text
        assert len(lookups) == 2
        assert two.json()["customer_id"] == one.json()["customer_id"]

        detail = await client.get(f"/api/tenant/bikes/{second['id']}/details", headers=headers)
        assert detail.json()["sale_info"]["customer"]["name"] == "Ravi K."

    async def test_legacy_alias(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_worker)
        bike = await add_bike(headers)
        response = await client.patch(
            f"/api/tenant/bikes/{bike['id']}/sold",
            json={"sold_price": 9000, "customer": DEFAULT_CUSTOMER},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["is_sold"] is True

    async def test_sold_bike_is_frozen(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        await sell_bike(headers, bike["id"])

        update = await client.put(
            f"/api/tenant/bikes/{bike['id']}", json={"name": "Renamed"}, headers=headers
        )
        delete = await client.delete(f"/api/tenant/bikes/{bike['id']}", headers=headers)
        assert update.status_code == delete.status_code == 409
        assert delete.json()["code"] == "BIKE_SOLD"


class TestStorageConstraints:
    """The schema itself refuses rows the services would never write."""

    @pytest.mark.parametrize(
        "sale_fields",
        [
            {"is_sold": True, "sold_price": None},
            {"is_sold": False, "sold_price": Decimal("9000")},
        ],
    )
    async def test_sale_fields_set_together(self, db, world, sale_fields):
        db.add(
            Bike(
                name="CBR600",
                reg_no="HALF-1",
                aadhaar_number="111122223333",
                bought_price=Decimal("8500"),
                company_id=world.acme.id,
                added_by_id=world.acme_worker.id,
                **sale_fields,
            )
        )
        with pytest.raises(IntegrityError):
            await db.flush()
        await db.rollback()


class TestBikeDetail:

    async def test_admin_sees_full_identity_numbers(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_admin)
        bike = await add_bike(headers)
        await sell_bike(headers, bike["id"])

        detail = (
            await client.get(f"/api/tenant/bikes/{bike['id']}/details", headers=headers)
        ).json()
        assert detail["supplier_info"]["aadhaar_number"] == "111122223333"
        assert detail["sale_info"]["customer"]["aadhaar_number"] == "123456789012"
        assert detail["sale_info"]["profit"] == 500
        assert detail["purchase_info"]["company"]["name"] == "Acme Bikes Ltd"
        assert detail["bike"]["aadhaar_number"] == "********3333"

    async def test_worker_sees_masked_numbers(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_worker)
        bike = await add_bike(headers)
        detail = (
            await client.get(f"/api/tenant/bikes/{bike['id']}/details", headers=headers)
        ).json()
        assert detail["supplier_info"]["aadhaar_number"] == "********3333"
        assert detail["sale_info"] is None


class TestReceipt:

    async def test_pdf_for_sold_bike(self, client, world, auth_headers, add_bike, sell_bike):
        headers = auth_headers(world.acme_worker)
        bike = await add_bike(headers)
        await sell_bike(headers, bike["id"])

        response = await client.get(f"/api/tenant/bikes/{bike['id']}/receipt", headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="receipt-ABC-1.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    async def test_unsold_bike_has_no_receipt(self, client, world, auth_headers, add_bike):
        headers = auth_headers(world.acme_worker)
        bike = await add_bike(headers)
        response = await client.get(f"/api/tenant/bikes/{bike['id']}/receipt", headers=headers)
        assert response.status_code == 409

    async def test_foreign_receipt_is_not_found(
        self, client, world, auth_headers, add_bike, sell_bike
    ):
        headers = auth_headers(world.acme_worker)
        bike = await add_bike(headers)
        await sell_bike(headers, bike["id"])
        response = await client.get(
            f"/api/tenant/bikes/{bike['id']}/receipt",
            headers=auth_headers(world.speed_worker),
        )
        assert response.status_code == 404
