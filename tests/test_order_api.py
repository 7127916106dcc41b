import httpx
import pytest

from services.order_service.dependencies import get_order_service
from services.order_service.main import order_app
from shared.config.database import get_db
from shared.security import create_access_token


def auth(user_id="user-1", role="USER"):
    token = create_access_token({"sub": user_id, "role": role, "email": "reader@example.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def api(session_factory, order_service):
    async def override_db():
        async with session_factory() as session:
            yield session

    order_app.dependency_overrides[get_db] = override_db
    order_app.dependency_overrides[get_order_service] = lambda: order_service
    transport = httpx.ASGITransport(app=order_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await order_service.shipments.join()
    order_app.dependency_overrides.clear()


@pytest.fixture
async def checkout(seed):
    book = await seed.product(price=500.0, stock=5)
    address = await seed.address()
    return {
        "items": [{"product_id": book.id, "quantity": 2}],
        "address_id": address.id,
        "payment_method": "CASH_ON_DELIVERY",
    }


class TestOrderApi:
    async def test_health(self, api):
        resp = await api.get("/health")
        assert resp.status_code == 200
        assert resp.json()["service"] == "order"

    async def test_place_order(self, api, checkout):
        resp = await api.post("/", json=checkout, headers=auth())
        assert resp.status_code == 201
        body = resp.json()
        assert body["total"] == 1000.0
        assert body["status"] == "PENDING"
        assert body["items"][0]["quantity"] == 2

    async def test_requires_token(self, api, checkout):
        resp = await api.post("/", json=checkout)
        assert resp.status_code == 401

    async def test_insufficient_stock_body(self, api, checkout):
        checkout["items"][0]["quantity"] = 6
        resp = await api.post("/", json=checkout, headers=auth())
        assert resp.status_code == 409
        assert resp.json()["error"] == "INSUFFICIENT_STOCK"
        assert resp.json()["message"].startswith("Insufficient stock for")

    async def test_zero_quantity_rejected(self, api, checkout):
        checkout["items"][0]["quantity"] = 0
        resp = await api.post("/", json=checkout, headers=auth())
        assert resp.status_code == 422

    async def test_list_and_get(self, api, checkout):
        created = (await api.post("/", json=checkout, headers=auth())).json()

        listed = await api.get("/", headers=auth())
        assert [o["id"] for o in listed.json()] == [created["id"]]

        resp = await api.get(f"/{created['id']}", headers=auth(user_id="user-2"))
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

    async def test_cancel(self, api, checkout):
        created = (await api.post("/", json=checkout, headers=auth())).json()
        resp = await api.post(f"/{created['id']}/cancel", headers=auth())
        assert resp.status_code == 200
        assert resp.json()["status"] == "CANCELLED"

    async def test_status_update_requires_admin(self, api, checkout):
        created = (await api.post("/", json=checkout, headers=auth())).json()
        path = f"/{created['id']}/status"

        resp = await api.patch(path, json={"status": "SHIPPED"}, headers=auth())
        assert resp.status_code == 403

        resp = await api.patch(path, json={"status": "SHIPPED"}, headers=auth("admin-1", "ADMIN"))
        assert resp.status_code == 200
        assert resp.json()["status"] == "SHIPPED"

        resp = await api.patch(path, json={"status": "PENDING"}, headers=auth("admin-1", "ADMIN"))
        assert resp.status_code == 409
        assert resp.json() == {
            "error": "INVALID_TRANSITION",
            "message": "Invalid status transition from SHIPPED to PENDING",
        }

    async def test_payment_intent_for_online_order(self, api, checkout):
        checkout["payment_method"] = "ONLINE"
        created = (await api.post("/", json=checkout, headers=auth())).json()

        resp = await api.get(f"/{created['id']}/payment-intent", headers=auth())
        assert resp.status_code == 200
        assert resp.json()["amount"] == 100000
        assert resp.json()["key_id"] == "rzp_test_key"

    async def test_bad_signature_reports_failure(self, api, checkout):
        checkout["payment_method"] = "ONLINE"
        created = (await api.post("/", json=checkout, headers=auth())).json()

        resp = await api.post(
            "/verify-payment",
            json={"order_id": created["id"], "transaction_id": "pay_1", "signature": "bad"},
            headers=auth(),
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is False
