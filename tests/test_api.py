import pytest
import redis
from fastapi.testclient import TestClient

from storefront.api.deps import get_client
from storefront.data.database import get_db
from storefront.main import create_app
from storefront.services.selection_tracker import SelectionTracker

AUTH = {"Authorization": "Bearer jwt-token"}

PAYMENT = {
    "razorpayOrderId": "order_GW1",
    "razorpayPaymentId": "pay_1",
    "razorpaySignature": "sig",
}


@pytest.fixture
def app(client, db, fake_redis):
    app = create_app()
    app.state.redis = fake_redis

    def override_db():
        yield db

    app.dependency_overrides[get_client] = lambda: client
    app.dependency_overrides[get_db] = override_db
    return app


@pytest.fixture
def http(app):
    return TestClient(app)


def test_health(http):
    assert http.get("/health").json() == {"status": "ok"}


def test_first_visit_sets_device_and_session_cookies(http):
    resp = http.get("/cart")

    assert "device_id" in resp.cookies
    assert "checkout_session" in resp.cookies


class TestAnonymousCart:
    def test_add_twice_accumulates_in_local_cart(self, http, client):
        http.post("/cart/items", json={"productId": 1, "quantity": 1})
        resp = http.post("/cart/items", json={"productId": 1, "quantity": 1})

        body = resp.json()
        assert resp.status_code == 200
        assert body["items"][0]["quantity"] == 2
        assert body["totals"]["subtotal"] == "20.00"
        assert body["totals"]["tax"] == "2.00"
        assert body["totals"]["total"] == "22.00"
        assert client.cart == {}

    def test_update_unknown_item(self, http):
        assert http.put("/cart/items/3", json={"quantity": 2}).status_code == 404

    def test_invalid_quantity(self, http):
        assert http.post("/cart/items", json={"productId": 1, "quantity": 0}).status_code == 422

    def test_proceed_to_checkout_requires_login(self, http):
        resp = http.post("/cart/checkout", json={"productIds": ["1"]})

        assert resp.status_code == 401
        assert resp.headers["X-Redirect"] == "/login"

    def test_checkout_page_requires_login(self, http):
        resp = http.get("/checkout")

        assert resp.status_code == 401
        assert resp.headers["X-Redirect"] == "/login"

    def test_place_order_requires_login(self, http, client):
        resp = http.post("/checkout/place-order", json={"paymentMethod": "COD"})

        assert resp.status_code == 401
        assert client.placed == []

    def test_cart_renders_when_selection_store_is_down(self, http, monkeypatch):
        def redis_down(self):
            raise redis.ConnectionError("connection refused")

        monkeypatch.setattr(SelectionTracker, "clear", redis_down)
        http.post("/cart/items", json={"productId": 2, "quantity": 1})

        resp = http.get("/cart")

        assert resp.status_code == 200
        assert resp.json()["items"][0]["product_id"] == 2


class TestAuthenticatedCheckout:
    def test_empty_selection_is_rejected(self, http):
        resp = http.post("/cart/checkout", json={"productIds": []}, headers=AUTH)

        assert resp.status_code == 400

    def test_empty_checkout_redirects_to_cart(self, http):
        body = http.get("/checkout", headers=AUTH).json()

        assert body["redirect"] == "/cart"
        assert body["items"] == []
        assert body["notice"]["level"] == "info"

    def test_cart_page_clears_selection(self, http, client, fake_redis):
        client.cart = {1: 1, 2: 1}
        http.post("/cart/checkout", json={"productIds": ["2"]}, headers=AUTH)
        assert http.get("/checkout", headers=AUTH).json()["items"][0]["product_id"] == 2

        http.get("/cart", headers=AUTH)

        assert len(http.get("/checkout", headers=AUTH).json()["items"]) == 2

    def test_cash_on_delivery(self, http, client):
        client.cart = {1: 1, 2: 1}
        http.post("/cart/checkout", json={"productIds": ["1"]}, headers=AUTH)

        body = http.post("/checkout/place-order", json={"paymentMethod": "COD"}, headers=AUTH).json()

        assert body["state"] == "Committed"
        assert body["redirect"] == "http://store/orders"
        assert client.placed[0][1] == ["1"]

    def test_online_payment_flow(self, http, client):
        client.cart = {1: 2}
        http.post("/cart/checkout", json={"productIds": ["1"]}, headers=AUTH)

        page = http.get("/checkout", headers=AUTH).json()
        assert page["gateway_enabled"] is True
        assert page["totals"]["total"] == "21.00"

        started = http.post("/checkout/place-order", json={"paymentMethod": "ONLINE"}, headers=AUTH).json()
        assert started["state"] == "AwaitingUser"
        assert started["intent"]["amount"] == 2100
        assert started["gateway_key_id"] == "rzp_test_key"
        assert client.placed == []

        attempt_url = f"/checkout/attempts/{started['attempt_id']}"
        done = http.post(f"{attempt_url}/success", json=PAYMENT, headers=AUTH).json()

        assert done["state"] == "Committed"
        assert done["notice"]["level"] == "success"
        assert client.placed[0][1] == ["1"]
        assert client.cart == {}
        # proba zakonczona, drugi callback juz jej nie znajdzie
        assert http.post(f"{attempt_url}/dismiss", headers=AUTH).status_code == 404

    def test_dismissed_payment(self, http, client):
        client.cart = {1: 1}
        started = http.post("/checkout/place-order", json={"paymentMethod": "ONLINE"}, headers=AUTH).json()

        done = http.post(f"/checkout/attempts/{started['attempt_id']}/dismiss", headers=AUTH).json()

        assert done["state"] == "Cancelled"
        assert client.cart == {1: 1}
        assert "place_order" not in client.calls

    def test_second_order_while_payment_window_open(self, http, client):
        client.cart = {1: 1}
        http.post("/checkout/place-order", json={"paymentMethod": "ONLINE"}, headers=AUTH)

        resp = http.post("/checkout/place-order", json={"paymentMethod": "COD"}, headers=AUTH)

        assert resp.status_code == 409
        assert client.placed == []

    def test_payment_failure_callback(self, http, client):
        client.cart = {1: 1}
        started = http.post("/checkout/place-order", json={"paymentMethod": "ONLINE"}, headers=AUTH).json()

        done = http.post(
            f"/checkout/attempts/{started['attempt_id']}/failure",
            json={"reason": "Card declined"},
            headers=AUTH,
        ).json()

        assert done["state"] == "Failed"
        assert done["notice"]["message"] == "Payment failed: Card declined"

    def test_unknown_attempt(self, http):
        resp = http.post("/checkout/attempts/nope/success", json=PAYMENT, headers=AUTH)

        assert resp.status_code == 404
