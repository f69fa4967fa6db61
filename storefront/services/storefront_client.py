# storefront/services/storefront_client.py
from decimal import Decimal
from typing import Any, Dict, Iterable, List

import requests
from requests import RequestException

from storefront.domain.errors import (
    AuthenticationRequired,
    PaymentVerificationFailure,
    TransientNetworkFailure,
)
from storefront.domain.schemas import (
    CartSnapshot,
    GatewayOrder,
    GatewayStatus,
    LineItem,
    PageContext,
    PaymentMethod,
    PaymentReference,
)
from storefront.utils.logging import get_logger
from storefront.utils.payload import unwrap_payload
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    STOREFRONT_API_TIMEOUT,
    STOREFRONT_API_URL,
    STOREFRONT_SESSION_COOKIE,
)

logger = get_logger(__name__)

CART_PATH = "/api/v1/cart"
PRODUCTS_PATH = "/api/v1/products"
RAZORPAY_PATH = "/api/v1/payments/razorpay"
PLACE_ORDER_PATH = "/checkout/place-order"

#tylko te metody wolno ponawiac
_IDEMPOTENT = {"GET", "PUT", "DELETE"}


def to_cart_snapshot(payload: Any) -> CartSnapshot:
    """
    Linie serwera {productId, productName, priceAmount, quantity, imageUrl} -> LineItem.
    Duplikaty productId sa sklejane (suma ilosci), linie z quantity < 1 odrzucane.
    """
    data = unwrap_payload(payload)
    raw_items = data.get("items") if isinstance(data, dict) else data
    if not isinstance(raw_items, list):
        return CartSnapshot()

    merged: Dict[int, LineItem] = {}
    for raw in raw_items:
        try:
            quantity = int(raw.get("quantity") or 0)
            if quantity < 1:
                continue
            product_id = int(raw["productId"])

            if product_id in merged:
                merged[product_id].quantity += quantity
                continue

            merged[product_id] = LineItem(
                product_id=product_id,
                name=raw.get("productName") or raw.get("name") or "",
                unit_price=Decimal(str(raw.get("priceAmount") or 0)),
                quantity=quantity,
                image_url=raw.get("imageUrl"),
            )
        except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as e:
            # zla linia nie psuje calego koszyka
            logger.warning(f"Skipping malformed cart line {raw!r}: {e}")

    return CartSnapshot(items=list(merged.values()))


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] if resp.text else ""
    if isinstance(body, dict):
        return body.get("message") or body.get("detail") or body.get("error") or ""
    return ""


class StorefrontClient:
    """
    Klient API sklepu. Kazda odpowiedz konczy sie jednym z:
    - poprawny wynik
    - AuthenticationRequired (401/403)
    - TransientNetworkFailure (transport albo inny status != 2xx)
    Wyjatki requests nigdy nie wychodza poza ten klient.
    """

    def __init__(
        self,
        base_url: str | None = None,
        auth_token: str | None = None,
        session_cookie: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or STOREFRONT_API_URL).rstrip("/")
        self.timeout = timeout or STOREFRONT_API_TIMEOUT
        self.http = session or requests.Session()

        if auth_token:
            self.http.headers["Authorization"] = f"Bearer {auth_token}"
        if session_cookie:
            self.http.cookies.set(STOREFRONT_SESSION_COOKIE, session_cookie)

    @classmethod
    def for_page(cls, ctx: PageContext) -> "StorefrontClient":
        return cls(auth_token=ctx.auth_token, session_cookie=ctx.session_cookie)

    # ---------------- transport ----------------

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"StorefrontClient {method} {url}")
        return self.http.request(method, url, timeout=self.timeout, **kwargs)

    @http_retry()
    def _send_with_retry(self, method: str, path: str, **kwargs) -> requests.Response:
        return self._send(method, path, **kwargs)

    def _call(self, method: str, path: str, check: bool = True, **kwargs) -> requests.Response:
        send = self._send_with_retry if method in _IDEMPOTENT else self._send
        try:
            resp = send(method, path, **kwargs)
        except RequestException as e:
            logger.warning(f"StorefrontClient {method} {path} transport error: {e}")
            raise TransientNetworkFailure(f"Could not reach the store: {e}") from e

        if check:
            self._check_status(resp, method, path)
        return resp

    @staticmethod
    def _check_status(resp: requests.Response, method: str, path: str) -> None:
        if resp.status_code in (401, 403):
            logger.warning(f"StorefrontClient {method} {path} -> {resp.status_code}, login required")
            raise AuthenticationRequired()
        if not resp.ok:
            message = _error_message(resp)
            logger.warning(f"StorefrontClient {method} {path} -> {resp.status_code} {message}")
            raise TransientNetworkFailure(
                message or f"Store returned status {resp.status_code}",
                status_code=resp.status_code,
            )

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise TransientNetworkFailure("Store returned an unreadable response") from e

    # ---------------- cart ----------------

    def get_cart(self) -> CartSnapshot:
        resp = self._call("GET", CART_PATH)
        return to_cart_snapshot(self._json(resp))

    def add_cart_item(self, product_id: int, quantity: int) -> None:
        self._call("POST", CART_PATH, json={"productId": product_id, "quantity": quantity})

    def update_cart_item(self, product_id: int, quantity: int) -> None:
        self._call("PUT", f"{CART_PATH}/products/{product_id}", json={"quantity": quantity})

    def remove_cart_item(self, product_id: int) -> None:
        self._call("DELETE", f"{CART_PATH}/products/{product_id}")

    def clear_cart(self) -> None:
        self._call("DELETE", CART_PATH)

    # ---------------- catalogue ----------------

    def fetch_product(self, product_id: int) -> dict:
        resp = self._call("GET", f"{PRODUCTS_PATH}/{product_id}")
        data = unwrap_payload(self._json(resp))
        if not isinstance(data, dict):
            raise TransientNetworkFailure(f"Product {product_id} response has no body")
        return data

    # ---------------- payment gateway ----------------

    def gateway_status(self) -> GatewayStatus:
        resp = self._call("GET", f"{RAZORPAY_PATH}/enabled")
        data = unwrap_payload(self._json(resp))
        if not isinstance(data, dict):
            return GatewayStatus()
        enabled = bool(data.get("enabled"))
        return GatewayStatus(enabled=enabled, key_id=data.get("keyId") if enabled else None)

    def prepare_gateway_order(self, amount: int, currency: str) -> GatewayOrder:
        """Zamowienie po stronie bramki. NIE tworzy zamowienia w bazie sklepu."""
        resp = self._call(
            "POST",
            f"{RAZORPAY_PATH}/create-order-only",
            json={"amount": amount, "currency": currency},
        )
        data = unwrap_payload(self._json(resp))
        if not isinstance(data, dict) or not data.get("razorpayOrderId"):
            raise TransientNetworkFailure("Invalid response from payment API")

        return GatewayOrder(
            razorpay_order_id=data["razorpayOrderId"],
            amount=int(data.get("amount") or amount),
            currency=data.get("currency") or currency,
        )

    def verify_payment(self, reference: PaymentReference) -> None:
        resp = self._call(
            "POST",
            f"{RAZORPAY_PATH}/verify-signature",
            check=False,
            json={
                "razorpayOrderId": reference.razorpay_order_id,
                "razorpayPaymentId": reference.razorpay_payment_id,
                "razorpaySignature": reference.razorpay_signature,
            },
        )
        if resp.status_code in (401, 403):
            raise AuthenticationRequired()
        if not resp.ok:
            message = _error_message(resp) or "Payment verification failed"
            logger.warning(f"Signature verification rejected ({resp.status_code}): {message}")
            raise PaymentVerificationFailure(message)

    # ---------------- orders ----------------

    def place_order(self, payment_method: PaymentMethod, product_ids: Iterable[str]) -> requests.Response:
        """
        Formularz jak z przegladarki, redirecty sa sledzone.
        Interpretacja odpowiedzi nalezy do OrderSubmissionGateway.
        """
        form: List[tuple] = [("paymentMethod", payment_method.value)]
        form.extend(("selectedProductIds", str(pid)) for pid in product_ids)

        return self._call(
            "POST",
            PLACE_ORDER_PATH,
            check=False,
            data=form,
            allow_redirects=True,
        )
