# storefront/services/order_gateway.py
from typing import Iterable, List
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from storefront.domain.errors import (
    AuthenticationRequired,
    TransientNetworkFailure,
    ValidationRejection,
)
from storefront.domain.schemas import PaymentMethod
from storefront.services.storefront_client import StorefrontClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CONFIRMATION_PATH = "/orders"
CHECKOUT_PATH = "/checkout"
LOGIN_PATH = "/login"

DEFAULT_REJECTION = "Failed to place order"


def extract_rejection_message(html: str) -> str:
    """Komunikat bledu z flash atrybutu strony checkout (.alert-danger, potem [data-error])."""
    if not html:
        return DEFAULT_REJECTION

    soup = BeautifulSoup(html, "html.parser")
    node = soup.select_one(".alert-danger") or soup.select_one("[data-error]")
    if node is None:
        return DEFAULT_REJECTION

    text = node.get_text(strip=True)
    return text or DEFAULT_REJECTION


class OrderSubmissionGateway:
    """
    Jedyne miejsce ktore tworzy zamowienie.
    Wywolanie nie jest idempotentne - zero retry bez ponownej akcji uzytkownika.

    Serwer zawsze odpowiada redirectem:
    - /orders   -> zamowienie zapisane
    - /checkout -> odrzucone, komunikat w html
    - /login    -> sesja wygasla
    """

    def __init__(self, client: StorefrontClient):
        self.client = client

    def submit(self, payment_method: PaymentMethod, selected_product_ids: Iterable[str]) -> str:
        ids: List[str] = [str(pid) for pid in selected_product_ids if str(pid).strip()]
        if not ids:
            # zamowienie bez pozycji jest bledem wywolujacego, nie serwera
            raise ValueError("At least one product id is required to place an order")

        logger.info(f"Submitting order paymentMethod={payment_method.value} products={ids}")
        resp = self.client.place_order(payment_method, ids)
        return self._interpret(resp)

    @staticmethod
    def _interpret(resp: requests.Response) -> str:
        if resp.status_code in (401, 403):
            raise AuthenticationRequired()

        if not resp.ok:
            logger.warning(f"Order submission failed with status {resp.status_code}")
            raise TransientNetworkFailure(
                f"Failed to create order. Server returned status {resp.status_code}",
                status_code=resp.status_code,
            )

        path = urlparse(resp.url or "").path

        if path.startswith(CONFIRMATION_PATH):
            logger.info(f"Order placed, confirmation at {resp.url}")
            return resp.url

        if path.startswith(CHECKOUT_PATH):
            message = extract_rejection_message(resp.text)
            logger.warning(f"Order rejected: {message}")
            raise ValidationRejection(message)

        if path.startswith(LOGIN_PATH):
            raise AuthenticationRequired()

        #nieznana lokalizacja - nie zakladamy ze zamowienie powstalo
        logger.warning(f"Order submission resolved to unexpected location {resp.url}")
        raise TransientNetworkFailure("Unexpected response from order submission")
