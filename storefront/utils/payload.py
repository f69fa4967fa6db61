# storefront/utils/payload.py
from typing import Any


def unwrap_payload(body: Any) -> Any:
    """
    Serwer odpowiada roznymi ksztaltami: ApiResponse {success, data},
    strona {content: [...]} albo goly obiekt.

    Kolejnosc:
    1. body["data"] jesli jest i nie jest null
    2. body["content"] jesli jest i nie jest null
    3. body
    """
    if isinstance(body, dict):
        if body.get("data") is not None:
            return body["data"]
        if body.get("content") is not None:
            return body["content"]
    return body
