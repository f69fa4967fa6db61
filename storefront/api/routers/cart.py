# storefront/api/routers/cart.py
import redis
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import (
    get_cart_store,
    get_page_context,
    get_selection,
    require_authenticated,
    to_http_error,
)
from storefront.domain.errors import CheckoutError
from storefront.domain.schemas import (
    CartOut,
    CartSnapshot,
    ItemIn,
    PageContext,
    QuantityIn,
    SelectionIn,
)
from storefront.services.cart_store import CartStore
from storefront.services.checkout_aggregator import compute_totals
from storefront.services.selection_tracker import SelectionTracker
from storefront.utils.logging import get_logger
from storefront.utils.settings import CART_TAX_RATE

logger = get_logger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_out(snapshot: CartSnapshot) -> CartOut:
    return CartOut(items=snapshot.items, totals=compute_totals(snapshot.items, CART_TAX_RATE))


@router.get("", response_model=CartOut)
def get_cart(
    store: CartStore = Depends(get_cart_store),
    selection: SelectionTracker = Depends(get_selection),
):
    # wejscie na strone koszyka kasuje poprzedni wybor do checkoutu
    try:
        selection.clear()
    except redis.RedisError as e:
        logger.warning(f"Could not clear checkout selection: {e}")

    try:
        return _cart_out(store.read())
    except CheckoutError as e:
        raise to_http_error(e)


@router.post("/items", response_model=CartOut)
def add_item(payload: ItemIn, store: CartStore = Depends(get_cart_store)):
    try:
        return _cart_out(store.add(payload.product_id, payload.quantity))
    except CheckoutError as e:
        raise to_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/items/{product_id}", response_model=CartOut)
def update_item(product_id: int, payload: QuantityIn, store: CartStore = Depends(get_cart_store)):
    try:
        return _cart_out(store.set_quantity(product_id, payload.quantity))
    except CheckoutError as e:
        raise to_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(product_id: int, store: CartStore = Depends(get_cart_store)):
    try:
        return _cart_out(store.remove(product_id))
    except CheckoutError as e:
        raise to_http_error(e)


@router.delete("", response_model=CartOut)
def clear_cart(store: CartStore = Depends(get_cart_store)):
    try:
        return _cart_out(store.clear())
    except CheckoutError as e:
        raise to_http_error(e)


@router.post("/checkout")
def proceed_to_checkout(
    payload: SelectionIn,
    ctx: PageContext = Depends(get_page_context),
    selection: SelectionTracker = Depends(get_selection),
):
    """Zapamietuje zaznaczone pozycje i odsyla na strone checkoutu."""
    require_authenticated(ctx)
    try:
        selection.capture(payload.product_ids)
    except CheckoutError as e:
        raise to_http_error(e)
    return {"redirect": "/checkout"}
