# storefront/api/deps.py
from uuid import uuid4

import redis
from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import (
    AuthenticationRequired,
    CheckoutError,
    CheckoutInProgress,
    IllegalStateTransition,
    TransientNetworkFailure,
    ValidationRejection,
)
from storefront.domain.schemas import PageContext
from storefront.services.cart_store import CartStore
from storefront.services.checkout_aggregator import CheckoutAggregator
from storefront.services.order_gateway import OrderSubmissionGateway
from storefront.services.payment_orchestrator import AttemptRegistry, PaymentOrchestrator
from storefront.services.selection_tracker import SelectionTracker
from storefront.services.storefront_client import StorefrontClient
from storefront.services.submit_guard import SubmitGuard
from storefront.utils.settings import STOREFRONT_SESSION_COOKIE

DEVICE_COOKIE = "device_id"
CHECKOUT_SESSION_COOKIE = "checkout_session"
DEVICE_COOKIE_MAX_AGE = 365 * 24 * 3600


def get_page_context(request: Request, response: Response) -> PageContext:
    """Flaga logowania liczona raz na request, potem sie nie zmienia."""
    auth = request.headers.get("Authorization", "")
    token = auth[7:].strip() if auth.lower().startswith("bearer ") else None
    session_cookie = request.cookies.get(STOREFRONT_SESSION_COOKIE)

    device_id = request.cookies.get(DEVICE_COOKIE)
    if not device_id:
        device_id = uuid4().hex
        response.set_cookie(DEVICE_COOKIE, device_id, max_age=DEVICE_COOKIE_MAX_AGE, httponly=True, samesite="lax")

    session_id = request.cookies.get(CHECKOUT_SESSION_COOKIE)
    if not session_id:
        session_id = uuid4().hex
        response.set_cookie(CHECKOUT_SESSION_COOKIE, session_id, httponly=True, samesite="lax")

    return PageContext(
        authenticated=bool(token or session_cookie),
        auth_token=token or None,
        session_cookie=session_cookie,
        device_id=device_id,
        session_id=session_id,
    )


def get_redis(request: Request) -> redis.Redis:
    return request.app.state.redis


def get_attempts(request: Request) -> AttemptRegistry:
    return request.app.state.attempts


def get_client(ctx: PageContext = Depends(get_page_context)) -> StorefrontClient:
    return StorefrontClient.for_page(ctx)


def get_cart_store(
    ctx: PageContext = Depends(get_page_context),
    client: StorefrontClient = Depends(get_client),
    db: Session = Depends(get_db),
) -> CartStore:
    return CartStore.for_page(ctx, client, db)


def get_selection(
    ctx: PageContext = Depends(get_page_context),
    r: redis.Redis = Depends(get_redis),
) -> SelectionTracker:
    return SelectionTracker(ctx.session_id, client=r)


def get_aggregator(
    store: CartStore = Depends(get_cart_store),
    selection: SelectionTracker = Depends(get_selection),
) -> CheckoutAggregator:
    return CheckoutAggregator(store, selection)


def get_orchestrator(
    ctx: PageContext = Depends(get_page_context),
    client: StorefrontClient = Depends(get_client),
    store: CartStore = Depends(get_cart_store),
    selection: SelectionTracker = Depends(get_selection),
    aggregator: CheckoutAggregator = Depends(get_aggregator),
    r: redis.Redis = Depends(get_redis),
) -> PaymentOrchestrator:
    return PaymentOrchestrator(
        client=client,
        cart_store=store,
        selection=selection,
        aggregator=aggregator,
        gateway=OrderSubmissionGateway(client),
        guard=SubmitGuard(ctx.session_id, client=r),
    )


def to_http_error(e: CheckoutError) -> HTTPException:
    if isinstance(e, AuthenticationRequired):
        return HTTPException(status_code=401, detail=e.message, headers={"X-Redirect": e.redirect})
    if isinstance(e, (CheckoutInProgress, IllegalStateTransition)):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, ValidationRejection):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, TransientNetworkFailure):
        return HTTPException(status_code=502, detail=e.message)
    return HTTPException(status_code=400, detail=e.message)


def require_authenticated(ctx: PageContext) -> None:
    if not ctx.authenticated:
        raise to_http_error(AuthenticationRequired("Please log in to proceed to checkout"))
