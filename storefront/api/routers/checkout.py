# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import (
    get_aggregator,
    get_attempts,
    get_client,
    get_orchestrator,
    get_page_context,
    require_authenticated,
    to_http_error,
)
from storefront.domain.errors import CheckoutError
from storefront.domain.schemas import (
    AttemptState,
    CheckoutOutcome,
    CheckoutPageOut,
    PageContext,
    PaymentFailureIn,
    PaymentMethod,
    PaymentSuccessIn,
    PlaceOrderIn,
)
from storefront.services.checkout_aggregator import CheckoutAggregator
from storefront.services.notification_service import NotificationService
from storefront.services.payment_orchestrator import (
    CART_REDIRECT,
    EMPTY_CART_MESSAGE,
    AttemptRegistry,
    CheckoutAttempt,
    PaymentOrchestrator,
)
from storefront.services.storefront_client import StorefrontClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.get("", response_model=CheckoutPageOut)
def checkout_page(
    ctx: PageContext = Depends(get_page_context),
    aggregator: CheckoutAggregator = Depends(get_aggregator),
    client: StorefrontClient = Depends(get_client),
):
    require_authenticated(ctx)
    try:
        view = aggregator.build_checkout_view()
    except CheckoutError as e:
        raise to_http_error(e)

    if view is None:
        # checkout nigdy nie renderuje sie z zerem pozycji
        return CheckoutPageOut(redirect=CART_REDIRECT, notice=NotificationService.info(EMPTY_CART_MESSAGE))

    try:
        gateway_enabled = client.gateway_status().enabled
    except CheckoutError as e:
        logger.warning(f"Gateway probe failed, only COD will be offered: {e}")
        gateway_enabled = False

    return CheckoutPageOut(items=view.items, totals=view.totals, gateway_enabled=gateway_enabled)


@router.post("/place-order", response_model=CheckoutOutcome)
def place_order(
    payload: PlaceOrderIn,
    ctx: PageContext = Depends(get_page_context),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    attempts: AttemptRegistry = Depends(get_attempts),
):
    require_authenticated(ctx)
    attempt = CheckoutAttempt(ctx.session_id, payload.payment_method)

    try:
        if payload.payment_method == PaymentMethod.COD:
            return orchestrator.pay_on_delivery(attempt)

        outcome = orchestrator.start_online(attempt)
    except CheckoutError as e:
        raise to_http_error(e)

    if attempt.state == AttemptState.AWAITING_USER:
        attempts.add(attempt)
    return outcome


def _awaiting_attempt(attempt_id: str, ctx: PageContext, attempts: AttemptRegistry) -> CheckoutAttempt:
    attempt = attempts.get(attempt_id, ctx.session_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Checkout attempt not found")
    return attempt


def _run_callback(attempt: CheckoutAttempt, attempts: AttemptRegistry, callback, *args) -> CheckoutOutcome:
    try:
        return callback(attempt, *args)
    except CheckoutError as e:
        raise to_http_error(e)
    finally:
        if attempt.state.is_terminal:
            attempts.discard(attempt.attempt_id)


@router.post("/attempts/{attempt_id}/success", response_model=CheckoutOutcome)
def payment_success(
    attempt_id: str,
    payload: PaymentSuccessIn,
    ctx: PageContext = Depends(get_page_context),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    attempts: AttemptRegistry = Depends(get_attempts),
):
    attempt = _awaiting_attempt(attempt_id, ctx, attempts)
    return _run_callback(attempt, attempts, orchestrator.on_payment_success, payload.to_reference())


@router.post("/attempts/{attempt_id}/dismiss", response_model=CheckoutOutcome)
def payment_dismissed(
    attempt_id: str,
    ctx: PageContext = Depends(get_page_context),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    attempts: AttemptRegistry = Depends(get_attempts),
):
    attempt = _awaiting_attempt(attempt_id, ctx, attempts)
    return _run_callback(attempt, attempts, orchestrator.on_dismiss)


@router.post("/attempts/{attempt_id}/failure", response_model=CheckoutOutcome)
def payment_failed(
    attempt_id: str,
    payload: PaymentFailureIn,
    ctx: PageContext = Depends(get_page_context),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    attempts: AttemptRegistry = Depends(get_attempts),
):
    attempt = _awaiting_attempt(attempt_id, ctx, attempts)
    return _run_callback(attempt, attempts, orchestrator.on_payment_failed, payload.reason)
