# storefront/services/payment_orchestrator.py
import threading
import time
from typing import Dict, List
from uuid import uuid4

from storefront.domain.errors import (
    AuthenticationRequired,
    CheckoutError,
    CheckoutInProgress,
    IllegalStateTransition,
    PaymentCancelled,
    PaymentVerificationFailure,
    PostPaymentCommitFailure,
    ValidationRejection,
)
from storefront.domain.schemas import (
    AttemptState,
    CheckoutOutcome,
    CheckoutView,
    GatewayStatus,
    Notice,
    PaymentIntent,
    PaymentMethod,
    PaymentReference,
)
from storefront.services.cart_store import CartStore
from storefront.services.checkout_aggregator import CheckoutAggregator
from storefront.services.notification_service import NotificationService
from storefront.services.order_gateway import OrderSubmissionGateway
from storefront.services.selection_tracker import SelectionTracker
from storefront.services.storefront_client import StorefrontClient
from storefront.services.submit_guard import SubmitGuard
from storefront.utils.logging import get_logger
from storefront.utils.settings import PAYMENT_CURRENCY, SUBMIT_GUARD_TTL_SECONDS

logger = get_logger(__name__)

CART_REDIRECT = "/cart"
EMPTY_CART_MESSAGE = "Your cart is empty. Add some products before checking out."

_TRANSITIONS = {
    AttemptState.IDLE: {AttemptState.PREPARING, AttemptState.COMMITTED, AttemptState.FAILED},
    AttemptState.PREPARING: {AttemptState.AWAITING_USER, AttemptState.FAILED},
    AttemptState.AWAITING_USER: {AttemptState.VERIFYING, AttemptState.CANCELLED, AttemptState.FAILED},
    AttemptState.VERIFYING: {AttemptState.COMMITTED, AttemptState.FAILED},
}


class CheckoutAttempt:
    """
    Stan jednej proby checkoutu. Zyje tylko w pamieci,
    po stanie koncowym (Committed/Cancelled/Failed) jest wyrzucana.
    """

    def __init__(self, session_id: str, payment_method: PaymentMethod):
        self.attempt_id = uuid4().hex
        self.session_id = session_id
        self.payment_method = payment_method
        self.state = AttemptState.IDLE
        self.view: CheckoutView | None = None
        self.intent: PaymentIntent | None = None
        self.gateway_key_id: str | None = None
        self.created_at = time.monotonic()
        self._lock = threading.Lock()

    def transition(self, new_state: AttemptState) -> None:
        with self._lock:
            allowed = _TRANSITIONS.get(self.state, set())
            if new_state not in allowed:
                raise IllegalStateTransition(
                    f"Attempt {self.attempt_id} cannot move from {self.state.value} to {new_state.value}"
                )
            logger.info(f"Attempt {self.attempt_id}: {self.state.value} -> {new_state.value}")
            self.state = new_state
            if self.intent is not None:
                self.intent.status = new_state

    def require(self, state: AttemptState) -> None:
        if self.state != state:
            raise IllegalStateTransition(
                f"Attempt {self.attempt_id} is {self.state.value}, expected {state.value}"
            )


class AttemptRegistry:
    """
    Proby czekajace na decyzje uzytkownika w oknie platnosci (AwaitingUser).
    Proba starsza niz TTL guarda jest wyrzucana - zamknieta karta nie wroci.
    """

    def __init__(self, ttl: float = SUBMIT_GUARD_TTL_SECONDS):
        self._attempts: Dict[str, CheckoutAttempt] = {}
        self._lock = threading.Lock()
        self.ttl = ttl

    def _evict_expired(self) -> None:
        deadline = time.monotonic() - self.ttl
        expired = [aid for aid, a in self._attempts.items() if a.created_at <= deadline]
        for aid in expired:
            logger.info(f"Attempt {aid} expired in the payment window, dropping it")
            del self._attempts[aid]

    def add(self, attempt: CheckoutAttempt) -> None:
        with self._lock:
            self._evict_expired()
            self._attempts[attempt.attempt_id] = attempt

    def get(self, attempt_id: str, session_id: str) -> CheckoutAttempt | None:
        with self._lock:
            self._evict_expired()
            attempt = self._attempts.get(attempt_id)
        if attempt is None or attempt.session_id != session_id:
            return None
        return attempt

    def discard(self, attempt_id: str) -> None:
        with self._lock:
            self._attempts.pop(attempt_id, None)

    def __len__(self) -> int:
        return len(self._attempts)


class PaymentOrchestrator:
    """
    Dwufazowa platnosc:
    1. Preparing     - zamowienie w bramce (bez zamowienia w sklepie!)
    2. AwaitingUser  - okno platnosci, czekamy na jeden z trzech callbackow
    3. Verifying     - weryfikacja podpisu, dopiero potem zlozenie zamowienia

    Anulowanie i blad nigdy nie ruszaja koszyka ani wyboru.
    COD pomija bramke: Idle -> Committed jednym wywolaniem.

    Zaden CheckoutError nie wychodzi na zewnatrz - kazda sciezka konczy sie CheckoutOutcome.
    """

    def __init__(
        self,
        client: StorefrontClient,
        cart_store: CartStore,
        selection: SelectionTracker,
        aggregator: CheckoutAggregator,
        gateway: OrderSubmissionGateway,
        guard: SubmitGuard,
        notifications: NotificationService | None = None,
        currency: str = PAYMENT_CURRENCY,
    ):
        self.client = client
        self.cart_store = cart_store
        self.selection = selection
        self.aggregator = aggregator
        self.gateway = gateway
        self.guard = guard
        self.notifications = notifications or NotificationService()
        self.currency = currency

    # =====================================================
    # COD
    # =====================================================
    def pay_on_delivery(self, attempt: CheckoutAttempt) -> CheckoutOutcome:
        attempt.require(AttemptState.IDLE)
        self._acquire(attempt)

        try:
            view = self.aggregator.build_checkout_view()
            if view is None:
                return self._outcome(attempt, redirect=CART_REDIRECT, notice=self.notifications.info(EMPTY_CART_MESSAGE))
            attempt.view = view

            redirect = self.gateway.submit(PaymentMethod.COD, view.product_ids())
        except AuthenticationRequired as e:
            return self._auth_failure(attempt, e)
        except ValidationRejection as e:
            # zostajemy w Idle, mozna sprobowac ponownie
            return self._outcome(attempt, notice=self.notifications.error(e.message))
        except CheckoutError as e:
            return self._outcome(attempt, notice=self.notifications.error(f"Failed to place order: {e.message}"))
        finally:
            self._release(attempt)

        attempt.transition(AttemptState.COMMITTED)
        self._clear_after_commit()
        return self._outcome(attempt, redirect=redirect, notice=self.notifications.success("Order placed successfully!"))

    # =====================================================
    # ONLINE
    # =====================================================
    def start_online(self, attempt: CheckoutAttempt) -> CheckoutOutcome:
        """Idle -> Preparing -> AwaitingUser. Guard zostaje wziety do konca proby."""
        attempt.require(AttemptState.IDLE)
        self._acquire(attempt)

        try:
            status = self._gateway_status()
            if not status.enabled:
                self._release(attempt)
                return self._outcome(
                    attempt,
                    notice=self.notifications.error("Online payment is currently unavailable. Please choose Cash on Delivery."),
                )

            view = self.aggregator.build_checkout_view()
            if view is None:
                self._release(attempt)
                return self._outcome(attempt, redirect=CART_REDIRECT, notice=self.notifications.info(EMPTY_CART_MESSAGE))
            attempt.view = view

            attempt.transition(AttemptState.PREPARING)
            order = self.client.prepare_gateway_order(view.totals.amount_minor_units, self.currency)
        except AuthenticationRequired as e:
            return self._auth_failure(attempt, e)
        except CheckoutError as e:
            return self._fail(attempt, f"Failed to prepare payment: {e.message}")

        attempt.intent = PaymentIntent(
            gateway_order_id=order.razorpay_order_id,
            amount=order.amount,
            currency=order.currency,
            status=AttemptState.PREPARING,
        )
        attempt.gateway_key_id = status.key_id
        attempt.transition(AttemptState.AWAITING_USER)

        logger.info(
            f"Attempt {attempt.attempt_id} awaiting payment for gateway order "
            f"{order.razorpay_order_id} ({order.amount} {order.currency})"
        )
        return self._outcome(attempt)

    def on_dismiss(self, attempt: CheckoutAttempt) -> CheckoutOutcome:
        """Uzytkownik zamknal okno. Zadnych wywolan sieciowych."""
        attempt.transition(AttemptState.CANCELLED)
        self._release(attempt)
        return self._outcome(attempt, notice=self.notifications.info(PaymentCancelled().message))

    def on_payment_failed(self, attempt: CheckoutAttempt, reason: str | None = None) -> CheckoutOutcome:
        attempt.transition(AttemptState.FAILED)
        self._release(attempt)
        logger.warning(f"Attempt {attempt.attempt_id}: gateway reported payment failure: {reason}")
        message = f"Payment failed: {reason}" if reason else "Payment failed. Please try again."
        return self._outcome(attempt, notice=self.notifications.error(message))

    def on_payment_success(self, attempt: CheckoutAttempt, reference: PaymentReference) -> CheckoutOutcome:
        """AwaitingUser -> Verifying -> Committed | Failed. Od tej chwili nie ma anulowania."""
        attempt.transition(AttemptState.VERIFYING)

        try:
            if reference.razorpay_order_id != attempt.intent.gateway_order_id:
                raise PaymentVerificationFailure("Payment does not belong to this checkout")
            self.client.verify_payment(reference)
        except AuthenticationRequired as e:
            return self._auth_failure(attempt, e)
        except CheckoutError as e:
            # podpis odrzucony -> nigdy nie skladamy zamowienia
            return self._fail(attempt, f"Payment verification failed: {e.message}")
        except Exception as e:
            logger.error(f"Attempt {attempt.attempt_id}: unexpected error during verification: {e}")
            return self._fail(attempt, "Payment verification failed")

        logger.info(f"Attempt {attempt.attempt_id}: payment {reference.razorpay_payment_id} verified")

        # pieniadze sa juz pobrane - zaden wyjatek nie moze stad wyjsc
        try:
            redirect = self.gateway.submit(PaymentMethod.ONLINE, self._commit_product_ids(attempt))
        except Exception as e:
            return self._unrecorded_payment(attempt, reference, getattr(e, "message", None) or str(e) or type(e).__name__)

        attempt.transition(AttemptState.COMMITTED)
        self._release(attempt)
        self._clear_after_commit()
        return self._outcome(
            attempt,
            redirect=redirect,
            notice=self.notifications.success("Payment successful! Order placed."),
        )

    # =====================================================
    # helpers
    # =====================================================
    def _acquire(self, attempt: CheckoutAttempt) -> None:
        if not self.guard.acquire(attempt.attempt_id):
            logger.warning(f"Attempt {attempt.attempt_id} refused, session {attempt.session_id} is busy")
            raise CheckoutInProgress()

    def _release(self, attempt: CheckoutAttempt) -> None:
        try:
            self.guard.release(attempt.attempt_id)
        except Exception as e:
            # TTL i tak zwolni guard
            logger.warning(f"Failed to release submit guard for attempt {attempt.attempt_id}: {e}")

    def _gateway_status(self) -> GatewayStatus:
        try:
            return self.client.gateway_status()
        except AuthenticationRequired:
            raise
        except CheckoutError as e:
            logger.warning(f"Gateway probe failed, treating online payment as disabled: {e}")
            return GatewayStatus(enabled=False)

    def _commit_product_ids(self, attempt: CheckoutAttempt) -> List[str]:
        """Swiezy odczyt koszyka i wyboru, a przy dowolnym bledzie pozycje pokazane uzytkownikowi."""
        try:
            product_ids = self.aggregator.resolve_product_ids()
        except Exception as e:
            logger.warning(f"Attempt {attempt.attempt_id}: could not re-read cart at commit, using checkout view: {e}")
            product_ids = []
        return product_ids or attempt.view.product_ids()

    def _clear_after_commit(self) -> None:
        """Zamowienie juz istnieje - porazka czyszczenia nie cofa commitu."""
        try:
            self.cart_store.clear()
        except Exception as e:
            logger.warning(f"Cart clear after commit failed: {e}")
        try:
            self.selection.clear()
        except Exception as e:
            logger.warning(f"Selection clear after commit failed: {e}")

    def _fail(self, attempt: CheckoutAttempt, message: str) -> CheckoutOutcome:
        attempt.transition(AttemptState.FAILED)
        self._release(attempt)
        return self._outcome(attempt, notice=self.notifications.error(message))

    def _auth_failure(self, attempt: CheckoutAttempt, error: AuthenticationRequired) -> CheckoutOutcome:
        if not attempt.state.is_terminal:
            attempt.transition(AttemptState.FAILED)
        self._release(attempt)
        return self._outcome(attempt, redirect=error.redirect, notice=self.notifications.error(error.message))

    def _unrecorded_payment(self, attempt: CheckoutAttempt, reference: PaymentReference, reason: str) -> CheckoutOutcome:
        """Pieniadze pobrane, zamowienia brak. Koszyk i wybor zostaja nietkniete."""
        attempt.transition(AttemptState.FAILED)
        self._release(attempt)

        failure = PostPaymentCommitFailure(reason, payment_id=reference.razorpay_payment_id)
        logger.error(
            f"Attempt {attempt.attempt_id}: payment {failure.payment_id} captured "
            f"but order was not recorded: {failure.message}"
        )
        try:
            self.notifications.report_unrecorded_payment(
                attempt.session_id,
                reference.razorpay_order_id,
                reference.razorpay_payment_id,
                reason,
            )
        except Exception as e:
            logger.error(f"Could not queue reconciliation report for payment {reference.razorpay_payment_id}: {e}")

        return self._outcome(
            attempt,
            notice=self.notifications.unrecorded_payment(failure.payment_id, failure.message),
        )

    @staticmethod
    def _outcome(attempt: CheckoutAttempt, redirect: str | None = None, notice: Notice | None = None) -> CheckoutOutcome:
        return CheckoutOutcome(
            attempt_id=attempt.attempt_id,
            state=attempt.state,
            redirect=redirect,
            notice=notice,
            intent=attempt.intent,
            gateway_key_id=attempt.gateway_key_id,
        )
