# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.domain.schemas import Notice, NoticeLevel
from storefront.utils.logging import get_logger
from storefront.utils.settings import NOTICE_DISMISS_SECONDS

logger = get_logger(__name__)


class NotificationService:
    """
    Komunikaty dla uzytkownika.
    Wszystkie znikaja same po NOTICE_DISMISS_SECONDS, poza
    "platnosc pobrana, zamowienie nie zapisane" - ten wisi do potwierdzenia.
    """

    @staticmethod
    def success(message: str) -> Notice:
        return Notice(level=NoticeLevel.SUCCESS, message=message, dismiss_after_seconds=NOTICE_DISMISS_SECONDS)

    @staticmethod
    def info(message: str) -> Notice:
        return Notice(level=NoticeLevel.INFO, message=message, dismiss_after_seconds=NOTICE_DISMISS_SECONDS)

    @staticmethod
    def error(message: str) -> Notice:
        return Notice(level=NoticeLevel.ERROR, message=message, dismiss_after_seconds=NOTICE_DISMISS_SECONDS)

    @staticmethod
    def unrecorded_payment(payment_id: str | None, reason: str) -> Notice:
        reference = f" (payment reference {payment_id})" if payment_id else ""
        return Notice(
            level=NoticeLevel.ERROR,
            message=(
                f"Your payment was received{reference} but we could not record your order: "
                f"{reason}. Please contact support - do not pay again."
            ),
            dismiss_after_seconds=None,
            requires_ack=True,
        )

    @staticmethod
    def report_unrecorded_payment(session_id: str, gateway_order_id: str, payment_id: str, reason: str):
        """Zglasza supportowi pobrana platnosc bez zamowienia (async)."""
        report_unrecorded_payment_task.delay(session_id, gateway_order_id, payment_id, reason)


@celery_app.task(name="storefront.services.notification_service.report_unrecorded_payment_task")
def report_unrecorded_payment_task(session_id: str, gateway_order_id: str, payment_id: str, reason: str):
    """
    Celery task - w prawdziwym systemie tworzylby ticket do recznego uzgodnienia.
    Teraz tylko loguje.
    """
    logger.error(
        f"[RECONCILIATION] Session {session_id}: payment {payment_id} "
        f"(gateway order {gateway_order_id}) captured without an order: {reason}"
    )
    return {
        "session_id": session_id,
        "gateway_order_id": gateway_order_id,
        "payment_id": payment_id,
        "status": "reported",
    }
