# storefront/services/selection_tracker.py
import json
from typing import List, Sequence

import redis

from storefront.domain.errors import ValidationRejection
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, SELECTION_TTL_SECONDS

logger = get_logger(__name__)


class SelectionTracker:
    """
    Ktore pozycje koszyka uzytkownik zabiera do checkoutu.
    - capture nadpisuje przy "przejdz do kasy"
    - consume tylko czyta (nie czysci)
    - clear robi wywolujacy: po sukcesie albo przy wejsciu na strone koszyka
    Brak capture -> consume zwraca None i checkout bierze caly koszyk.
    """

    def __init__(self, session_id: str, client: redis.Redis | None = None, ttl: int = SELECTION_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.session_id = session_id
        self.ttl = ttl

    @property
    def key(self) -> str:
        return f"checkout:selection:{self.session_id}"

    @redis_retry()
    def capture(self, product_ids: Sequence[str]) -> None:
        ids = [str(pid) for pid in product_ids if str(pid).strip()]
        if not ids:
            raise ValidationRejection("Please select at least one product to proceed to checkout")

        logger.info(f"Capture selection {ids} for session {self.session_id}")
        self.redis.set(self.key, json.dumps(ids), ex=self.ttl)

    @redis_retry()
    def consume(self) -> List[str] | None:
        raw = self.redis.get(self.key)
        if raw is None:
            return None

        try:
            ids = json.loads(raw)
        except ValueError:
            logger.warning(f"Unreadable selection for session {self.session_id}, ignoring")
            return None

        if not isinstance(ids, list) or not ids:
            return None
        return [str(pid) for pid in ids]

    @redis_retry()
    def clear(self) -> None:
        logger.info(f"Clear selection for session {self.session_id}")
        self.redis.delete(self.key)
