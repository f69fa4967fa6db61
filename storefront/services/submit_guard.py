# storefront/services/submit_guard.py
import redis

from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, SUBMIT_GUARD_TTL_SECONDS

logger = get_logger(__name__)

#LUA porownaj i usun atomowo, zwalnia tylko wlasciciel locka
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class SubmitGuard:
    """
    Blokada przycisku "zloz zamowienie" na czas jednej proby checkoutu.
    To tylko best-effort lock per sesja, nie prawdziwe wykluczanie.
    TTL sprzata lock porzucony przez zamknieta karte.
    """

    def __init__(self, session_id: str, client: redis.Redis | None = None, ttl: int = SUBMIT_GUARD_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.session_id = session_id
        self.ttl = ttl

    @property
    def key(self) -> str:
        return f"checkout:submit:{self.session_id}"

    @redis_retry()
    def acquire(self, attempt_id: str) -> bool:
        logger.info(f"Acquire submit guard {self.key} for attempt {attempt_id}")
        #SET checkout:submit:<session> <attempt> NX EX 900
        return bool(self.redis.set(name=self.key, value=attempt_id, nx=True, ex=self.ttl))

    @redis_retry()
    def release(self, attempt_id: str) -> bool:
        logger.info(f"Release submit guard {self.key} for attempt {attempt_id}")
        res = self.redis.eval(_RELEASE_LUA, 1, self.key, attempt_id)
        return bool(res)

    @redis_retry()
    def holder(self) -> str | None:
        return self.redis.get(self.key)
