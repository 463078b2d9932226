# storefront/services/lock_service.py
import uuid
from contextlib import contextmanager

import redis

from storefront.domain.errors import ConflictError
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import LOCK_TTL_SECONDS, REDIS_URL

logger = get_logger(__name__)

# compare-and-delete in one step: only the holder's token may release the key
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def cart_lock_key(lookup_key: str) -> str:
    return f"cart:{lookup_key}:lock"


def product_reviews_lock_key(product_id: str) -> str:
    return f"product:{product_id}:reviews:lock"


class LockService:
    """
    Short-lived single-writer locks in redis.

    A lock is a key set with NX + EX holding a random token; it expires on
    its own if the holder dies before releasing it.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, token: str, ttl: int = LOCK_TTL_SECONDS) -> bool:
        logger.debug("lock.acquire", key=key)
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        logger.debug("lock.release", key=key)
        return bool(self.redis.eval(_RELEASE_LUA, 1, key, token))

    @contextmanager
    def hold(self, key: str, ttl: int = LOCK_TTL_SECONDS):
        token = uuid.uuid4().hex
        if not self.acquire(key, token, ttl):
            logger.warning("lock.busy", key=key)
            raise ConflictError("Another update is in progress, please try again")
        try:
            yield token
        finally:
            try:
                self.release(key, token)
            except redis.RedisError:
                # the guarded write is already done; the key expires with its TTL
                logger.error("lock.release_failed", key=key, ttl=ttl, exc_info=True)
