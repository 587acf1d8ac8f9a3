# agency/services/anonymous_cart_store.py
import json
from typing import Any, Dict, List

import redis

from agency.utils.retry import redis_retry
from agency.utils.settings import REDIS_URL, ANONYMOUS_CART_TTL_SECONDS
from agency.utils.logging import get_logger

logger = get_logger(__name__)

ANONYMOUS_CART_ID = "anonymous-cart-id"
ANONYMOUS_CART_ITEMS = "anonymous-cart-items"


class AnonymousCartStore:
    """
    Koszyk przed zalogowaniem, trzymany per urzadzenie:
    -device:<id>:anonymous-cart-id     -> id koszyka
    -device:<id>:anonymous-cart-items  -> json z lista pozycji
    """

    def __init__(self, client: redis.Redis, ttl: int = ANONYMOUS_CART_TTL_SECONDS):
        self.redis = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str | None = None, ttl: int = ANONYMOUS_CART_TTL_SECONDS) -> "AnonymousCartStore":
        return cls(redis.Redis.from_url(url or REDIS_URL, decode_responses=True), ttl=ttl)

    @staticmethod
    def _key(device_id: str, name: str) -> str:
        return f"device:{device_id}:{name}"

    @redis_retry()
    def get_cart_id(self, device_id: str) -> str | None:
        return self.redis.get(self._key(device_id, ANONYMOUS_CART_ID))

    @redis_retry()
    def set_cart_id(self, device_id: str, cart_id: str) -> None:
        self.redis.set(self._key(device_id, ANONYMOUS_CART_ID), cart_id, ex=self.ttl)

    @redis_retry()
    def get_items(self, device_id: str) -> List[Dict[str, Any]] | None:
        """None gdy klucza nie ma; uszkodzony json albo nie-lista -> []."""
        raw = self.redis.get(self._key(device_id, ANONYMOUS_CART_ITEMS))
        if raw is None:
            return None
        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning(f"Uszkodzony koszyk anonimowy dla urzadzenia {device_id}, traktuje jako pusty")
            return []
        if not isinstance(items, list):
            return []
        return [i for i in items if isinstance(i, dict)]

    @redis_retry()
    def set_items(self, device_id: str, items: List[Dict[str, Any]]) -> None:
        self.redis.set(
            self._key(device_id, ANONYMOUS_CART_ITEMS),
            json.dumps(items, default=str),
            ex=self.ttl,
        )
        # przedluz tez id, oba klucze zyja razem
        self.redis.expire(self._key(device_id, ANONYMOUS_CART_ID), self.ttl)

    @redis_retry()
    def clear(self, device_id: str) -> None:
        self.redis.delete(
            self._key(device_id, ANONYMOUS_CART_ITEMS),
            self._key(device_id, ANONYMOUS_CART_ID),
        )
