from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Hashable, Optional, Tuple

CacheKey = Tuple[str, str, str]


def make_cache_key(source_lang: str, target_lang: str, text: str, prefix_chars: int = 50) -> CacheKey:
    """Key on the language pair plus a bounded prefix of the text."""
    source_lang = getattr(source_lang, "value", source_lang)
    target_lang = getattr(target_lang, "value", target_lang)
    return (source_lang, target_lang, text[:prefix_chars])


class TranslationCache:
    """FIFO translation cache with TTL support.

    Eviction follows insertion order, not access order. Every method is
    synchronous so read-modify-write never spans an await.
    """

    def __init__(self, max_size: int = 1000, ttl_seconds: int = 0):
        self._cache: OrderedDict = OrderedDict()
        self._max_size = max_size
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds > 0 else None

    def get(self, key: Hashable) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, timestamp = entry
        if self._ttl is not None and datetime.now() - timestamp > self._ttl:
            del self._cache[key]
            return None
        return value

    def set(self, key: Hashable, value: str) -> None:
        # Existing keys keep their insertion position
        self._cache[key] = (value, datetime.now())
        # Evict oldest if over capacity
        while len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self):
        return len(self._cache)
