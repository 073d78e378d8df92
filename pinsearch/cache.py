"""検索結果のメモリキャッシュ.

cachetools.TTLCache をラップする。
  - 最大件数を超えたら期限切れ → 最も使われていないものの順で追い出す
  - 挿入から TTL を過ぎたエントリは get 時に存在しない扱い
プロセス再起動で消える揮発キャッシュ。
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable

from cachetools import TTLCache

from pinsearch.config import CACHE_MAX_SIZE, CACHE_TTL_SECONDS
from pinsearch.models import SearchResult

logger = logging.getLogger(__name__)


class ResultCache:
    """スレッドセーフな LRU + TTL キャッシュ."""

    def __init__(
        self,
        maxsize: int = CACHE_MAX_SIZE,
        ttl: float = CACHE_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = threading.Lock()

    @property
    def maxsize(self) -> int:
        return int(self._cache.maxsize)

    def get(self, key: Hashable) -> SearchResult | None:
        """キャッシュを引く。無い・期限切れなら None."""
        with self._lock:
            # 期限切れエントリはここで削除される
            self._cache.expire()
            return self._cache.get(key)

    def set(self, key: Hashable, value: SearchResult) -> None:
        """エントリを丸ごと差し替える."""
        with self._lock:
            self._cache[key] = value
            logger.debug("キャッシュ保存: key=%s, size=%d", key, len(self._cache))

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
