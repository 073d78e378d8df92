"""HTTP API.

GET /api/pinterest?q=<keyword>&scrolls=<1-10>&login=<0|1>
GET /health
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections import defaultdict, deque
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pinsearch import config
from pinsearch.browser import BrowserManager
from pinsearch.cache import ResultCache
from pinsearch.models import SearchParams, clamp_scroll_count
from pinsearch.search import PinterestSearcher

logger = logging.getLogger(__name__)


class RateLimiter:
    """クライアント IP ごとのスライディングウィンドウ制限."""

    def __init__(self, limit: int, window_sec: float = config.RATE_LIMIT_WINDOW_SEC) -> None:
        self.limit = limit
        self.window_sec = window_sec
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._last_prune = 0.0
        self._lock = threading.Lock()

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def is_limited(self, client: str, now: float | None = None) -> bool:
        if self.limit <= 0:
            return False
        now = time.monotonic() if now is None else now
        with self._lock:
            if now - self._last_prune > self.window_sec:
                self._prune(now)
            window = self._hits[client]
            while window and (now - window[0]) > self.window_sec:
                window.popleft()
            if len(window) >= self.limit:
                return True
            window.append(now)
        return False

    def _prune(self, now: float) -> None:
        """ウィンドウが空になったクライアントを削除する（ロック内で呼ぶ）."""
        drained = [c for c, w in self._hits.items() if not w or (now - w[-1]) > self.window_sec]
        for client in drained:
            del self._hits[client]
        self._last_prune = now


def client_ip(request: Request, trust_proxy: bool = False) -> str:
    """レート制限のキー。X-Forwarded-For はプロキシを信頼する設定のときだけ使う."""
    forwarded = request.headers.get("x-forwarded-for", "") if trust_proxy else ""
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def parse_scrolls(raw: str | None) -> int:
    """scrolls パラメータを解釈する.

    先頭の整数部分を使う ("2.5" -> 2, "4px" -> 4)。数値で始まらなければデフォルト (3)。
    """
    m = _LEADING_INT.match(raw or "")
    value = int(m.group(0)) if m else config.SCROLL_COUNT_DEFAULT
    return clamp_scroll_count(value)


def create_app(
    searcher: PinterestSearcher | None = None,
    api_key: str = config.API_KEY,
    rate_limit: int = config.RATE_LIMIT_PER_MINUTE,
    trust_proxy: bool = config.TRUST_PROXY_HEADERS,
) -> FastAPI:
    """アプリケーションを組み立てる。searcher 未指定なら実ブラウザを使う."""
    browser_manager: BrowserManager | None = None
    if searcher is None:
        browser_manager = BrowserManager()
        searcher = PinterestSearcher(browser_manager, ResultCache())

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        if browser_manager is not None:
            await browser_manager.shutdown()

    app = FastAPI(title="pinsearch", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.searcher = searcher
    limiter = RateLimiter(rate_limit)

    @app.middleware("http")
    async def guard_api(request: Request, call_next):
        if request.url.path.startswith("/api"):
            if api_key and request.headers.get("x-api-key") != api_key:
                return JSONResponse({"error": "Unauthorized"}, status_code=401)
            if limiter.is_limited(client_ip(request, trust_proxy)):
                return JSONResponse({"error": "Too many requests"}, status_code=429)
        return await call_next(request)

    @app.get("/api/pinterest")
    async def pinterest_search(
        q: str | None = None,
        scrolls: str | None = None,
        login: str | None = None,
    ):
        query = (q or "").strip()
        if not query:
            return JSONResponse({"error": "Missing q"}, status_code=400)

        params = SearchParams(query=query, scroll_count=parse_scrolls(scrolls), use_login=login == "1")
        try:
            result = await app.state.searcher.fetch_results(params)
        except Exception as e:
            logger.exception("検索失敗: query=%s", query)
            return JSONResponse({"ok": False, "error": str(e) or "Internal error"}, status_code=500)

        return {"ok": True, "data": result.to_dict()}

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app
