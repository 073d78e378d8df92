"""Pinterest 検索の実行モジュール.

処理フロー:
  1. キャッシュ確認（ヒットすればブラウザは使わない）
  2. 独立コンテキストのページを取得
  3. （指定時のみ）ログイン
  4. 検索ページを開き、指定回数スクロール
  5. HTML を解析 → 重複排除 → 難易度スコア算出
  6. 結果をキャッシュして返す
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from urllib.parse import quote

from playwright.async_api import Page

from pinsearch import config
from pinsearch.browser import BrowserManager
from pinsearch.cache import ResultCache
from pinsearch.models import SearchParams, SearchResult
from pinsearch.scoring import compute_difficulty
from pinsearch.scraper import dedupe_pins, parse_search_results

logger = logging.getLogger(__name__)


def build_search_url(query: str) -> str:
    return config.SEARCH_URL_TEMPLATE.format(query=quote(query, safe=""))


class PinterestSearcher:
    """キャッシュ付きの Pinterest 検索."""

    def __init__(
        self,
        browser_manager: BrowserManager,
        cache: ResultCache,
        email: str = config.PIN_EMAIL,
        password: str = config.PIN_PASSWORD,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._browser_manager = browser_manager
        self._cache = cache
        self._email = email
        self._password = password
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def can_login(self) -> bool:
        return bool(self._email and self._password)

    async def fetch_results(self, params: SearchParams) -> SearchResult:
        """検索結果を取得する。失敗時の例外はそのまま呼び出し元へ送る."""
        key = params.cache_key
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("キャッシュヒット: query=%s, scrolls=%d", params.query, params.scroll_count)
            return cached

        logger.info(
            "検索開始: query=%s, scrolls=%d, login=%s",
            params.query, params.scroll_count, params.use_login,
        )
        async with self._browser_manager.new_page() as page:
            if params.use_login:
                if self.can_login:
                    await self._login(page)
                else:
                    logger.warning("ログイン情報が未設定のため、未ログインで検索します")

            await page.goto(build_search_url(params.query), wait_until="domcontentloaded")
            await self._scroll(page, params.scroll_count)
            html = await page.content()

        # HTML 解析は重いのでイベントループ外で実行する
        pins = dedupe_pins(await asyncio.to_thread(parse_search_results, html))
        difficulty = compute_difficulty(pins, len(pins))
        result = SearchResult.build(params.query, pins, difficulty)

        self._cache.set(key, result)
        logger.info(
            "検索完了: query=%s, pins=%d, difficulty=%d",
            params.query, result.loaded_pins, result.keyword_difficulty,
        )
        return result

    async def _login(self, page: Page) -> None:
        """ログインフォームを送信し、通信が落ち着くまで待つ."""
        await page.goto(config.LOGIN_URL, wait_until="domcontentloaded")
        await page.fill('input[name="id"]', self._email)
        await page.fill('input[name="password"]', self._password)
        click = asyncio.ensure_future(page.click('button[type="submit"]'))
        settle = asyncio.ensure_future(page.wait_for_load_state("networkidle"))
        try:
            await asyncio.gather(click, settle)
        except Exception:
            # 片方が失敗したら残りも止めて、例外を回収してから送出する
            for task in (click, settle):
                task.cancel()
            await asyncio.gather(click, settle, return_exceptions=True)
            raise
        logger.info("ログイン完了")

    async def _scroll(self, page: Page, count: int) -> None:
        """最下部までスクロール → 1.5〜2.5 秒待機 を count 回繰り返す."""
        for i in range(count):
            await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
            wait_ms = self._rng.randrange(config.SCROLL_WAIT_MIN_MS, config.SCROLL_WAIT_MAX_MS)
            logger.debug("スクロール %d/%d, 待機 %dms", i + 1, count, wait_ms)
            await self._sleep(wait_ms / 1000)
