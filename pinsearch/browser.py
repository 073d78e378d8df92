"""ブラウザのライフサイクル管理.

Chromium はプロセス内で1つだけ起動し、全リクエストで使い回す。
リクエストごとに独立したコンテキスト（Cookie・ストレージ別）とページを作り、
使い終わったら必ず閉じる。
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from pinsearch.config import NAV_TIMEOUT_MS, PLAYWRIGHT_HEADLESS, VIEWPORT

logger = logging.getLogger(__name__)


async def _start_playwright() -> Playwright:
    return await async_playwright().start()


class BrowserManager:
    """共有ブラウザの遅延起動と、リクエスト単位のコンテキスト生成を行う."""

    def __init__(
        self,
        headless: bool = PLAYWRIGHT_HEADLESS,
        start_playwright: Callable[[], Awaitable[Playwright]] = _start_playwright,
    ) -> None:
        self._headless = headless
        self._start_playwright = start_playwright
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    async def get_browser(self) -> Browser:
        """共有ブラウザを返す。初回呼び出し時のみ起動する.

        同時に呼ばれても起動は1回だけ。起動に失敗した場合は例外をそのまま返し、
        次回の呼び出しで最初からやり直す。
        """
        if self._browser is not None:
            return self._browser

        async with self._lock:
            if self._browser is not None:
                return self._browser

            playwright = await self._start_playwright()
            try:
                browser = await playwright.chromium.launch(headless=self._headless)
            except Exception:
                logger.error("ブラウザ起動失敗")
                await playwright.stop()
                raise

            self._playwright = playwright
            self._browser = browser
            logger.info("Chromium 起動完了 (headless=%s)", self._headless)
            return browser

    async def new_context(self) -> BrowserContext:
        """毎回新しいコンテキストを作る（使い回さない）."""
        browser = await self.get_browser()
        context = await browser.new_context(viewport=VIEWPORT)
        context.set_default_timeout(NAV_TIMEOUT_MS)
        return context

    @asynccontextmanager
    async def new_page(self) -> AsyncIterator[Page]:
        """独立したコンテキスト上のページを貸し出す.

        ブロックを抜けるときは成功・失敗にかかわらずページ → コンテキストの順で閉じる。
        """
        context = await self.new_context()
        try:
            page = await context.new_page()
            try:
                yield page
            finally:
                await page.close()
        finally:
            await context.close()

    async def shutdown(self) -> None:
        """ブラウザと Playwright を停止する（プロセス終了時のみ）."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
            logger.info("Chromium 停止")
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
