"""Pinterest 検索結果ページの解析モジュール.

レンダリング済みページの HTML（page.content() の結果）を受け取り、
ピン情報を抽出する。ブラウザに依存しないので fixture HTML でテストできる。

抽出手順:
  1. a[href^="/pin/"] を列挙（同じ href は1回だけ）
  2. data-test-id を持つ最も近い要素（a 自身を含む。無ければ親要素）をカードとみなす
  3. カード内からタイトル・保存数を取得
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from bs4 import BeautifulSoup, Tag

from pinsearch.config import PIN_PATH_PREFIX, PINTEREST_BASE_URL
from pinsearch.models import PinRecord

logger = logging.getLogger(__name__)

_PIN_ANCHOR_SELECTOR = f'a[href^="{PIN_PATH_PREFIX}"]'
_SAVES_SELECTOR = 'span[aria-label*="save" i], div:has(svg[aria-label*="save" i])'

# 先頭の数値トークン (例: "1,234 saves" -> "1,234")
_NUMBER_PATTERN = re.compile(r"\d[\d.,]*")


def parse_search_results(html: str) -> list[PinRecord]:
    """検索結果 HTML からピン一覧を抽出する.

    Returns:
        ページ上の出現順のピン一覧。pin_id の重複は残る（dedupe_pins で除去）。
    """
    soup = BeautifulSoup(html, "html.parser")
    results: list[PinRecord] = []
    seen: set[str] = set()

    for anchor in soup.select(_PIN_ANCHOR_SELECTOR):
        href = anchor.get("href")
        if not href or href in seen:
            continue
        seen.add(href)

        card = _find_card(anchor)
        img = anchor.find("img")

        results.append(PinRecord(
            pin_id=_extract_pin_id(href),
            url=f"{PINTEREST_BASE_URL}{href}",
            image=(img.get("src") or "") if img else "",
            title=_extract_title(card, img),
            saves=_extract_saves(card),
        ))

    logger.debug("ピン抽出: anchors=%d, records=%d", len(seen), len(results))
    return results


def _find_card(anchor: Tag) -> Tag | None:
    """data-test-id を持つ最も近い要素（a 自身を含む）。無ければ親要素."""
    if anchor.has_attr("data-test-id"):
        return anchor
    return anchor.find_parent(attrs={"data-test-id": True}) or anchor.parent


def _extract_pin_id(href: str) -> str:
    """/pin/123/ -> 123."""
    pin_id = href.replace(PIN_PATH_PREFIX, "", 1)
    return pin_id[:-1] if pin_id.endswith("/") else pin_id


def _extract_title(card: Tag | None, img: Tag | None) -> str:
    """title 属性付きの div を優先し、無ければ画像の alt を使う."""
    title = ""
    title_el = card.select_one("div[title]") if card is not None else None
    if title_el is not None:
        title = title_el.get("title") or ""
    if not title and img is not None:
        title = img.get("alt") or ""
    return title.strip()


def _extract_saves(card: Tag | None) -> int:
    """カード内の保存数表示をパースする。見つからなければ 0."""
    if card is None:
        return 0
    saves_el = card.select_one(_SAVES_SELECTOR)
    if saves_el is None:
        return 0

    saves = parse_count(saves_el.get_text(" ", strip=True))
    if saves == 0:
        # テキストが空のときは aria-label に数値が入っていることがある
        saves = parse_count(saves_el.get("aria-label") or "")
    return saves


def parse_count(text: str) -> int:
    """テキスト先頭の数値を整数にする。桁区切り (, .) は除去.

    >>> parse_count("1,234 saves")
    1234
    """
    m = _NUMBER_PATTERN.search(text)
    if not m:
        return 0
    digits = re.sub(r"[.,]", "", m.group(0))
    try:
        return int(digits)
    except ValueError:
        return 0


def dedupe_pins(pins: Iterable[PinRecord]) -> list[PinRecord]:
    """pin_id ごとに最初の1件だけを残す（順序は保持）."""
    seen: set[str] = set()
    unique: list[PinRecord] = []
    for pin in pins:
        if pin.pin_id in seen:
            continue
        seen.add(pin.pin_id)
        unique.append(pin)
    return unique
