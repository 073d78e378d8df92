"""キーワード難易度スコア (0〜100) の算出.

volume: 読み込めたピン数（多いほど競合が多い）
popularity: 上位ピンの平均保存数（多いほど上位が強い）

score = round(100 * (0.6 * volume + 0.4 * popularity))
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from pinsearch.config import (
    POPULARITY_WEIGHT,
    SATURATION_PINS,
    SATURATION_SAVES,
    SCORE_TOP_N,
    VOLUME_WEIGHT,
)
from pinsearch.models import PinRecord


def compute_difficulty(pins: Sequence[PinRecord], loaded_count: int) -> int:
    """難易度スコアを計算する.

    Args:
        pins: 重複排除済みのピン（ページ上の順位順）。先頭 20 件のみ使う
        loaded_count: 読み込めたピン数

    Returns:
        0〜100 の整数。pins が空でも 0 除算はしない。
    """
    top = pins[:SCORE_TOP_N]
    avg_saves = sum(max(0, p.saves) for p in top) / len(top) if top else 0.0

    popularity = min(1.0, avg_saves / SATURATION_SAVES)
    volume = min(1.0, max(0, loaded_count) / SATURATION_PINS)

    raw = 100 * (VOLUME_WEIGHT * volume + POPULARITY_WEIGHT * popularity)
    # Math.round 互換（0.5 は切り上げ）
    score = math.floor(raw + 0.5)
    return max(0, min(100, score))
