"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field

from pinsearch.config import (
    LOW_COMPETITION_THRESHOLD,
    SAMPLE_SIZE,
    SCROLL_COUNT_MAX,
    SCROLL_COUNT_MIN,
)


def clamp_scroll_count(value: int) -> int:
    """スクロール回数を 1〜10 に丸める."""
    return max(SCROLL_COUNT_MIN, min(SCROLL_COUNT_MAX, value))


@dataclass(frozen=True)
class SearchParams:
    """検索リクエストのパラメータ.

    scroll_count は生成時に 1〜10 へ丸められる。
    query が空（空白のみ含む）の場合は ValueError。
    """

    query: str
    scroll_count: int = 3
    use_login: bool = False

    def __post_init__(self) -> None:
        if not self.query or not self.query.strip():
            raise ValueError("query must not be empty")
        object.__setattr__(self, "scroll_count", clamp_scroll_count(int(self.scroll_count)))
        object.__setattr__(self, "use_login", bool(self.use_login))

    @property
    def cache_key(self) -> tuple[str, int, bool]:
        """キャッシュキー。区切り文字を使わないタプルなので衝突しない."""
        return (self.query, self.scroll_count, self.use_login)


@dataclass(frozen=True)
class PinRecord:
    """検索結果ページから抽出したピン1件."""

    pin_id: str  # /pin/{pin_id}/ の部分
    url: str
    image: str = ""
    title: str = ""
    saves: int = 0

    def to_dict(self) -> dict:
        return {
            "pinId": self.pin_id,
            "url": self.url,
            "image": self.image,
            "title": self.title,
            "saves": self.saves,
        }


@dataclass(frozen=True)
class SearchResult:
    """1クエリ分の集計結果。キャッシュされ、API レスポンスにもなる."""

    query: str
    loaded_pins: int
    keyword_difficulty: int  # 0〜100
    low_competition: bool
    sample: tuple[PinRecord, ...] = field(default_factory=tuple)

    @classmethod
    def build(cls, query: str, pins: list[PinRecord], difficulty: int) -> SearchResult:
        """重複排除済みのピン一覧から結果を組み立てる.

        Args:
            query: 検索キーワード
            pins: 重複排除済みのピン（出現順）
            difficulty: compute_difficulty の結果
        """
        return cls(
            query=query,
            loaded_pins=len(pins),
            keyword_difficulty=difficulty,
            low_competition=difficulty <= LOW_COMPETITION_THRESHOLD,
            sample=tuple(pins[:SAMPLE_SIZE]),
        )

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "loadedPins": self.loaded_pins,
            "keywordDifficulty": self.keyword_difficulty,
            "lowCompetition": self.low_competition,
            "sample": [p.to_dict() for p in self.sample],
        }
