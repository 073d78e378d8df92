"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def _env_int(name: str, default: int, *, min_value: int | None = None, max_value: int | None = None) -> int:
    """整数の環境変数を読む。未設定・不正値はデフォルトにする."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


# --- サーバー ---
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = _env_int("PORT", 3000)
API_KEY: str = os.getenv("API_KEY", "")  # 空なら認証なし
RATE_LIMIT_PER_MINUTE = _env_int("RATE_LIMIT_PER_MINUTE", 10, min_value=0)
RATE_LIMIT_WINDOW_SEC = 60
# リバースプロキシ配下でのみ有効にする（X-Forwarded-For を信頼する）
TRUST_PROXY_HEADERS = os.getenv("TRUST_PROXY_HEADERS", "0") == "1"

# --- Pinterest ---
PINTEREST_BASE_URL = "https://www.pinterest.com"
SEARCH_URL_TEMPLATE = PINTEREST_BASE_URL + "/search/pins/?q={query}"
LOGIN_URL = PINTEREST_BASE_URL + "/login/"
PIN_PATH_PREFIX = "/pin/"

# ログイン情報（両方揃っている場合のみログインする）
PIN_EMAIL: str = os.getenv("PIN_EMAIL", "")
PIN_PASSWORD: str = os.getenv("PIN_PASSWORD", "")

# --- スクロール設定 ---
SCROLL_COUNT_DEFAULT = 3
SCROLL_COUNT_MIN = 1
SCROLL_COUNT_MAX = 10
SCROLL_WAIT_MIN_MS = 1500
SCROLL_WAIT_MAX_MS = 2500

# --- ブラウザ ---
PLAYWRIGHT_HEADLESS = os.getenv("PLAYWRIGHT_HEADLESS", "1") != "0"
VIEWPORT = {"width": 1280, "height": 900}
NAV_TIMEOUT_MS = _env_int("NAV_TIMEOUT_MS", 30000, min_value=1000, max_value=120000)

# --- キャッシュ ---
CACHE_MAX_SIZE = _env_int("CACHE_MAX_SIZE", 200, min_value=1)
CACHE_TTL_SECONDS = _env_int("CACHE_TTL_SECONDS", 60 * 30, min_value=1)  # 30 分

# --- 難易度スコア ---
SCORE_TOP_N = 20
SATURATION_SAVES = 500
SATURATION_PINS = 1000
VOLUME_WEIGHT = 0.6
POPULARITY_WEIGHT = 0.4
LOW_COMPETITION_THRESHOLD = 35
SAMPLE_SIZE = 50

# --- ログ ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = _PROJECT_ROOT / "logs"
