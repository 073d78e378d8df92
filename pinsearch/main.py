"""pinsearch — メインエントリーポイント.

API サーバーを起動する:
  python -m pinsearch.main
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime

import uvicorn

from pinsearch.api import create_app
from pinsearch.config import HOST, LOG_DIR, LOG_LEVEL, PORT


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / f"pinsearch_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def run() -> None:
    """メイン処理."""
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("=== pinsearch 起動: http://%s:%d ===", HOST, PORT)
    uvicorn.run(create_app(), host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    run()
