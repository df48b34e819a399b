"""簡易ロギング。スキャンサマリを必ず出せるようにする。"""
import logging
import os
import sys
from typing import Any, Optional

def setup_logging(level: Optional[int] = None) -> None:
    """stdout に出力する。level 未指定時は環境変数 LOG_LEVEL（既定 INFO）。"""
    if level is None:
        level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    # requests の接続ログは DEBUG 時以外は出さない
    logging.getLogger("urllib3").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

def log_scan_summary(
    logger: logging.Logger,
    session_id: str,
    status: str,
    total: int,
    high: int,
    medium: int,
    critical: int,
    notes: str = "",
    **extra: Any,
) -> None:
    """1回のスキャンの結果を1行で出す。集計ツールで grep できる形式。"""
    logger.info(
        "scan_summary session_id=%s status=%s total=%s high=%s medium=%s critical=%s notes=%s",
        session_id,
        status,
        total,
        high,
        medium,
        critical,
        notes or "(none)",
        extra=extra,
    )
