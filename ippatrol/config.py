"""設定の読み込み・保存。CLI / ジョブで共有。"""
from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from ippatrol.errors import ConfigError

load_dotenv()

ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def default_config() -> dict[str, Any]:
    """デフォルト設定を返す。"""
    return {
        "scan": {
            "high_speed": False,
            "target_count": 30,
            "full_scan_target": 3000,  # 再開時は最後まで走らせる
            "max_items": 3000,
            "page_delay_sec": 1.0,
        },
        "catalog": {"page_size": 30},
        "classifier": {
            "model": "gemini-2.5-flash",
            "timeout_sec": 30,
            "retry_max": 8,
        },
        "bulk": {
            "encoding": "cp932",  # Excel 出力の Shift_JIS 系
            "name_column": None,  # 列名または列番号。None は自動判定
        },
        "report": {"filter": "all"},
    }


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """ネストした dict を再帰的に上書きマージ。"""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """config.yaml を読み込みデフォルトにマージする。存在しない・読み込みエラー時はデフォルトを返す。"""
    path = config_path or os.getenv("CONFIG_PATH") or str(ROOT / "config.yaml")
    if not os.path.isfile(path):
        return default_config()
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("設定ファイルの読み込みに失敗しました。デフォルトを使用します: %s (%s)", path, e)
        return default_config()
    if not isinstance(loaded, dict):
        logger.warning("設定ファイルの形式が不正です。デフォルトを使用します: %s", path)
        return default_config()
    return _merge(default_config(), loaded)


def save_config(config: dict[str, Any], config_path: Optional[str] = None) -> None:
    """config.yaml に保存する。"""
    path = config_path or str(ROOT / "config.yaml")
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, allow_unicode=True, default_flow_style=False)


def get_gemini_api_key() -> str:
    """分類器（Gemini）の API キー。未設定なら ConfigError。"""
    key = (os.getenv("GEMINI_API_KEY") or "").strip()
    if not key:
        raise ConfigError("GEMINI_API_KEY must be set")
    return key


def get_rakuten_app_id() -> str:
    """楽天ウェブサービスのアプリID。未設定なら ConfigError。"""
    app_id = (os.getenv("RAKUTEN_APP_ID") or "").strip()
    if not app_id:
        raise ConfigError("RAKUTEN_APP_ID must be set")
    return app_id
