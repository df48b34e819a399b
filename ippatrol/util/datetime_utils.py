"""日時ユーティリティ。"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone


def session_id() -> str:
    """セッションID（UTC タイムスタンプ + 短い乱数）。同一秒の複数実行でも衝突しない。"""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{stamp}-{uuid.uuid4().hex[:6]}"


def utc_now_iso() -> str:
    """UTC 現在時刻の ISO 形式文字列。"""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"
