"""HTTP の共通設定と商品画像の取得。"""
import os
from typing import Optional

import requests

from ippatrol.errors import TransportError

# 分類器にインライン添付できる画像サイズの上限
MAX_IMAGE_BYTES = 4 * 1024 * 1024


def get_timeout_sec() -> int:
    return int(os.getenv("HTTP_TIMEOUT_SEC", "30"))


def fetch_image(
    url: str,
    timeout_sec: Optional[int] = None,
    session: Optional[requests.Session] = None,
    max_bytes: int = MAX_IMAGE_BYTES,
) -> bytes:
    """
    商品画像を1回だけ取得する。再試行はしない（画像なしでも判定は続けられるため）。
    通信失敗・HTTP エラー・画像以外の応答・サイズ超過は TransportError。
    """
    use_session = session or requests
    try:
        r = use_session.get(url, timeout=timeout_sec or get_timeout_sec())
    except requests.RequestException as e:
        raise TransportError(f"画像取得エラー: {e}") from e
    if not r.ok:
        raise TransportError(f"画像取得エラー ({r.status_code}): {url[:100]}", status_code=r.status_code)
    content_type = (r.headers.get("Content-Type") or "").lower()
    if content_type and not content_type.startswith("image/"):
        raise TransportError(f"画像ではない応答です: {content_type}")
    if len(r.content) > max_bytes:
        raise TransportError(f"画像サイズが上限を超えています: {len(r.content)} bytes")
    return r.content
