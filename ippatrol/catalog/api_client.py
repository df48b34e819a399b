"""楽天市場商品検索 API の共通設定とショップコード解決。"""
from __future__ import annotations

from urllib.parse import unquote, urlparse

BASE_URL = "https://app.rakuten.co.jp/services/api/IchibaItem/Search/20170706"

# 1ページあたりの取得件数（API の hits 上限は30）
PAGE_SIZE = 30

_RAKUTEN_HOSTS = ("rakuten.co.jp", "rakuten.ne.jp")
# ショップコードではないパス要素
_IGNORED_PATH_PARTS = ("search", "category", "event", "review", "gold")


def extract_shop_code(shop_url: str) -> str:
    """
    ショップ URL からショップコードを取り出す。
    例: https://www.rakuten.co.jp/myshop/ → "myshop"
        https://item.rakuten.co.jp/myshop/item-001/ → "myshop"
    楽天以外の URL や特定できない場合は ValueError。
    """
    parsed = urlparse(unquote((shop_url or "").strip()))
    host = (parsed.hostname or "").lower()
    if not parsed.scheme or not host:
        raise ValueError(f"無効なショップURL形式です: {shop_url}")
    if not any(h in host for h in _RAKUTEN_HOSTS):
        raise ValueError(f"楽天のショップURLではありません: {shop_url}")

    parts = [p for p in parsed.path.split("/") if p and p != "gold"]
    if "item.rakuten.co.jp" in host and parts:
        return parts[0]
    for part in parts:
        if part not in _IGNORED_PATH_PARTS and not part.startswith("item"):
            return part
    raise ValueError(f"ショップIDを特定できませんでした: {shop_url}")


def build_params(shop_code: str, app_id: str, page: int, hits: int = PAGE_SIZE) -> dict[str, str | int]:
    """検索 API のクエリパラメータ。"""
    return {
        "format": "json",
        "shopCode": shop_code,
        "applicationId": app_id,
        "hits": min(int(hits), PAGE_SIZE),
        "page": page,
        "imageFlag": 1,
    }
