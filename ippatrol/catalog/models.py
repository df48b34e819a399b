"""楽天市場商品検索 API のレスポンス用モデル（簡易 dataclass）。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


def _first_image_url(d: dict[str, Any]) -> Optional[str]:
    """mediumImageUrls の先頭。サイズ指定のクエリ文字列は落とす。"""
    images = d.get("mediumImageUrls") or []
    if not images:
        return None
    first = images[0]
    url = first.get("imageUrl") if isinstance(first, dict) else first
    if not url:
        return None
    return str(url).split("?")[0]


@dataclass
class CatalogItem:
    name: str
    price: Optional[int]
    item_url: Optional[str]
    image_url: Optional[str]
    shop_name: Optional[str]
    shop_url: Optional[str]

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> CatalogItem:
        # Items の各要素は {"Item": {...}} 形式（formatVersion=1）
        body = d.get("Item", d)
        price = body.get("itemPrice")
        return cls(
            name=(body.get("itemName") or "").strip(),
            price=int(price) if price is not None else None,
            item_url=body.get("itemUrl"),
            image_url=_first_image_url(body),
            shop_name=body.get("shopName"),
            shop_url=body.get("shopUrl"),
        )


@dataclass
class SearchResponse:
    items: list[CatalogItem]
    count: int  # ショップ全体の商品数
    page: int
    page_count: int

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> SearchResponse:
        items = [CatalogItem.from_api(x) for x in (d.get("Items") or [])]
        return cls(
            items=items,
            count=int(d.get("count", 0) or 0),
            page=int(d.get("page", 0) or 0),
            page_count=int(d.get("pageCount", 0) or 0),
        )

    @classmethod
    def empty(cls, page: int) -> SearchResponse:
        return cls(items=[], count=0, page=page, page_count=0)
