"""
ItemSource: 審査対象の商品をページ単位で供給する。
楽天ショップ（RemoteCatalogSource）とバルク CSV（BulkFileSource）の2種類。
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import requests

from ippatrol.catalog import search
from ippatrol.catalog.api_client import PAGE_SIZE, extract_shop_code
from ippatrol.errors import ParseError
from ippatrol.job.models import Item
from ippatrol.util.csv_reader import read_rows, resolve_name_column

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    items: list[Item]
    has_more: bool


class ItemSource(ABC):
    """next_page(page) で 1 始まりのページを返す。"""

    @property
    @abstractmethod
    def target(self) -> str:
        """セッションに記録する対象（ショップ URL またはファイル名一覧）。"""
        raise NotImplementedError

    @abstractmethod
    def next_page(self, page: int) -> Page:
        raise NotImplementedError


class RemoteCatalogSource(ItemSource):
    """楽天ショップの商品検索をページ送りで読む。通信失敗は TransportError のまま送出する。"""

    def __init__(
        self,
        shop_url: str,
        app_id: str,
        max_items: int = 3000,
        page_size: int = PAGE_SIZE,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.shop_url = shop_url
        self.shop_code = extract_shop_code(shop_url)
        self.app_id = app_id
        self.max_items = max_items
        self.page_size = page_size
        self._session = session

    @property
    def target(self) -> str:
        return self.shop_url

    def next_page(self, page: int) -> Page:
        resp = search.search_shop_items(
            self.shop_code, self.app_id, page, hits=self.page_size, session=self._session
        )
        items = [
            Item(
                name=c.name,
                source_reference=self.shop_url,
                image_url=c.image_url,
                detail_url=c.item_url,
                price=c.price,
                shop_name=c.shop_name,
            )
            for c in resp.items
        ]
        has_more = bool(items)
        if page * self.page_size >= self.max_items:
            has_more = False
        if resp.page_count and page >= resp.page_count:
            has_more = False
        logger.info(
            "ページ取得: shop=%s, page=%d, 件数=%d, 総数=%d, 続きあり=%s",
            self.shop_code, page, len(items), resp.count, has_more,
        )
        return Page(items=items, has_more=has_more)


class BulkFileSource(ItemSource):
    """
    CSV 群を1つの大きなページとして返す。ページ送りや再開はない。
    読めないファイルは警告を出してスキップし、他のファイルは続行する。
    """

    def __init__(
        self,
        paths: Sequence[Union[str, Path]],
        encoding: str = "cp932",
        name_column: Optional[Union[str, int]] = None,
    ) -> None:
        self.paths = [Path(p) for p in paths]
        self.encoding = encoding
        self.name_column = name_column
        self.skipped_files: list[str] = []
        self._items: Optional[list[Item]] = None

    @property
    def target(self) -> str:
        return ",".join(p.name for p in self.paths)

    def load(self) -> list[Item]:
        """全ファイルを読み込み商品リストを返す。結果はキャッシュする。"""
        if self._items is not None:
            return self._items
        items: list[Item] = []
        for path in self.paths:
            try:
                items.extend(self._load_file(path))
            except ParseError as e:
                logger.warning("%s 読込失敗のためスキップします: %s", path.name, e)
                self.skipped_files.append(path.name)
        self._items = items
        return items

    def _load_file(self, path: Path) -> list[Item]:
        rows = read_rows(path, self.encoding)
        if len(rows) < 2:
            return []
        header, body = rows[0], rows[1:]
        col = resolve_name_column(header, self.name_column, path.name)
        return [
            Item(
                name=(row[col] if col < len(row) else "").strip(),
                source_reference=path.name,
            )
            for row in body
        ]

    def next_page(self, page: int) -> Page:
        if page != 1:
            return Page(items=[], has_more=False)
        return Page(items=self.load(), has_more=False)
