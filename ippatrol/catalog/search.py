"""楽天市場商品検索 API: ショップ内の商品を1ページずつ取得する。"""
from __future__ import annotations

import logging
from typing import Optional

import requests

from ippatrol.catalog import models
from ippatrol.catalog.api_client import BASE_URL, PAGE_SIZE, build_params
from ippatrol.errors import TransportError
from ippatrol.util import http

logger = logging.getLogger(__name__)


def search_shop_items(
    shop_code: str,
    app_id: str,
    page: int,
    hits: int = PAGE_SIZE,
    session: Optional[requests.Session] = None,
) -> models.SearchResponse:
    """
    GET IchibaItem/Search を1回呼び出し SearchResponse を返す。
    ここでは再試行しない。失敗は TransportError（429 / 4xx / 5xx / 通信エラー）。
    """
    use_session = session or requests
    params = build_params(shop_code, app_id, page, hits)
    logger.debug("楽天API リクエスト: shopCode=%s, page=%d", shop_code, page)
    try:
        r = use_session.get(BASE_URL, params=params, timeout=http.get_timeout_sec())
    except requests.RequestException as e:
        raise TransportError(f"楽天API通信エラー: {e}") from e

    if r.status_code == 429:
        raise TransportError("楽天API制限超過。少し待ってください。", status_code=429)
    try:
        data = r.json() if r.content else {}
    except ValueError:
        data = {}

    if not r.ok:
        detail = (data.get("error_description") or data.get("error")) if isinstance(data, dict) else None
        raise TransportError(
            f"楽天APIエラー ({r.status_code}): {detail or r.text[:200]}",
            status_code=r.status_code,
        )
    if not isinstance(data, dict):
        raise TransportError("楽天APIの応答が不正です")
    # 2xx の wrong_parameter（範囲外のページ）だけ商品なしとして扱う。4xx はアプリID・ショップ不正
    if data.get("error") == "wrong_parameter":
        logger.info("楽天API wrong_parameter: shopCode=%s, page=%d を空ページとして扱います", shop_code, page)
        return models.SearchResponse.empty(page)
    if data.get("error"):
        raise TransportError(f"楽天APIエラー: {data.get('error_description') or data['error']}")
    return models.SearchResponse.from_api(data)
