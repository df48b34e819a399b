"""ジョブ実行のオーケストレーション。設定・ストア・分類器・ItemSource を組み立てて Controller を回す。"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from ippatrol.classify.client import ClassifierClient
from ippatrol.config import get_gemini_api_key, get_rakuten_app_id, load_config
from ippatrol.job.cancel import CancellationToken
from ippatrol.job.controller import ScanController
from ippatrol.job.models import ProgressEvent, Session
from ippatrol.job.params import ScanParams
from ippatrol.job.source import BulkFileSource, ItemSource, RemoteCatalogSource
from ippatrol.output import csv_client
from ippatrol.store import db, repo

logger = logging.getLogger(__name__)


def build_params(
    config_path: Optional[str] = None,
    **overrides: object,
) -> ScanParams:
    """config.yaml から ScanParams を作り、CLI 指定（None 以外）で上書きする。"""
    return ScanParams.from_config(load_config(config_path)).with_overrides(**overrides)


def run_scan(
    shop_url: Optional[str] = None,
    csv_paths: Optional[Sequence[Union[str, Path]]] = None,
    resume_session_id: Optional[str] = None,
    params: Optional[ScanParams] = None,
    target_count: Optional[int] = None,
    export_path: Optional[str] = None,
    dry_run: bool = False,
    db_path: Optional[str] = None,
    token: Optional[CancellationToken] = None,
    progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
) -> Optional[Session]:
    """
    1回のパトロール実行。商品取得 → AI 判定 → セッション保存 →（指定時）CSV レポート出力。
    shop_url / csv_paths / resume_session_id のいずれか1つを指定する。
    """
    chosen = [x for x in (shop_url, csv_paths, resume_session_id) if x]
    if len(chosen) != 1:
        raise ValueError("specify exactly one of shop_url, csv_paths, resume_session_id")
    params = params or build_params()

    if dry_run:
        _handle_dry_run(params, shop_url, csv_paths, resume_session_id, target_count)
        return None

    conn = db.get_connection(db_path)
    try:
        db.init_schema(conn)
        source = _build_source(conn, params, shop_url, csv_paths, resume_session_id)
        classifier = ClassifierClient(
            api_key=get_gemini_api_key(),
            model=params.classifier_model,
            timeout_sec=params.classifier_timeout_sec,
            retry_max=params.classifier_retry_max,
        )
        controller = ScanController(
            conn,
            params,
            classifier.classify,
            token=token,
            progress_callback=progress_callback,
        )
        session = controller.start(source, session_id=resume_session_id, target_count=target_count)
    finally:
        conn.close()

    if export_path:
        dest = csv_client.write_report(
            session.results, session.updated_at, export_path, params.report_filter
        )
        if dest:
            logger.info("レポートを出力しました: %s (%s)", dest, params.report_filter)
        else:
            logger.info("レポート対象の結果がありません (%s)", params.report_filter)
    return session


def _build_source(
    conn,
    params: ScanParams,
    shop_url: Optional[str],
    csv_paths: Optional[Sequence[Union[str, Path]]],
    resume_session_id: Optional[str],
) -> ItemSource:
    if csv_paths:
        return BulkFileSource(csv_paths, encoding=params.encoding, name_column=params.name_column)
    if resume_session_id:
        row = repo.get_session(conn, resume_session_id)
        if row is None:
            raise LookupError(f"session not found: {resume_session_id}")
        shop_url = row.target
    return RemoteCatalogSource(
        shop_url or "",
        get_rakuten_app_id(),
        max_items=params.max_items,
        page_size=params.page_size,
    )


def force_stop(session_id: str, db_path: Optional[str] = None) -> bool:
    """processing のまま残ったセッションを aborted にする（オペレーター操作）。"""
    conn = db.get_connection(db_path)
    try:
        db.init_schema(conn)
        stopped = repo.force_abort(conn, session_id)
    finally:
        conn.close()
    if stopped:
        logger.info("セッションを中断扱いにしました: %s", session_id)
    else:
        logger.warning("セッションが見つからないか、中断できる状態ではありません: %s", session_id)
    return stopped


def _handle_dry_run(
    params: ScanParams,
    shop_url: Optional[str],
    csv_paths: Optional[Sequence[Union[str, Path]]],
    resume_session_id: Optional[str],
    target_count: Optional[int],
) -> None:
    logger.info(
        "dry-run: shop_url=%s, csv=%s, resume=%s", shop_url, list(csv_paths or []), resume_session_id
    )
    logger.info(
        "dry-run: would classify up to %s items, batch_size=%d, batch_delay=%.1fs",
        params.full_scan_target if resume_session_id else (target_count or params.target_count),
        params.batch_size,
        params.batch_delay_sec,
    )
