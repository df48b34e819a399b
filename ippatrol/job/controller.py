"""
スキャンコントローラ。
ItemSource・BatchScheduler・SessionState をページ単位で回し、
キャンセル・空ページ・取得失敗を Completed / Paused / Aborted のいずれかに収束させる。
"""
from __future__ import annotations

import logging
import math
import sqlite3
import time
from typing import Callable, Optional

from ippatrol.errors import Cancelled, SessionConflictError
from ippatrol.job.cancel import CancellationToken
from ippatrol.job.models import (
    RESUMABLE_STATUSES,
    Item,
    ProgressEvent,
    ScanResult,
    Session,
    SessionKind,
    SessionStatus,
    Verdict,
)
from ippatrol.job.params import ScanParams
from ippatrol.job.scheduler import BatchScheduler
from ippatrol.job.session import SessionState
from ippatrol.job.source import BulkFileSource, ItemSource
from ippatrol.util.log import log_scan_summary

logger = logging.getLogger(__name__)


class ScanController:
    """1回のパトロール実行を制御する。start() まではアイドル状態。"""

    def __init__(
        self,
        conn: sqlite3.Connection,
        params: ScanParams,
        classify: Callable[[Item], Verdict],
        token: Optional[CancellationToken] = None,
        progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._conn = conn
        self.params = params
        self.token = token or CancellationToken()
        self._progress_callback = progress_callback
        self._sleep = sleep
        self.scheduler = BatchScheduler.from_params(classify, params, sleep=sleep)
        self.state: Optional[SessionState] = None

    @property
    def is_idle(self) -> bool:
        return self.state is None

    def _emit(self, status: str, processed: int, target: int) -> None:
        if self._progress_callback:
            self._progress_callback(ProgressEvent(status=status, processed_count=processed, target_count=target))

    def start(
        self,
        source: ItemSource,
        session_id: Optional[str] = None,
        target_count: Optional[int] = None,
    ) -> Session:
        """
        スキャンを実行し、終了状態のセッションを返す。
        session_id 指定時は中断済みセッションを再開する（楽天ショップのみ）。
        再開時は目標件数を full_scan_target に上書きし、最後まで走らせる。
        """
        if target_count is not None and target_count < 1:
            raise ValueError(f"target_count must be >= 1, got {target_count}")
        if isinstance(source, BulkFileSource):
            if session_id:
                raise ValueError("CSV のスキャンは再開できません。最初から実行してください。")
            return self._run_bulk(source)

        if session_id:
            state = SessionState.load(self._conn, session_id)
            s = state.session
            if s.kind != SessionKind.REMOTE_CATALOG:
                raise ValueError(f"session {session_id} is not a shop scan")
            if s.status not in RESUMABLE_STATUSES:
                raise ValueError(
                    f"session {session_id} is {s.status.value}; only paused/aborted sessions can be resumed"
                )
            if s.target != source.target:
                logger.warning("再開対象のURLが異なります: session=%s, source=%s", s.target, source.target)
            target_count = self.params.full_scan_target
            state.persist(SessionStatus.PROCESSING, s.cursor)
            logger.info("%dページ目から再開します (session_id=%s, 既存結果=%d件)", s.cursor + 1, s.session_id, len(s.results))
        else:
            state = SessionState.create(self._conn, SessionKind.REMOTE_CATALOG, source.target)
            target_count = target_count or self.params.target_count
        self.state = state
        return self._run_remote(source, state, target_count)

    def _run_remote(self, source: ItemSource, state: SessionState, target_count: int) -> Session:
        s = state.session
        page_size = self.params.page_size
        needed_pages = math.ceil(target_count / page_size)
        page = s.cursor + 1

        def on_batch(batch: list[ScanResult]) -> None:
            state.apply_results(batch)
            self._emit(f"AI分析中... ({page}ページ目)", len(s.results), target_count)

        try:
            while page <= needed_pages:
                self.token.raise_if_cancelled(f"{s.cursor}ページ目まで完了")
                logger.info("ページ %d/%d の商品データを取得中...", page, needed_pages)
                self._emit(f"データ取得中... ({page}ページ目)", len(s.results), target_count)
                fetched = source.next_page(page)
                if not fetched.items:
                    logger.info("商品が無くなったため終了します (page=%d)", page)
                    break

                items = fetched.items
                # 前回ページ途中で止まった分は結果が残っているので飛ばす
                carried = len(s.results) - s.cursor * page_size
                if carried > len(items):
                    logger.warning(
                        "ページ %d の商品数が前回より減っています: 処理済み=%d件, 取得=%d件",
                        page, carried, len(items),
                    )
                    carried = len(items)
                if carried > 0:
                    logger.info("ページ %d の先頭 %d 件は処理済みのためスキップします", page, carried)
                    items = items[carried:]

                outcome = self.scheduler.run_page(items, self.token, on_batch=on_batch)
                if not outcome.completed:
                    raise Cancelled(f"ページ {page} の途中 (結果={len(s.results)}件)")

                state.persist(SessionStatus.PROCESSING, page)
                if len(s.results) >= target_count:
                    break
                if not fetched.has_more:
                    break
                if self.params.page_delay_sec > 0:
                    self._sleep(self.params.page_delay_sec)
                page += 1

            state.persist(SessionStatus.COMPLETED, s.cursor)
            logger.info("全チェック完了: %d件", len(s.results))
        except Cancelled as e:
            # ページ途中の結果は保持し、カーソルは最後に完了したページのまま
            state.persist(SessionStatus.PAUSED, s.cursor)
            logger.info("中断しました: %s", e)
        except SessionConflictError:
            logger.error("セッション %s が他の処理で更新されたため停止します", s.session_id)
            raise
        except Exception as e:
            logger.exception("スキャン中断: %s", e)
            state.persist(SessionStatus.ABORTED, s.cursor, notes=str(e))
        return self._finish(state, target_count)

    def _run_bulk(self, source: BulkFileSource) -> Session:
        """CSV 群を1つのページとして分類する。バッチごとに保存し、再開はしない。"""
        items = source.load()
        state = SessionState.create(self._conn, SessionKind.BULK_FILE, source.target)
        self.state = state
        s = state.session
        total = len(items)
        notes = f"skipped files: {','.join(source.skipped_files)}" if source.skipped_files else None

        def on_batch(batch: list[ScanResult]) -> None:
            state.apply_results(batch)
            state.persist(SessionStatus.PROCESSING, len(s.results), notes=notes)
            self._emit("AI分析中...", len(s.results), total)

        try:
            self.token.raise_if_cancelled("開始前")
            logger.info("CSVチェック開始: 対象=%d件 (%s)", total, source.target)
            outcome = self.scheduler.run_page(items, self.token, on_batch=on_batch)
            if not outcome.completed:
                raise Cancelled(f"{len(s.results)}/{total}件で停止")
            state.persist(SessionStatus.COMPLETED, len(s.results), notes=notes)
        except Cancelled as e:
            state.persist(SessionStatus.PAUSED, len(s.results), notes=notes)
            logger.info("CSVチェックを中断しました: %s", e)
        except SessionConflictError:
            logger.error("セッション %s が他の処理で更新されたため停止します", s.session_id)
            raise
        except Exception as e:
            logger.exception("CSVチェック中断: %s", e)
            state.persist(SessionStatus.ABORTED, len(s.results), notes=str(e))
        return self._finish(state, total)

    def _finish(self, state: SessionState, target_count: int) -> Session:
        s = state.session
        self._emit(s.status.value, len(s.results), target_count)
        log_scan_summary(
            logger,
            s.session_id,
            s.status.value,
            s.summary.total,
            s.summary.high,
            s.summary.medium,
            s.summary.critical,
            s.notes or "",
        )
        return s
