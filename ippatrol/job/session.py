"""
セッション状態。パトロール1回分の結果を蓄積し、ストアへ書き込む。
集計は毎回 results 全体から数え直す（差分カウンタは持たない）。
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

from ippatrol.job.models import (
    Item,
    RiskLevel,
    ScanResult,
    Session,
    SessionKind,
    SessionStatus,
    Summary,
    Verdict,
)
from ippatrol.store import repo
from ippatrol.store.models import ResultRow, SessionRow
from ippatrol.util.datetime_utils import session_id as make_session_id

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[SessionStatus, tuple[SessionStatus, ...]] = {
    SessionStatus.PROCESSING: tuple(SessionStatus),
    SessionStatus.PAUSED: (SessionStatus.PAUSED, SessionStatus.PROCESSING),
    SessionStatus.ABORTED: (SessionStatus.ABORTED, SessionStatus.PROCESSING),
    SessionStatus.COMPLETED: (SessionStatus.COMPLETED,),
}


def compute_summary(results: Iterable[ScanResult]) -> Summary:
    total = high = medium = critical = 0
    for r in results:
        total += 1
        if r.verdict.risk_level == RiskLevel.HIGH:
            high += 1
        elif r.verdict.risk_level == RiskLevel.MEDIUM:
            medium += 1
        if r.verdict.is_critical:
            critical += 1
    return Summary(total=total, high=high, medium=medium, critical=critical)


def _result_to_row(session_id: str, seq: int, r: ScanResult) -> ResultRow:
    return ResultRow(
        session_id=session_id,
        seq=seq,
        name=r.item.name,
        source_reference=r.item.source_reference,
        image_url=r.item.image_url,
        detail_url=r.item.detail_url,
        price=r.item.price,
        shop_name=r.item.shop_name,
        risk_level=r.verdict.risk_level.value,
        is_critical=r.verdict.is_critical,
        reason=r.verdict.reason,
    )


def _row_to_result(row: ResultRow) -> ScanResult:
    level = RiskLevel(row.risk_level)
    return ScanResult(
        item=Item(
            name=row.name,
            source_reference=row.source_reference,
            image_url=row.image_url,
            detail_url=row.detail_url,
            price=row.price,
            shop_name=row.shop_name,
        ),
        verdict=Verdict(
            risk_level=level,
            is_critical=row.is_critical and level == RiskLevel.HIGH,
            reason=row.reason,
        ),
    )


def _session_from_rows(row: SessionRow, results: Sequence[ResultRow]) -> Session:
    scan_results = [_row_to_result(r) for r in results]
    return Session(
        session_id=row.session_id,
        kind=SessionKind(row.kind),
        target=row.target,
        status=SessionStatus(row.status),
        cursor=row.cursor,
        results=scan_results,
        summary=compute_summary(scan_results),
        created_at=row.created_at,
        updated_at=row.updated_at,
        notes=row.notes,
        version=row.version,
        persisted_count=len(scan_results),
    )


class SessionState:
    """実行中のセッション。Controller だけが触る（内部で並行処理はしない）。"""

    def __init__(self, conn: sqlite3.Connection, session: Session) -> None:
        self._conn = conn
        self.session = session

    @classmethod
    def create(cls, conn: sqlite3.Connection, kind: SessionKind, target: str) -> SessionState:
        row = repo.create_session(conn, make_session_id(), kind.value, target, SessionStatus.PROCESSING.value)
        logger.info("セッション作成: session_id=%s, kind=%s, target=%s", row.session_id, kind.value, target)
        return cls(conn, _session_from_rows(row, []))

    @classmethod
    def load(cls, conn: sqlite3.Connection, session_id: str) -> SessionState:
        row = repo.get_session(conn, session_id)
        if row is None:
            raise LookupError(f"session not found: {session_id}")
        return cls(conn, _session_from_rows(row, repo.get_session_results(conn, session_id)))

    @property
    def summary(self) -> Summary:
        return self.session.summary

    def apply_results(self, new_results: Sequence[ScanResult]) -> Summary:
        """結果を追加し、全結果から集計を再計算して返す。"""
        self.session.results.extend(new_results)
        self.session.summary = compute_summary(self.session.results)
        return self.session.summary

    def persist(self, status: SessionStatus, cursor: int, notes: Optional[str] = None) -> None:
        """状態・カーソル・集計と未保存の結果をストアに書き込む。"""
        s = self.session
        if cursor < s.cursor:
            raise ValueError(f"cursor must not decrease ({s.cursor} -> {cursor})")
        if status not in _ALLOWED_TRANSITIONS[s.status]:
            raise ValueError(f"invalid status transition {s.status.value} -> {status.value}")
        s.summary = compute_summary(s.results)
        new_rows = [
            _result_to_row(s.session_id, seq, r)
            for seq, r in enumerate(s.results[s.persisted_count:], start=s.persisted_count)
        ]
        summary = (s.summary.total, s.summary.high, s.summary.medium, s.summary.critical)
        s.version, s.updated_at = repo.update_session(
            self._conn,
            s.session_id,
            s.version,
            status=status.value,
            cursor=cursor,
            summary=summary,
            notes=notes,
            new_results=new_rows,
        )
        s.status = status
        s.cursor = cursor
        s.persisted_count = len(s.results)
        if notes is not None:
            s.notes = notes
