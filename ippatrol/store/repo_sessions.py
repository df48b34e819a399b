"""sessions / session_results テーブルの CRUD。"""
from __future__ import annotations

import sqlite3
from typing import Optional

from ippatrol.errors import SessionConflictError
from ippatrol.store.models import ResultRow, SessionRow
from ippatrol.util.datetime_utils import utc_now_iso


def _row_to_session(row: sqlite3.Row) -> SessionRow:
    return SessionRow(
        session_id=row["session_id"],
        kind=row["kind"],
        target=row["target"],
        status=row["status"],
        cursor=row["cursor"] or 0,
        summary_total=row["summary_total"] or 0,
        summary_high=row["summary_high"] or 0,
        summary_medium=row["summary_medium"] or 0,
        summary_critical=row["summary_critical"] or 0,
        notes=row["notes"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=row["version"] or 0,
    )


def _row_to_result(row: sqlite3.Row) -> ResultRow:
    return ResultRow(
        session_id=row["session_id"],
        seq=row["seq"],
        name=row["name"],
        source_reference=row["source_reference"],
        image_url=row["image_url"],
        detail_url=row["detail_url"],
        price=row["price"],
        shop_name=row["shop_name"],
        risk_level=row["risk_level"],
        is_critical=bool(row["is_critical"]),
        reason=row["reason"],
    )


def create_session(
    conn: sqlite3.Connection,
    session_id: str,
    kind: str,
    target: str,
    status: str = "processing",
) -> SessionRow:
    """新規セッションを登録。"""
    now = utc_now_iso()
    conn.execute(
        "INSERT INTO sessions (session_id, kind, target, status, cursor, created_at, updated_at, version) "
        "VALUES (?, ?, ?, ?, 0, ?, ?, 0)",
        (session_id, kind, target, status, now, now),
    )
    conn.commit()
    return get_session(conn, session_id)  # type: ignore[return-value]


def update_session(
    conn: sqlite3.Connection,
    session_id: str,
    expected_version: int,
    *,
    status: str,
    cursor: int,
    summary: tuple[int, int, int, int],
    notes: Optional[str] = None,
    new_results: Optional[list[ResultRow]] = None,
) -> tuple[int, str]:
    """
    セッションを更新し新しい結果行を追記する（1トランザクション）。
    version が expected_version と一致しない場合は SessionConflictError。
    Returns: (新しい version, updated_at)
    """
    now = utc_now_iso()
    total, high, medium, critical = summary
    try:
        cur = conn.execute(
            """
            UPDATE sessions SET
                status = ?, cursor = ?, summary_total = ?, summary_high = ?,
                summary_medium = ?, summary_critical = ?, notes = COALESCE(?, notes),
                updated_at = ?, version = version + 1
            WHERE session_id = ? AND version = ?
            """,
            (status, cursor, total, high, medium, critical, notes, now, session_id, expected_version),
        )
        if cur.rowcount == 0:
            raise SessionConflictError(session_id, expected_version)
        if new_results:
            conn.executemany(
                """
                INSERT INTO session_results (
                    session_id, seq, name, source_reference, image_url, detail_url,
                    price, shop_name, risk_level, is_critical, reason
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.session_id, r.seq, r.name, r.source_reference, r.image_url, r.detail_url,
                        r.price, r.shop_name, r.risk_level, int(r.is_critical), r.reason,
                    )
                    for r in new_results
                ],
            )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return expected_version + 1, now


def get_session(conn: sqlite3.Connection, session_id: str) -> Optional[SessionRow]:
    """session_id でセッションを取得。"""
    row = conn.execute("SELECT * FROM sessions WHERE session_id = ?", (session_id,)).fetchone()
    return _row_to_session(row) if row else None


def get_session_results(conn: sqlite3.Connection, session_id: str) -> list[ResultRow]:
    """セッションの結果を追加順に取得。"""
    rows = conn.execute(
        "SELECT * FROM session_results WHERE session_id = ? ORDER BY seq", (session_id,)
    ).fetchall()
    return [_row_to_result(r) for r in rows]


def force_abort(conn: sqlite3.Connection, session_id: str) -> bool:
    """
    オペレーター操作でセッションを aborted にする（プロセスが落ちて processing のまま残った場合など）。
    対象は processing / paused のみ。completed や既に aborted のセッションは変更せず False を返す。
    version を進めるため、まだ動いている実行は次の書き込みで競合を検知して止まる。
    """
    cur = conn.execute(
        "UPDATE sessions SET status = 'aborted', updated_at = ?, version = version + 1 "
        "WHERE session_id = ? AND status IN ('processing', 'paused')",
        (utc_now_iso(), session_id),
    )
    conn.commit()
    return cur.rowcount > 0
