"""ストア用データモデル。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionRow:
    session_id: str
    kind: str  # remote_catalog / bulk_file
    target: str
    status: str  # processing / paused / aborted / completed
    cursor: int
    summary_total: int
    summary_high: int
    summary_medium: int
    summary_critical: int
    notes: Optional[str]
    created_at: str
    updated_at: str
    version: int


@dataclass
class ResultRow:
    session_id: str
    seq: int  # 0 始まりの追加順
    name: str
    source_reference: str
    image_url: Optional[str]
    detail_url: Optional[str]
    price: Optional[int]
    shop_name: Optional[str]
    risk_level: str  # High / Medium / Low / Error
    is_critical: bool
    reason: str
