"""スキャン対象の商品・判定・セッションのデータモデル。"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RiskLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    ERROR = "Error"


class SessionKind(str, Enum):
    REMOTE_CATALOG = "remote_catalog"
    BULK_FILE = "bulk_file"


class SessionStatus(str, Enum):
    PROCESSING = "processing"
    PAUSED = "paused"
    ABORTED = "aborted"
    COMPLETED = "completed"


# オペレーターが再開できる状態
RESUMABLE_STATUSES = (SessionStatus.PAUSED, SessionStatus.ABORTED)


@dataclass(frozen=True)
class Item:
    """審査対象の商品1件。"""

    name: str
    source_reference: str  # 元ファイル名またはショップ URL
    image_url: Optional[str] = None
    detail_url: Optional[str] = None
    price: Optional[int] = None
    shop_name: Optional[str] = None


@dataclass(frozen=True)
class Verdict:
    """分類器の判定。is_critical は High のときだけ立つ。"""

    risk_level: RiskLevel
    is_critical: bool
    reason: str

    def __post_init__(self) -> None:
        if self.is_critical and self.risk_level != RiskLevel.HIGH:
            raise ValueError(f"is_critical requires risk_level=High, got {self.risk_level.value}")

    @classmethod
    def error(cls, reason: str) -> Verdict:
        return cls(risk_level=RiskLevel.ERROR, is_critical=False, reason=reason)


@dataclass(frozen=True)
class ScanResult:
    item: Item
    verdict: Verdict


@dataclass(frozen=True)
class Summary:
    total: int = 0
    high: int = 0
    medium: int = 0
    critical: int = 0


@dataclass
class Session:
    """パトロール1回分の記録。実行中は Controller が専有する。"""

    session_id: str
    kind: SessionKind
    target: str
    status: SessionStatus
    cursor: int = 0  # remote: 完了済み最終ページ / bulk: 処理済み件数
    results: list[ScanResult] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    created_at: str = ""
    updated_at: str = ""
    notes: Optional[str] = None
    version: int = 0
    persisted_count: int = 0  # ストアに書き込み済みの結果件数


@dataclass(frozen=True)
class ProgressEvent:
    """ライブ表示用の進捗通知。"""

    status: str
    processed_count: int
    target_count: int
