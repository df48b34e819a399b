"""スキャン実行パラメータ。"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

HIGH_SPEED_BATCH_SIZE = 15
NORMAL_BATCH_SIZE = 3
NORMAL_BATCH_DELAY_SEC = 0.5
DEFAULT_TARGET_COUNT = 30


@dataclass(frozen=True)
class ScanParams:
    """1回のスキャン実行のパラメータ。Controller に明示的に渡す。"""

    high_speed: bool
    page_size: int
    page_delay_sec: float
    target_count: int
    full_scan_target: int
    max_items: int
    classifier_model: str
    classifier_timeout_sec: float
    classifier_retry_max: int
    encoding: str
    name_column: Optional[Union[str, int]]
    report_filter: str

    @property
    def batch_size(self) -> int:
        """高速モードは 15 件、通常は 3 件ずつ並列に分類する。"""
        return HIGH_SPEED_BATCH_SIZE if self.high_speed else NORMAL_BATCH_SIZE

    @property
    def batch_delay_sec(self) -> float:
        return 0.0 if self.high_speed else NORMAL_BATCH_DELAY_SEC

    def with_overrides(self, **overrides: Any) -> ScanParams:
        """None 以外の値だけ上書きしたコピーを返す（CLI 引数用）。"""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ScanParams:
        scan_cfg = config.get("scan", {})
        catalog_cfg = config.get("catalog", {})
        clf_cfg = config.get("classifier", {})
        bulk_cfg = config.get("bulk", {})
        report_cfg = config.get("report", {})

        target_count = int(scan_cfg.get("target_count", DEFAULT_TARGET_COUNT))
        if target_count < 1:
            logger.warning(
                "target_count=%d は不正です。%d に補正しました。",
                target_count,
                DEFAULT_TARGET_COUNT,
            )
            target_count = DEFAULT_TARGET_COUNT

        return cls(
            high_speed=bool(scan_cfg.get("high_speed", False)),
            page_size=int(catalog_cfg.get("page_size", 30)),
            page_delay_sec=float(scan_cfg.get("page_delay_sec", 1.0)),
            target_count=target_count,
            full_scan_target=int(scan_cfg.get("full_scan_target", 3000)),
            max_items=int(scan_cfg.get("max_items", 3000)),
            classifier_model=clf_cfg.get("model") or "gemini-2.5-flash",
            classifier_timeout_sec=float(clf_cfg.get("timeout_sec", 30)),
            classifier_retry_max=int(clf_cfg.get("retry_max", 8)),
            encoding=bulk_cfg.get("encoding") or "cp932",
            name_column=bulk_cfg.get("name_column"),
            report_filter=report_cfg.get("filter") or "all",
        )
