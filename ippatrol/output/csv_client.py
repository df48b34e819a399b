"""CSV ファイルに判定結果レポートを出力。Excel で開けるよう BOM 付き UTF-8。"""
from __future__ import annotations

import csv
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from ippatrol.job.models import RiskLevel, ScanResult

# デフォルト出力先
DEFAULT_CSV_PATH = "data/report.csv"

COLUMNS = ["商品名", "リスク", "危険度", "理由", "参照元", "商品URL", "日時"]

REPORT_FILTERS = ("all", "critical", "medium", "low")

_RISK_LABELS = {
    RiskLevel.HIGH: "高",
    RiskLevel.MEDIUM: "中",
    RiskLevel.LOW: "低",
    RiskLevel.ERROR: "エラー",
}


def get_output_path() -> Path:
    path = os.getenv("REPORT_CSV_PATH", DEFAULT_CSV_PATH)
    return Path(path)


def filter_results(results: Iterable[ScanResult], report_filter: str = "all") -> list[ScanResult]:
    """画面のタブと同じ絞り込み。critical は重大フラグまたは High。"""
    if report_filter not in REPORT_FILTERS:
        raise ValueError(f"unknown report filter: {report_filter}")
    items = list(results)
    if report_filter == "critical":
        return [r for r in items if r.verdict.is_critical or r.verdict.risk_level == RiskLevel.HIGH]
    if report_filter == "medium":
        return [r for r in items if r.verdict.risk_level == RiskLevel.MEDIUM]
    if report_filter == "low":
        return [r for r in items if r.verdict.risk_level == RiskLevel.LOW]
    return items


def result_to_row(result: ScanResult, timestamp: str) -> list[str]:
    v = result.verdict
    return [
        result.item.name,
        _RISK_LABELS[v.risk_level],
        "★重大★" if v.is_critical else "",
        v.reason,
        result.item.source_reference,
        result.item.detail_url or "",
        timestamp,
    ]


def write_report(
    results: Iterable[ScanResult],
    timestamp: str,
    csv_path: Union[str, Path, None] = None,
    report_filter: str = "all",
) -> Optional[Path]:
    """絞り込んだ結果を CSV に書き出す（上書き）。書き出す行が無ければ None。"""
    rows = filter_results(results, report_filter)
    if not rows:
        return None
    path = Path(csv_path) if csv_path else get_output_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        for r in rows:
            writer.writerow(result_to_row(r, timestamp))
    return path
