"""
バッチスケジューラ。
1ページ分の商品を固定サイズのバッチに分け、バッチ内は並列、バッチ間は待機を挟んで順に分類する。
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ippatrol.job.cancel import CancellationToken
from ippatrol.job.models import Item, RiskLevel, ScanResult, Verdict
from ippatrol.job.params import ScanParams

logger = logging.getLogger(__name__)

# 商品名が空の行は分類器を呼ばずにこの判定にする
EMPTY_NAME_VERDICT = Verdict(risk_level=RiskLevel.LOW, is_critical=False, reason="-")


@dataclass
class BatchOutcome:
    results: list[ScanResult]  # 入力順
    completed: bool  # False: キャンセルで未着手のバッチが残った


class BatchScheduler:
    def __init__(
        self,
        classify: Callable[[Item], Verdict],
        batch_size: int,
        batch_delay_sec: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._classify = classify
        self.batch_size = batch_size
        self.batch_delay_sec = batch_delay_sec
        self._sleep = sleep

    @classmethod
    def from_params(
        cls,
        classify: Callable[[Item], Verdict],
        params: ScanParams,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BatchScheduler:
        return cls(classify, params.batch_size, params.batch_delay_sec, sleep=sleep)

    def _classify_one(self, item: Item) -> ScanResult:
        if not item.name.strip():
            return ScanResult(item=item, verdict=EMPTY_NAME_VERDICT)
        return ScanResult(item=item, verdict=self._classify(item))

    def run_page(
        self,
        items: Sequence[Item],
        token: Optional[CancellationToken] = None,
        on_batch: Optional[Callable[[list[ScanResult]], None]] = None,
    ) -> BatchOutcome:
        """
        items をバッチごとに分類し、入力順の結果を返す。
        開始済みのバッチはキャンセル要求があっても最後まで待ち、その結果は保持する。
        次のバッチを始める前にだけキャンセルを確認する。
        """
        results: list[ScanResult] = []
        if not items:
            return BatchOutcome(results=results, completed=True)

        with ThreadPoolExecutor(max_workers=min(self.batch_size, len(items))) as executor:
            for start in range(0, len(items), self.batch_size):
                if start > 0 and self.batch_delay_sec > 0:
                    self._sleep(self.batch_delay_sec)
                if token is not None and token.cancelled:
                    logger.info("キャンセル要求のため残りのバッチを中止します: 処理済み=%d / %d", start, len(items))
                    return BatchOutcome(results=results, completed=False)
                batch = items[start:start + self.batch_size]
                logger.debug(
                    "AI分析中: %s... 他%d件", batch[0].name[:15], len(batch) - 1
                )
                # map は入力順で返す。全件そろうまで待つ
                batch_results = list(executor.map(self._classify_one, batch))
                results.extend(batch_results)
                if on_batch:
                    on_batch(batch_results)
        return BatchOutcome(results=results, completed=True)
