"""協調的キャンセル。Controller / Scheduler はページ取得前とバッチ開始前にだけ確認する。"""
from __future__ import annotations

import threading

from ippatrol.errors import Cancelled


class CancellationToken:
    """スレッド間で共有できる中断フラグ。SIGINT ハンドラや UI スレッドから cancel() する。"""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def reset(self) -> None:
        """再開前にフラグを戻す。"""
        self._event.clear()

    def raise_if_cancelled(self, where: str = "") -> None:
        if self._event.is_set():
            raise Cancelled(where or "cancelled by operator")
