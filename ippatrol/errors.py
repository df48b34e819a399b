"""パトロール処理の例外。"""
from __future__ import annotations

from typing import Optional


class PatrolError(RuntimeError):
    """本パッケージ固有の実行時エラーの基底。"""


class ConfigError(PatrolError):
    """API キー未設定など、実行前に検出できる設定不備。"""


class TransportError(PatrolError):
    """通信失敗（ネットワーク・タイムアウト・HTTP エラー）。"""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimited(PatrolError):
    """429 / 5xx の再試行予算を使い切った。"""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class MalformedResponse(PatrolError):
    """分類器の応答が判定形式として解釈できない。"""


class ParseError(PatrolError):
    """バルクファイルの読み込み失敗（エンコーディング・列指定など）。"""

    def __init__(self, file_name: str, message: str) -> None:
        super().__init__(f"{file_name}: {message}")
        self.file_name = file_name


class Cancelled(PatrolError):
    """オペレーターによる中断。エラーではなく Paused の理由として扱う。"""


class SessionConflictError(PatrolError):
    """別の書き手がセッションを更新していた（楽観ロック競合）。"""

    def __init__(self, session_id: str, expected_version: int) -> None:
        super().__init__(
            f"session {session_id} was modified concurrently (expected version {expected_version})"
        )
        self.session_id = session_id
        self.expected_version = expected_version
