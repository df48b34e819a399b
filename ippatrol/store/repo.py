"""
ストアリポジトリの集約エントリポイント。
sessions / session_results の CRUD を一元提供。
"""
from __future__ import annotations

from ippatrol.store.repo_sessions import (
    create_session,
    force_abort,
    get_session,
    get_session_results,
    update_session,
)

__all__ = [
    "create_session",
    "force_abort",
    "get_session",
    "get_session_results",
    "update_session",
]
