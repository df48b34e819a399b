"""テスト共通のフィクスチャと偽 HTTP。"""
from __future__ import annotations

import json
from typing import Any, Optional

import pytest

from ippatrol.config import default_config
from ippatrol.job.params import ScanParams
from ippatrol.store import db


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        text: Optional[str] = None,
        content: Optional[bytes] = None,
        headers: Optional[dict] = None,
    ) -> None:
        self.status_code = status_code
        self.headers = headers or {}
        self._body = body
        if text is None:
            text = json.dumps(body, ensure_ascii=False) if body is not None else ""
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """post / get ごとにキューの先頭を返す。例外インスタンスなら送出する。"""

    def __init__(self, responses: list) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    def _next(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        resp = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(resp, BaseException):
            raise resp
        return resp

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("POST", url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("GET", url, **kwargs)


def gemini_body(payload: Any) -> dict:
    """generateContent 形式で payload を包む。"""
    text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def conn(tmp_path):
    c = db.get_connection(str(tmp_path / "sessions.db"))
    db.init_schema(c)
    yield c
    c.close()


@pytest.fixture
def params() -> ScanParams:
    return ScanParams.from_config(default_config()).with_overrides(page_delay_sec=0.0)
