"""classify.client（分類器クライアント）のユニットテスト。"""
import io
import random

import requests
from PIL import Image

from conftest import FakeResponse, FakeSession, gemini_body
from ippatrol.classify import client as client_module
from ippatrol.classify.client import ClassifierClient, backoff_delay
from ippatrol.errors import TransportError
from ippatrol.job.models import Item, RiskLevel

ITEM = Item(name="ブランド風 財布", source_reference="https://www.rakuten.co.jp/testshop/")


def _client(responses, retry_max=8, jitter=lambda: 0.5):
    session = FakeSession(responses)
    waits: list[float] = []
    c = ClassifierClient("test-key", session=session, sleep=waits.append, jitter=jitter, retry_max=retry_max)
    return c, session, waits


def test_success_returns_normalized_verdict():
    c, session, waits = _client([
        FakeResponse(200, gemini_body({"risk_level": "高", "is_critical": True, "reason": "偽ロゴ"}))
    ])
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.HIGH
    assert v.is_critical is True
    assert v.reason == "偽ロゴ"
    assert len(session.calls) == 1
    assert session.calls[0]["params"] == {"key": "test-key"}
    assert waits == []


def test_rate_limit_exhausted_yields_error_verdict():
    c, session, waits = _client([FakeResponse(429, {"error": "busy"})], retry_max=8)
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.ERROR
    assert "Rate Limit" in v.reason
    assert len(session.calls) == 8
    assert len(waits) == 7


def test_backoff_waits_grow_and_are_bounded():
    rng = random.Random(7)
    c, session, waits = _client(
        [
            FakeResponse(429),
            FakeResponse(429),
            FakeResponse(429),
            FakeResponse(200, gemini_body({"risk_level": "低", "is_critical": False, "reason": "一般商品"})),
        ],
        jitter=rng.random,
    )
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.LOW
    assert len(waits) == 3
    assert waits == sorted(waits)
    for attempt, wait in enumerate(waits):
        assert 2 ** attempt <= wait <= 2 ** attempt + 1


def test_backoff_delay_formula():
    assert backoff_delay(0, 0.0) == 1.0
    assert backoff_delay(3, 0.25) == 8.25


def test_server_error_then_success_is_retried():
    c, session, waits = _client([
        FakeResponse(503),
        FakeResponse(200, gemini_body({"riskLevel": "Medium", "isCritical": False, "reason": "グレー"})),
    ])
    assert c.classify(ITEM).risk_level == RiskLevel.MEDIUM
    assert len(session.calls) == 2
    assert waits == [1.5]


def test_timeout_is_not_retried():
    c, session, waits = _client([requests.Timeout("read timed out")])
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.ERROR
    assert v.reason == "timeout"
    assert len(session.calls) == 1
    assert waits == []


def test_client_error_is_not_retried():
    c, session, waits = _client([FakeResponse(400, {"error": "bad request"})])
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.ERROR
    assert "400" in v.reason
    assert len(session.calls) == 1


def test_connection_error_becomes_error_verdict():
    c, _, _ = _client([requests.ConnectionError("connection refused")])
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.ERROR
    assert "connection refused" in v.reason


def test_malformed_model_output_becomes_error_verdict():
    c, _, _ = _client([FakeResponse(200, gemini_body("これはJSONではありません"))])
    assert c.classify(ITEM).risk_level == RiskLevel.ERROR


def test_empty_candidates_becomes_error_verdict():
    c, _, _ = _client([FakeResponse(200, {"candidates": []})])
    v = c.classify(ITEM)
    assert v.risk_level == RiskLevel.ERROR
    assert "空" in v.reason


def test_non_json_body_becomes_error_verdict():
    c, _, _ = _client([FakeResponse(200, text="<html>oops</html>")])
    assert c.classify(ITEM).risk_level == RiskLevel.ERROR


def test_image_is_attached_as_jpeg(monkeypatch):
    buf = io.BytesIO()
    Image.new("RGBA", (4, 4), (255, 0, 0, 128)).save(buf, format="PNG")
    monkeypatch.setattr(client_module.http, "fetch_image", lambda url, **kw: buf.getvalue())
    c, session, _ = _client([
        FakeResponse(200, gemini_body({"risk_level": "低", "is_critical": False, "reason": "-"}))
    ])
    item = Item(name="Tシャツ", source_reference="shop", image_url="https://image.example/1.png")
    c.classify(item)
    parts = session.calls[0]["json"]["contents"][0]["parts"]
    assert parts[0]["text"] == "商品名: Tシャツ"
    assert parts[1]["inlineData"]["mimeType"] == "image/jpeg"
    assert parts[1]["inlineData"]["data"]


def test_image_download_failure_classifies_without_image(monkeypatch):
    def _fail(url, **kw):
        raise TransportError("画像取得エラー: no route")

    monkeypatch.setattr(client_module.http, "fetch_image", _fail)
    c, session, _ = _client([
        FakeResponse(200, gemini_body({"risk_level": "低", "is_critical": False, "reason": "-"}))
    ])
    item = Item(name="Tシャツ", source_reference="shop", image_url="https://image.example/1.png")
    assert c.classify(item).risk_level == RiskLevel.LOW
    assert len(session.calls[0]["json"]["contents"][0]["parts"]) == 1


def test_oversized_image_classifies_without_image(monkeypatch):
    """画素数が上限を超える画像でも例外を出さず、画像なしで判定する。"""
    buf = io.BytesIO()
    Image.new("1", (64, 64)).save(buf, format="PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    monkeypatch.setattr(client_module.http, "fetch_image", lambda url, **kw: buf.getvalue())
    c, session, _ = _client([
        FakeResponse(200, gemini_body({"risk_level": "低", "is_critical": False, "reason": "-"}))
    ])
    item = Item(name="Tシャツ", source_reference="shop", image_url="https://image.example/huge.png")
    assert c.classify(item).risk_level == RiskLevel.LOW
    assert len(session.calls[0]["json"]["contents"][0]["parts"]) == 1
