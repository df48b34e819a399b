"""
リスク分類器クライアント（Gemini generateContent）。
1商品を判定し Verdict を返す。429 / 5xx は指数バックオフで再試行し、
失敗はすべて Error 判定として返す（例外で制御しない）。
"""
from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

import requests

from ippatrol.classify import prompt
from ippatrol.classify.verdict import parse_verdict_text
from ippatrol.errors import MalformedResponse, RateLimited, TransportError
from ippatrol.job.models import Item, Verdict
from ippatrol.util import http
from ippatrol.util.image import to_base64_jpeg

logger = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
RATE_LIMIT_REASON = "Server Busy (Rate Limit)"
TIMEOUT_REASON = "timeout"


def backoff_delay(attempt: int, jitter: float) -> float:
    """attempt 回目（0始まり）の待機秒数 = 2^attempt + jitter（0〜1秒）。"""
    return float(2 ** attempt) + jitter


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class ClassifierClient:
    """呼び出し間で状態を持たない分類器クライアント。並列スレッドから呼んでよい。"""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout_sec: float = 30,
        retry_max: int = 8,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        if retry_max < 1:
            raise ValueError("retry_max must be >= 1")
        self.api_key = api_key
        self.model = model
        self.timeout_sec = timeout_sec
        self.retry_max = retry_max
        self._session = session or requests.Session()
        self._sleep = sleep
        self._jitter = jitter

    @property
    def endpoint(self) -> str:
        return f"{BASE_URL}/{self.model}:generateContent"

    def classify(self, item: Item) -> Verdict:
        """1商品を判定。通信失敗・レート制限・不正応答は Error 判定に変換する。"""
        try:
            payload = prompt.build_payload(item.name, self._load_image(item.image_url))
            response = self._post_with_backoff(payload)
            return self._parse_response(response)
        except requests.Timeout:
            logger.warning("分類タイムアウト: name=%s", item.name[:30])
            return Verdict.error(TIMEOUT_REASON)
        except RateLimited as e:
            logger.warning("分類レート制限超過: name=%s, attempts=%d", item.name[:30], e.attempts)
            return Verdict.error(str(e))
        except (TransportError, MalformedResponse) as e:
            logger.warning("分類失敗: name=%s, error=%s", item.name[:30], e)
            return Verdict.error(str(e))

    def _load_image(self, image_url: Optional[str]) -> Optional[str]:
        """画像を Base64 で返す。取得できなければ画像なしで判定する。"""
        if not image_url:
            return None
        try:
            raw = http.fetch_image(image_url, timeout_sec=int(self.timeout_sec))
        except TransportError as e:
            logger.warning("画像取得失敗: url=%s, error=%s", image_url[:100], e)
            return None
        encoded = to_base64_jpeg(raw)
        if encoded is None:
            logger.warning("画像を添付できないため画像なしで判定します: url=%s", image_url[:100])
        return encoded

    def _post_with_backoff(self, payload: dict) -> requests.Response:
        """429 / 5xx を retry_max 回まで試行。使い切ったら RateLimited。"""
        for attempt in range(self.retry_max):
            try:
                r = self._session.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout_sec,
                )
            except requests.Timeout:
                raise
            except requests.RequestException as e:
                raise TransportError(str(e)) from e

            if _is_retryable(r.status_code):
                if attempt + 1 >= self.retry_max:
                    break
                wait = backoff_delay(attempt, self._jitter())
                logger.info(
                    "分類器 %d 応答。%.1f 秒待って再試行 (%d/%d)",
                    r.status_code, wait, attempt + 1, self.retry_max,
                )
                self._sleep(wait)
                continue
            if not r.ok:
                raise TransportError(f"API Error: {r.status_code}", status_code=r.status_code)
            return r
        raise RateLimited(RATE_LIMIT_REASON, attempts=self.retry_max)

    @staticmethod
    def _parse_response(response: requests.Response) -> Verdict:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(f"response body is not JSON: {e}") from e
        text = prompt.extract_text(data)
        if text is None:
            raise MalformedResponse("AIからの応答が空です")
        return parse_verdict_text(text)
