"""
分類器レスポンスの正規化。
risk / risk_level / riskLevel、is_critical / isCritical、日本語・英語ラベルの揺れを
ここで単一の Verdict に揃え、これより先には漏らさない。
"""
from __future__ import annotations

import json
from typing import Any

from ippatrol.errors import MalformedResponse
from ippatrol.job.models import RiskLevel, Verdict

_RISK_LABELS: dict[str, RiskLevel] = {
    "高": RiskLevel.HIGH,
    "high": RiskLevel.HIGH,
    "中": RiskLevel.MEDIUM,
    "medium": RiskLevel.MEDIUM,
    "低": RiskLevel.LOW,
    "low": RiskLevel.LOW,
    "エラー": RiskLevel.ERROR,
    "error": RiskLevel.ERROR,
}

_RISK_KEYS = ("riskLevel", "risk_level", "risk")
_CRITICAL_KEYS = ("isCritical", "is_critical")


def parse_risk_level(value: Any) -> RiskLevel:
    """ラベル文字列を RiskLevel に変換。未知のラベルは MalformedResponse。"""
    if isinstance(value, RiskLevel):
        return value
    if not isinstance(value, str):
        raise MalformedResponse(f"risk level must be a string, got {type(value).__name__}")
    level = _RISK_LABELS.get(value.strip().lower())
    if level is None:
        raise MalformedResponse(f"unknown risk level: {value!r}")
    return level


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (int, float)):
        return value != 0
    raise MalformedResponse(f"critical flag must be a boolean, got {type(value).__name__}")


def normalize_verdict(payload: Any) -> Verdict:
    """dict を Verdict に正規化。High 以外の is_critical は落とす。"""
    if not isinstance(payload, dict):
        raise MalformedResponse(f"verdict must be an object, got {type(payload).__name__}")
    raw_level = next((payload[k] for k in _RISK_KEYS if k in payload), None)
    if raw_level is None:
        raise MalformedResponse("verdict has no risk level")
    level = parse_risk_level(raw_level)
    raw_critical = next((payload[k] for k in _CRITICAL_KEYS if k in payload), False)
    is_critical = _parse_bool(raw_critical) and level == RiskLevel.HIGH
    reason = payload.get("reason")
    if reason is None:
        reason = ""
    elif not isinstance(reason, str):
        reason = str(reason)
    return Verdict(risk_level=level, is_critical=is_critical, reason=reason.strip())


def parse_verdict_text(text: str) -> Verdict:
    """モデル出力テキスト（JSON）を Verdict に変換。"""
    if not text or not text.strip():
        raise MalformedResponse("empty response from classifier")
    body = text.strip()
    # ```json ... ``` で囲まれて返ることがある
    if body.startswith("```"):
        body = body.strip("`")
        if body.lower().startswith("json"):
            body = body[4:]
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"classifier output is not JSON: {e}") from e
    return normalize_verdict(payload)
