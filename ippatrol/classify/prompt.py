"""分類器へ渡すプロンプトとリクエスト本文。"""
from __future__ import annotations

from typing import Any, Optional

SYSTEM_INSTRUCTION = """
あなたはEC出品の権利侵害対策に精通した弁理士です。
商品名と画像から、知的財産権を侵害しているリスクを判定してください。

【特に警戒する危険信号】
- 有名ブランドのロゴを付けた偽物（商標権侵害の疑い）
- アニメ・漫画のキャラクターを無断で使ったグッズ（著作権侵害の疑い）
- 芸能人の写真・肖像を無断で使った商品
- 「パロディ」「オマージュ」などの言い換えで偽ブランド品であることを隠しているもの

【判定基準】
- 高 (High): 権利侵害の疑いが濃厚
- 中 (Medium): グレーゾーン（「〇〇風」など）
- 低 (Low): 一般的な商品
- is_critical: 高のうち特に悪質（偽造ロゴ・無断肖像利用など、刑事責任が問われ得る）なら true

【出力形式】次の JSON のみを返すこと。
{ "risk_level": "高" | "中" | "低", "is_critical": true | false, "reason": "判定理由（日本語で簡潔に）" }
""".strip()


def build_payload(
    product_name: str,
    image_base64: Optional[str] = None,
    mime_type: str = "image/jpeg",
) -> dict[str, Any]:
    """generateContent のリクエスト本文を構築。画像はインラインで添付する。"""
    parts: list[dict[str, Any]] = [{"text": f"商品名: {product_name}"}]
    if image_base64:
        parts.append({"inlineData": {"data": image_base64, "mimeType": mime_type}})
    return {
        "contents": [{"role": "user", "parts": parts}],
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "generationConfig": {"responseMimeType": "application/json"},
    }


def extract_text(data: Any) -> Optional[str]:
    """generateContent レスポンスから最初の候補のテキストを取り出す。無ければ None。"""
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
