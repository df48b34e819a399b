"""画像処理ユーティリティ。"""
from __future__ import annotations

import base64
import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

# 分類器に送る画像の長辺（これより大きい画像は縮小する）
MAX_SIDE_PX = 1024


def to_base64_jpeg(raw: bytes, max_side: int = MAX_SIDE_PX) -> Optional[str]:
    """
    商品画像を分類器へのインライン添付用に JPEG + Base64 にする。
    長辺が max_side を超える画像は縮小する。
    Pillow で開けない場合は元のバイト列をそのまま Base64 にする。
    空の場合と画素数が Pillow の上限を超える場合は None。
    """
    if not raw:
        return None
    try:
        with Image.open(io.BytesIO(raw)) as img:
            rgb = img.convert("RGB")
    except Image.DecompressionBombError:
        # 画素数が上限を超える画像は展開せず、画像なしで判定する
        return None
    except (UnidentifiedImageError, OSError, ValueError):
        return base64.b64encode(raw).decode("ascii")
    if max(rgb.size) > max_side:
        rgb.thumbnail((max_side, max_side))
    buf = io.BytesIO()
    rgb.save(buf, format="JPEG", quality=85)
    return base64.b64encode(buf.getvalue()).decode("ascii")
