"""楽天ショップ／カタログ CSV の知的財産権侵害パトロール。"""

__version__ = "1.0.0"
