"""区切り文字テキスト（CSV）の読み込み。先頭行はヘッダとして扱う。"""
from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Optional, Union

from ippatrol.errors import ParseError

# 列名の自動判定に使うキーワード
NAME_COLUMN_HINTS = ("商品名", "Name")


def read_rows(path: Union[str, Path], encoding: str = "cp932", delimiter: str = ",") -> list[list[str]]:
    """ファイル全体を読み込み行のリストを返す。デコード・構文エラーは ParseError。"""
    p = Path(path)
    try:
        text = p.read_bytes().decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise ParseError(p.name, f"{encoding} として読み込めません: {e}") from e
    except OSError as e:
        raise ParseError(p.name, f"ファイルを開けません: {e}") from e
    if text.startswith("\ufeff"):
        text = text[1:]
    try:
        return [row for row in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter) if row]
    except csv.Error as e:
        raise ParseError(p.name, f"CSV の形式が不正です: {e}") from e


def resolve_name_column(header: list[str], name_column: Optional[Union[str, int]], file_name: str) -> int:
    """
    商品名として使う列番号を決める。
    name_column が数値（または数字文字列）なら列番号、文字列なら列名。
    None のときはヒントを含む最初の列、なければ 0 列目。
    """
    if name_column is None or name_column == "":
        for idx, h in enumerate(header):
            if any(hint in h for hint in NAME_COLUMN_HINTS):
                return idx
        return 0
    if isinstance(name_column, int) or (isinstance(name_column, str) and name_column.isdigit()):
        idx = int(name_column)
        if idx < 0 or idx >= len(header):
            raise ParseError(file_name, f"列番号 {idx} がありません（列数={len(header)}）")
        return idx
    stripped = [h.strip() for h in header]
    if name_column.strip() not in stripped:
        raise ParseError(file_name, f"列 '{name_column}' がありません")
    return stripped.index(name_column.strip())
