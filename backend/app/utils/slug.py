"""
slug 生成
"""

import re

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """小写 -> 非[a-z0-9]字符串替换为'-' -> 去除首尾'-'"""
    if not text:
        return ""
    return _NON_SLUG_CHARS.sub("-", text.lower()).strip("-")
