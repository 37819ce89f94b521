"""Word counting — pure function, never raises."""

from __future__ import annotations

import re

# Markdown-native %% comments %% and HTML <!-- comments -->
_COMMENT_RE = re.compile(r"%%.*?%%|<!--.*?-->", re.DOTALL)
_FRONTMATTER_RE = re.compile(r"\A---\r?\n.*?\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_TOKEN_RE = re.compile(r"\S+")
# CJK ideographs, kana and hangul count one word per character
_CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")


def strip_comments(text: str) -> str:
    return _COMMENT_RE.sub(" ", text)


def count_words(text: str, include_comments: bool = False) -> int:
    """Count words in a markdown document.

    YAML frontmatter is never counted. Comments are dropped unless
    ``include_comments``. Tokens made only of punctuation (list bullets,
    heading marks, rules) are not words.
    """
    if not text:
        return 0
    body = _FRONTMATTER_RE.sub("", text, count=1)
    if not include_comments:
        body = strip_comments(body)

    total = 0
    for token in _TOKEN_RE.findall(body):
        cjk = len(_CJK_RE.findall(token))
        if cjk:
            total += cjk
            rest = _CJK_RE.sub("", token)
            if any(ch.isalnum() for ch in rest):
                total += 1
        elif any(ch.isalnum() for ch in token):
            total += 1
    return total
