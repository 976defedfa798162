"""Search query helpers: the edit buffer, filter tokens, and canned queries.

The edit buffer (:class:`TextInput`) and the committed query are separate so
that typing never changes the result set until the user commits.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

LATEST_QUERY = ""
POPULAR_QUERY = "order:rank"
SHORTCUT_LABELS: tuple[str, ...] = ("Latest", "Popular")
SEARCH_CHAR_LIMIT = 256

_WORD_RE = re.compile(r"\S+")
_FILTER_RE = re.compile(r"(?P<key>[^:]+):(?P<value>.+)")


@dataclass(frozen=True)
class FilterToken:
    """One whitespace-delimited word of a query.

    ``kind`` is ``"filter"`` for ``key:value`` words and ``"text"`` otherwise.
    Spans are ``(start, end)`` character offsets into the original string.
    """

    kind: str
    text: str
    span: tuple[int, int]
    key_span: tuple[int, int] | None = None
    value_span: tuple[int, int] | None = None

    @property
    def key(self) -> str:
        if self.key_span is None:
            return ""
        start = self.key_span[0] - self.span[0]
        return self.text[start : start + self.key_span[1] - self.key_span[0]]

    @property
    def value(self) -> str:
        if self.value_span is None:
            return ""
        start = self.value_span[0] - self.span[0]
        return self.text[start:]


def parse_filters(text: str) -> list[FilterToken]:
    """Split ``text`` into display tokens, classifying ``key:value`` words.

    Words with an empty key or value (``order:``, ``:rank``) stay plain text.
    Only the first colon separates key from value.
    """
    tokens: list[FilterToken] = []
    for word in _WORD_RE.finditer(text):
        start, end = word.span()
        match = _FILTER_RE.fullmatch(word.group(0))
        if match is None:
            tokens.append(FilterToken(kind="text", text=word.group(0), span=(start, end)))
            continue
        key_end = start + match.end("key")
        tokens.append(
            FilterToken(
                kind="filter",
                text=word.group(0),
                span=(start, end),
                key_span=(start, key_end),
                value_span=(key_end + 1, end),
            )
        )
    return tokens


def shortcut_query(button_index: int) -> str:
    """Return the canned query for an entrance-menu button."""
    return POPULAR_QUERY if button_index == 1 else LATEST_QUERY


def pool_query(pool_id: int) -> str:
    return f"pool:{pool_id}"


class TextInput:
    """Single-line edit buffer with a cursor."""

    def __init__(self, value: str = "", char_limit: int = SEARCH_CHAR_LIMIT) -> None:
        self.char_limit = char_limit
        self.value = ""
        self.cursor = 0
        self.set_value(value)

    def set_value(self, value: str) -> None:
        self.value = value[: self.char_limit]
        self.cursor = len(self.value)

    def insert(self, text: str) -> bool:
        room = self.char_limit - len(self.value)
        if room <= 0 or not text:
            return False
        text = text[:room]
        self.value = self.value[: self.cursor] + text + self.value[self.cursor :]
        self.cursor += len(text)
        return True

    def handle_key(self, key: str) -> bool:
        """Apply an editing key; return whether the key was consumed."""
        if key == "BACKSPACE":
            if self.cursor > 0:
                self.value = self.value[: self.cursor - 1] + self.value[self.cursor :]
                self.cursor -= 1
            return True
        if key in {"DELETE", "CTRL_D"}:
            self.value = self.value[: self.cursor] + self.value[self.cursor + 1 :]
            return True
        if key == "LEFT":
            self.cursor = max(0, self.cursor - 1)
            return True
        if key == "RIGHT":
            self.cursor = min(len(self.value), self.cursor + 1)
            return True
        if key in {"HOME", "CTRL_A"}:
            self.cursor = 0
            return True
        if key in {"END", "CTRL_E"}:
            self.cursor = len(self.value)
            return True
        if key == "CTRL_U":
            self.value = self.value[self.cursor :]
            self.cursor = 0
            return True
        if key == "CTRL_K":
            self.value = self.value[: self.cursor]
            return True
        if key == "CTRL_W":
            head = self.value[: self.cursor].rstrip()
            cut = head.rfind(" ") + 1
            self.value = self.value[:cut] + self.value[self.cursor :]
            self.cursor = cut
            return True
        if len(key) == 1 and key.isprintable():
            self.insert(key)
            return True
        return False


__all__ = [
    "FilterToken",
    "LATEST_QUERY",
    "POPULAR_QUERY",
    "SEARCH_CHAR_LIMIT",
    "SHORTCUT_LABELS",
    "TextInput",
    "parse_filters",
    "pool_query",
    "shortcut_query",
]
