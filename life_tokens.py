"""
Tokenizer for life-script blocks.

Scripts live in the comment lines of a pattern document.  The reader splits
them on whitespace (braces count as whitespace) and offers the lookahead
primitives the interpreter needs: peek, numeric checks, search and
consume-all.  Quoted strings are *not* joined here; the interpreter
accumulates them token by token.
"""

from __future__ import annotations

import math
import re

SEPARATORS = re.compile(r"[\s{}]+")
COMMENT_PREFIXES: tuple[str, ...] = ("#C", "#c", "#D")


def script_source(document: str) -> str:
    """
    Return the text that may contain script blocks.

    For a pattern document (any line starting with ``#``) this is the joined
    text of its comment lines; plain text is returned unchanged.
    """
    lines = document.splitlines()
    if not any(line.startswith("#") for line in lines):
        return document
    return "\n".join(
        line[2:] for line in lines if line.startswith(COMMENT_PREFIXES)
    )


def _plain_number(token: str) -> float | None:
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def is_numeric(token: str) -> bool:
    if not token:
        return False
    if _plain_number(token) is not None:
        return True
    left, slash, right = token.partition("/")
    return bool(slash) and _plain_number(left) is not None and _plain_number(right) is not None


def as_number(token: str) -> float:
    """Numeric value of ``token``; fractions ``n/m`` divide (``n/0`` is 0)."""
    value = _plain_number(token)
    if value is not None:
        return value
    left, slash, right = token.partition("/")
    if slash:
        numerator, denominator = _plain_number(left), _plain_number(right)
        if numerator is not None and denominator is not None:
            return numerator / denominator if denominator != 0 else 0.0
    raise ValueError(f"not a number: {token!r}")


def format_number(value: float) -> str:
    """Integers without a decimal point, everything else in shortest form."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class ScriptReader:
    """Token stream with lookahead over one script source."""

    def __init__(self, source: str) -> None:
        self._tokens: list[str] = [t for t in SEPARATORS.split(source) if t]
        self._pos: int = 0

    def __len__(self) -> int:
        return len(self._tokens)

    @property
    def position(self) -> int:
        return self._pos

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._tokens)

    # ── Reading ─────────────────────────────────────────────────────

    def next_token(self) -> str:
        """Consume and return the next token, or ``""`` at the end."""
        if self._pos >= len(self._tokens):
            return ""
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def peek_token(self, offset: int = 0) -> str:
        index = self._pos + offset
        if 0 <= index < len(self._tokens):
            return self._tokens[index]
        return ""

    def step_back(self) -> None:
        if self._pos > 0:
            self._pos -= 1

    def next_is_numeric(self) -> bool:
        return is_numeric(self.peek_token())

    def forward_is_numeric(self, offset: int) -> bool:
        return is_numeric(self.peek_token(offset))

    def next_as_number(self) -> float:
        return as_number(self.next_token())

    # ── Searching ───────────────────────────────────────────────────

    def find_token(self, token: str, start: int = -1) -> int:
        """
        Find ``token`` at or after ``start`` (-1 means the current position).

        On success the reader is positioned just after the match and its
        index is returned; otherwise the position is unchanged and -1 is
        returned.
        """
        begin = self._pos if start < 0 else start
        for index in range(begin, len(self._tokens)):
            if self._tokens[index] == token:
                self._pos = index + 1
                return index
        return -1

    def find_any(self, tokens: tuple[str, ...], start: int = -1) -> int:
        begin = self._pos if start < 0 else start
        for index in range(begin, len(self._tokens)):
            if self._tokens[index] in tokens:
                self._pos = index + 1
                return index
        return -1

    def consume_remaining(self) -> None:
        self._pos = len(self._tokens)


__all__ = [
    "ScriptReader",
    "as_number",
    "format_number",
    "is_numeric",
    "script_source",
]
