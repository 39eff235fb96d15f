"""
RLE pattern decoding and the eight paste transforms.

Cells decode into a ``uint8`` array indexed ``[row, col]``; state 0 is
dead, ``o`` is state 1 and the multi-state letters ``A``..``X`` (optionally
prefixed by ``p``..``y``) give states 1..255.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

RLE_CHARS = re.compile(r"^[0-9bo.A-Xp-y$!]+$")
HEADER = re.compile(r"^\s*x\s*=\s*(\d+)\s*,\s*y\s*=\s*(\d+)(?:\s*,\s*rule\s*=\s*(\S+))?", re.I)


class Transform(enum.Enum):
    IDENTITY = "IDENTITY"
    FLIP = "FLIP"
    FLIP_X = "FLIPX"
    FLIP_Y = "FLIPY"
    SWAP_XY = "SWAPXY"
    SWAP_XY_FLIP = "SWAPXYFLIP"
    RCW = "RCW"
    RCCW = "RCCW"

    @classmethod
    def from_word(cls, word: str) -> Transform | None:
        try:
            return cls(word)
        except ValueError:
            return None


def apply_transform(cells: NDArray[np.uint8], transform: Transform) -> NDArray[np.uint8]:
    """Return a transformed copy of ``cells`` (rows are y, columns are x)."""
    if transform is Transform.FLIP:
        out = cells[::-1, ::-1]
    elif transform is Transform.FLIP_X:
        out = cells[:, ::-1]
    elif transform is Transform.FLIP_Y:
        out = cells[::-1, :]
    elif transform is Transform.SWAP_XY:
        out = cells.T
    elif transform is Transform.SWAP_XY_FLIP:
        out = cells.T[::-1, ::-1]
    elif transform is Transform.RCW:
        out = np.rot90(cells, k=-1)
    elif transform is Transform.RCCW:
        out = np.rot90(cells, k=1)
    else:
        out = cells
    return np.ascontiguousarray(out)


def is_rle_fragment(token: str) -> bool:
    """True if ``token`` could be (part of) an inline RLE string."""
    return bool(token) and RLE_CHARS.match(token) is not None and not token.isdigit()


def decode_rle(text: str) -> NDArray[np.uint8] | None:
    """
    Decode an RLE body into a cell array.

    Returns ``None`` when the text is not valid RLE or contains no cells.
    """
    text = "".join(text.split())
    if not text or RLE_CHARS.match(text) is None:
        return None

    live: list[tuple[int, int, int]] = []
    row = col = 0
    count = ""
    prefix = 0

    for ch in text:
        if ch.isdigit():
            count += ch
            continue
        if "p" <= ch <= "y":
            if prefix:
                return None
            prefix = (ord(ch) - ord("p") + 1) * 24
            continue
        n = int(count) if count else 1
        count = ""
        if ch in "b.":
            if prefix:
                return None
            col += n
        elif ch == "o" or "A" <= ch <= "X":
            state = 1 if ch == "o" else ord(ch) - ord("A") + 1 + prefix
            if state > 255:
                return None
            live.extend((row, col + i, state) for i in range(n))
            col += n
            prefix = 0
        elif ch == "$":
            if prefix:
                return None
            row += n
            col = 0
        elif ch == "!":
            break

    if count or prefix or not live:
        return None

    height = max(r for r, _, _ in live) + 1
    width = max(c for _, c, _ in live) + 1
    cells = np.zeros((height, width), dtype=np.uint8)
    for r, c, state in live:
        cells[r, c] = state
    return cells


def encode_rle(cells: NDArray[np.uint8]) -> str:
    """Encode two-state cells back to RLE (used for reports and tests)."""
    rows: list[str] = []
    for line in cells:
        runs: list[str] = []
        i = 0
        width = len(line)
        # trailing dead cells are implicit
        while width > 0 and line[width - 1] == 0:
            width -= 1
        while i < width:
            j = i
            while j < width and (line[j] != 0) == (line[i] != 0):
                j += 1
            n = j - i
            runs.append(("" if n == 1 else str(n)) + ("o" if line[i] else "b"))
            i = j
        rows.append("".join(runs))
    return "$".join(rows) + "!"


# ── Pattern documents ───────────────────────────────────────────────────

@dataclass(frozen=True)
class PatternDocument:
    """A decoded pattern file: its cells plus the header metadata."""

    cells: NDArray[np.uint8] | None
    name: str = ""
    originator: str = ""
    rule: str = "B3/S23"


def read_pattern(document: str) -> PatternDocument:
    """Split an RLE document into its comment metadata and cell body."""
    name = originator = ""
    rule = "B3/S23"
    body: list[str] = []
    in_body = False
    for line in document.splitlines():
        stripped = line.strip()
        if not in_body and stripped.startswith("#"):
            tag = stripped[:2].upper()
            if tag == "#N":
                name = stripped[2:].strip()
            elif tag == "#O":
                originator = stripped[2:].strip()
            continue
        if not in_body:
            header = HEADER.match(stripped)
            if header:
                if header.group(3):
                    rule = header.group(3)
                in_body = True
                continue
            if not stripped:
                continue
            in_body = True
        body.append(stripped)
        if "!" in stripped:
            break
    cells = decode_rle("".join(body)) if body else None
    return PatternDocument(cells=cells, name=name, originator=originator, rule=rule)


__all__ = [
    "PatternDocument",
    "Transform",
    "apply_transform",
    "decode_rle",
    "encode_rle",
    "is_rle_fragment",
    "read_pattern",
]
