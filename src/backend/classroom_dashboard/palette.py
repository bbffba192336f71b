from __future__ import annotations

import zlib
from typing import Sequence

from .configuration import DEFAULT_PALETTE


def stable_hash(text: str) -> int:
    """CRC-32 of the UTF-8 bytes; identical across runs, unlike ``hash()``."""
    return zlib.crc32(text.encode("utf-8"))


def palette_index(text: str, size: int) -> int:
    if size <= 0:
        return 0
    return stable_hash(text) % size


def color_for(text: str, palette: Sequence[str] = DEFAULT_PALETTE) -> str:
    if not palette:
        raise ValueError("palette must contain at least one color")
    return palette[palette_index(text, len(palette))]
