#!/usr/bin/env python3
"""Whole-file xz (LZMA2) compression of repackaged containers."""

from __future__ import annotations

import lzma
from pathlib import Path

from xzr_io import copy_stream

MIN_LEVEL = 0
MAX_LEVEL = 9
DEFAULT_LEVEL = 9

XZ_SUFFIX = ".xz"


def check_level(level: int) -> int:
    """Return ``level`` if it is a valid xz preset, else raise ValueError."""
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValueError(f"Compression level must be an integer: {level!r}")
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise ValueError(f"Compression level must be between {MIN_LEVEL} and {MAX_LEVEL}: {level}")
    return level


def compress_file(source: Path, dest: Path, level: int = DEFAULT_LEVEL) -> int:
    """
    Stream ``source`` through an xz compressor into ``dest``.

    Args:
        source: File to compress
        dest: Output file (overwritten if present)
        level: xz preset, 0 (fastest) to 9 (smallest)

    Returns:
        Number of uncompressed bytes consumed

    Raises:
        ValueError: If level is out of range
        OSError, lzma.LZMAError: On read, write or encoder failure
    """
    check_level(level)
    with open(source, "rb") as src, lzma.open(dest, "wb", format=lzma.FORMAT_XZ, preset=level) as out:
        return copy_stream(src, out)


def decompress_file(source: Path, dest: Path) -> int:
    """Reverse compress_file."""
    with lzma.open(source, "rb", format=lzma.FORMAT_XZ) as src, open(dest, "wb") as out:
        return copy_stream(src, out)
