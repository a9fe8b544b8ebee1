#!/usr/bin/env python3
"""Byte-level helpers shared by the archive codec and the repack pipeline.

- CRC-32 accumulation over a byte source (ChecksumComputer)
- Bounded-buffer copying between a source and a sink (ByteCopier)
- Best-effort release and deletion: failures are logged, never raised
"""

from __future__ import annotations

import logging
import shutil
import zlib
from pathlib import Path
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Copy buffer used by every stream-to-stream transfer
FILE_BUFFER = 4096

# Read chunk used when accumulating a CRC-32
CRC_CHUNK = 8192


# =============================================================================
# Checksums
# =============================================================================


def compute_crc(source: BinaryIO, chunk_size: int = CRC_CHUNK) -> int:
    """
    Compute the CRC-32 of everything left in a byte source.

    The source is read to exhaustion in chunks; it is not closed.

    Args:
        source: Readable binary stream
        chunk_size: Read buffer size

    Returns:
        Unsigned 32-bit CRC
    """
    crc = 0
    while chunk := source.read(chunk_size):
        crc = zlib.crc32(chunk, crc)
    return crc & 0xFFFFFFFF


def crc_of_file(filepath: Path, chunk_size: int = CRC_CHUNK) -> int:
    """Compute the CRC-32 of a file, opening and closing it."""
    with open(filepath, "rb") as f:
        return compute_crc(f, chunk_size)


# =============================================================================
# Copying
# =============================================================================


def copy_stream(
    source: Optional[BinaryIO], sink: Optional[BinaryIO], buffer_size: int = FILE_BUFFER
) -> int:
    """
    Copy all bytes from source to sink through a fixed-size buffer.

    A missing endpoint makes the call a no-op. The sink is flushed once the
    source is exhausted.

    Returns:
        Number of bytes copied
    """
    if source is None or sink is None:
        return 0

    copied = 0
    while chunk := source.read(buffer_size):
        sink.write(chunk)
        copied += len(chunk)
    sink.flush()
    return copied


def copy_file_to(filepath: Path, sink: BinaryIO) -> int:
    with open(filepath, "rb") as f:
        return copy_stream(f, sink)


def copy_to_file(source: BinaryIO, filepath: Path) -> int:
    with open(filepath, "wb") as f:
        return copy_stream(source, f)


# =============================================================================
# Best-effort release
# =============================================================================


def safe_close(resource: object) -> None:
    """Close a resource, logging instead of raising if close fails."""
    if resource is None:
        return
    try:
        resource.close()  # type: ignore[attr-defined]
    except Exception as e:
        logger.warning("Cannot close %r: %s", resource, e)


def delete_file(path: Path) -> bool:
    """Delete a file; returns False (and logs) when it cannot be deleted."""
    try:
        Path(path).unlink()
    except Exception as e:
        logger.warning("Cannot delete %s: %s", path, e)
        return False
    return True


def delete_directory(path: Path) -> bool:
    """Recursively delete a directory tree; returns False (and logs) on failure."""
    try:
        shutil.rmtree(path)
    except Exception as e:
        logger.warning("Cannot delete directory %s: %s", path, e)
        return False
    return True
