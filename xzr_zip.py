#!/usr/bin/env python3
"""Write a directory tree into an uncompressed (STORED) ZIP container.

Entry rules:
  - Every regular file becomes a STORED entry whose size, compressed size and
    CRC-32 describe the exact bytes copied from disk.
  - A directory with no children becomes an explicit zero-length entry whose
    name ends with "/". Non-empty directories get no entry of their own.
  - Entries follow the directory walk order; nothing is sorted.

Keeping entries uncompressed lets a whole-file compressor see the raw bytes,
which is the point of repackaging.
"""

from __future__ import annotations

import argparse
import sys
import zipfile
from pathlib import Path
from typing import List, NamedTuple, Optional

from xzr_io import copy_file_to, crc_of_file
from xzr_walk import WalkEntry, is_empty_dir, walk_tree

DIRECTORY_SUFFIX = "/"


# =============================================================================
# Data Types
# =============================================================================


class ArchiveEntry(NamedTuple):
    """One entry of a ZIP container, either a file or a directory marker."""

    name: str  # Archive-relative path, / separators; directories end with /
    is_directory: bool
    size: int  # Uncompressed size
    compressed_size: int
    crc32: int  # 0 for directory markers
    method: int = zipfile.ZIP_STORED

    @classmethod
    def directory(cls, name: str) -> "ArchiveEntry":
        if not name.endswith(DIRECTORY_SUFFIX):
            name += DIRECTORY_SUFFIX
        return cls(name, True, 0, 0, 0)

    @classmethod
    def from_zipinfo(cls, info: zipfile.ZipInfo) -> "ArchiveEntry":
        return cls(
            name=info.filename,
            is_directory=info.is_dir(),
            size=info.file_size,
            compressed_size=info.compress_size,
            crc32=info.CRC,
            method=info.compress_type,
        )


# =============================================================================
# Writing
# =============================================================================


def _write_directory(zf: zipfile.ZipFile, item: WalkEntry) -> ArchiveEntry:
    entry = ArchiveEntry.directory(item.relative)
    zi = zipfile.ZipInfo.from_file(item.path, entry.name, strict_timestamps=False)
    zi.compress_type = zipfile.ZIP_STORED
    zf.writestr(zi, b"")
    return entry


def _write_file(zf: zipfile.ZipFile, item: WalkEntry) -> ArchiveEntry:
    crc = crc_of_file(item.path)
    zi = zipfile.ZipInfo.from_file(item.path, item.relative, strict_timestamps=False)
    zi.compress_type = zipfile.ZIP_STORED
    expected_size = zi.file_size

    with zf.open(zi, "w") as dest:
        copy_file_to(item.path, dest)

    # zipfile records what actually went through the entry handle
    if zi.CRC != crc or zi.file_size != expected_size:
        raise OSError(f"File changed while being archived: {item.path}")

    return ArchiveEntry.from_zipinfo(zi)


def write_stored_zip(root: Path, out_zip: Path) -> List[ArchiveEntry]:
    """
    Write every file and empty directory below ``root`` into ``out_zip``.

    Args:
        root: Directory to archive
        out_zip: Container to create (overwritten if present)

    Returns:
        Entries in the order they were written

    Raises:
        FileNotFoundError: If root is not an existing directory
        OSError: On any read/write failure; out_zip may be left partial
    """
    root = Path(root)
    out_zip = Path(out_zip)

    if not root.is_dir():
        raise FileNotFoundError(f"Archive root not found: {root}")

    out_zip.parent.mkdir(parents=True, exist_ok=True)

    written: List[ArchiveEntry] = []
    with zipfile.ZipFile(out_zip, "w", compression=zipfile.ZIP_STORED) as zf:
        for item in walk_tree(root):
            if item.is_dir:
                if is_empty_dir(item.path):
                    written.append(_write_directory(zf, item))
            else:
                written.append(_write_file(zf, item))
    return written


# =============================================================================
# Inspection
# =============================================================================


def read_entries(archive_path: Path) -> List[ArchiveEntry]:
    """List the entries of a ZIP container from its central directory."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        return [ArchiveEntry.from_zipinfo(info) for info in zf.infolist()]


def format_entries(entries: List[ArchiveEntry]) -> str:
    lines = []
    for entry in entries:
        kind = "dir " if entry.is_directory else "file"
        lines.append(f"  {kind} {entry.crc32:08x} {entry.size:>12,}  {entry.name}")
    return "\n".join(lines)


# =============================================================================
# CLI Interface
# =============================================================================


def main(argv: Optional[List[str]] = None, prog: Optional[str] = None) -> int:
    ap = argparse.ArgumentParser(prog=prog, description="Create an uncompressed (STORED) ZIP archive")
    ap.add_argument("directory", type=Path, help="Directory to archive")
    ap.add_argument("out_zip", type=Path, help="Output zip path")
    ap.add_argument("--verbose", "-v", action="store_true", help="List written entries")
    args = ap.parse_args(argv)

    try:
        entries = write_stored_zip(args.directory, args.out_zip)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{len(entries)} entries written to {args.out_zip}")
    if args.verbose and entries:
        print(format_entries(entries))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
