#!/usr/bin/env python3
"""ZIP extraction into a directory tree.

Two entry points share one reconstruction routine:
  - extract_from_stream: sequential, from a forward-only byte stream
  - extract_from_container: random access, from the central directory

Both create parent directories on demand and produce the same tree for the
same input bytes.

Entry names are joined to the target root as-is. Names containing ".." or
absolute paths are NOT rejected, so only extract archives you trust.
"""

from __future__ import annotations

import argparse
import logging
import sys
import zipfile
from contextlib import nullcontext
from functools import partial
from pathlib import Path
from typing import BinaryIO, Callable, ContextManager, Iterable, Iterator, List, Optional, Tuple

from xzr_io import copy_to_file, safe_close
from xzr_stream import EntryPayload, ZipFormatError, iter_zip_stream
from xzr_zip import ArchiveEntry, format_entries, read_entries

logger = logging.getLogger(__name__)

PayloadOpener = Callable[[], ContextManager[BinaryIO]]


def _reconstruct(
    entries: Iterable[Tuple[ArchiveEntry, PayloadOpener]], target_root: Path
) -> List[ArchiveEntry]:
    """Materialize entries under target_root, creating directories as needed."""
    target_root = Path(target_root)
    target_root.mkdir(parents=True, exist_ok=True)

    extracted: List[ArchiveEntry] = []
    for entry, open_payload in entries:
        target = target_root / entry.name
        if entry.is_directory:
            target.mkdir(parents=True, exist_ok=True)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open_payload() as src:
                copy_to_file(src, target)
        extracted.append(entry)
    return extracted


def extract_from_stream(source: BinaryIO, target_root: Path) -> List[ArchiveEntry]:
    """
    Extract a ZIP read sequentially from ``source`` into ``target_root``.

    The source is closed when extraction ends, successfully or not.

    Returns:
        Entries in stream order, with sizes and CRC as verified against the
        payload, including those deferred to a data descriptor.

    Raises:
        ZipFormatError: If the stream is malformed or a payload fails its CRC
        OSError: If a directory or file cannot be written
    """
    payloads: List[EntryPayload] = []

    def opened() -> Iterator[Tuple[ArchiveEntry, PayloadOpener]]:
        for entry, payload in iter_zip_stream(source):
            payloads.append(payload)
            yield entry, partial(nullcontext, payload)

    try:
        _reconstruct(opened(), target_root)
    finally:
        safe_close(source)
    return [payload.entry for payload in payloads]


def extract_from_container(archive_path: Path, target_root: Path) -> List[ArchiveEntry]:
    """
    Extract a ZIP file into ``target_root`` using its central directory.

    Nothing is created when the archive cannot be opened.

    Raises:
        FileNotFoundError: If the archive does not exist
        zipfile.BadZipFile: If the archive is not a readable ZIP
        UnicodeDecodeError: If an entry name is not valid in its declared encoding
        OSError: If a directory or file cannot be written
    """
    with zipfile.ZipFile(archive_path, "r") as zf:
        return _reconstruct(
            ((ArchiveEntry.from_zipinfo(info), partial(zf.open, info)) for info in zf.infolist()),
            target_root,
        )


def extract_archive(archive_path: Path, dest: Path, streaming: bool = False) -> List[ArchiveEntry]:
    """Extract an archive file with either reader."""
    logger.debug("extracting %s to %s (%s)", archive_path, dest, "stream" if streaming else "container")
    if streaming:
        return extract_from_stream(open(archive_path, "rb"), dest)
    return extract_from_container(archive_path, dest)


# =============================================================================
# CLI Interface
# =============================================================================


def main(argv: Optional[List[str]] = None, prog: Optional[str] = None) -> int:
    ap = argparse.ArgumentParser(prog=prog, description="Extract a ZIP archive into a directory")
    ap.add_argument("archive", type=Path, help="Archive to extract")
    ap.add_argument("dest", type=Path, nargs="?", help="Destination directory")
    ap.add_argument(
        "--stream", action="store_true", help="Read the archive sequentially instead of by index"
    )
    ap.add_argument("--list", action="store_true", help="List entries instead of extracting")
    args = ap.parse_args(argv)

    if not args.list and args.dest is None:
        ap.error("dest is required unless --list is given")

    try:
        if args.list:
            print(format_entries(read_entries(args.archive)))
            return 0
        entries = extract_archive(args.archive, args.dest, streaming=args.stream)
    except (OSError, zipfile.BadZipFile, ZipFormatError, UnicodeDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{len(entries)} entries extracted to {args.dest}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
