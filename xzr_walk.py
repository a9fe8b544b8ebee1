#!/usr/bin/env python3
"""Directory subtree enumeration with an explicit work-list.

Traversal order:
  - A stack of pending directories is seeded with the root.
  - The most recently discovered directory is expanded next.
  - Each child directory is yielded when it is discovered, before anything
    beneath it; files are yielded as they are listed.

Sibling order is whatever the filesystem listing returns. Callers may rely on
getting *a* complete traversal, never on a particular order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, NamedTuple


class WalkEntry(NamedTuple):
    """A file or directory reachable from the walk root."""

    path: Path  # Filesystem path (root / relative)
    relative: str  # Root-relative path, / separators, no trailing separator
    is_dir: bool


def relative_name(root: Path, path: Path) -> str:
    """Return ``path`` relative to ``root`` as a POSIX string."""
    return path.relative_to(root).as_posix()


def walk_tree(root: Path) -> Iterator[WalkEntry]:
    """
    Lazily enumerate every file and directory below ``root``.

    The root itself is not yielded.

    Raises:
        FileNotFoundError: If root does not exist (on first iteration)
        NotADirectoryError: If root is not a directory (on first iteration)
    """
    root = Path(root)
    pending = [root]

    while pending:
        directory = pending.pop()
        for child in directory.iterdir():
            rel = relative_name(root, child)
            if child.is_dir():
                pending.append(child)
                yield WalkEntry(child, rel, True)
            else:
                yield WalkEntry(child, rel, False)


def is_empty_dir(path: Path) -> bool:
    """True if ``path`` is a directory with no children at all."""
    return next(Path(path).iterdir(), None) is None
