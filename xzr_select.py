#!/usr/bin/env python3
"""Select input archives under a base directory with Ant-style patterns.

Pattern syntax (relative to the base directory, "/" separated):
  - "*" matches any run of characters within one path segment
  - "?" matches exactly one character within one path segment
  - "**" matches zero or more whole segments
  - a pattern ending in "/" is treated as ending in "/**"

Pattern lists may be given as several values, each of which may itself be a
comma-separated list.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, List, Optional, Pattern

# =============================================================================
# Constants
# =============================================================================

DEFAULT_INCLUDES = ("**/*.?ar",)

# Version-control and OS metadata never considered as input
DEFAULT_EXCLUDES = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS/**",
    "**/.svn/**",
    "**/.bzr/**",
    "**/.hg/**",
    "**/.git/**",
    "**/.gitignore",
    "**/.gitattributes",
    "**/.DS_Store",
    "**/Thumbs.db",
)


# =============================================================================
# Pattern compilation
# =============================================================================


def split_patterns(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten pattern values, splitting each on commas and dropping blanks."""
    patterns: List[str] = []
    for value in values or ():
        for part in value.split(","):
            part = part.strip()
            if part:
                patterns.append(part)
    return patterns


def _segment_regex(segment: str) -> str:
    out = []
    for ch in segment:
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def compile_pattern(pattern: str) -> Pattern[str]:
    """Compile one Ant-style pattern to a regular expression."""
    pattern = pattern.replace("\\", "/").strip()
    if pattern.endswith("/"):
        pattern += "**"
    pattern = pattern.lstrip("/")

    parts = pattern.split("/")
    regex = ""
    for index, part in enumerate(parts):
        last = index == len(parts) - 1
        if part == "**":
            if not last:
                regex += "(?:.*/)?"
            elif regex.endswith("/"):
                regex = regex[:-1] + "(?:/.*)?"
            else:
                regex += ".*"
        else:
            regex += _segment_regex(part)
            if not last:
                regex += "/"
    return re.compile(regex)


def matches_any(path: str, patterns: Iterable[Pattern[str]]) -> bool:
    return any(p.fullmatch(path) for p in patterns)


# =============================================================================
# Selection
# =============================================================================


def select_archives(
    base_dir: Path,
    includes: Optional[Iterable[str]] = None,
    excludes: Optional[Iterable[str]] = None,
    use_default_excludes: bool = True,
) -> List[str]:
    """
    List regular files under ``base_dir`` matching the patterns.

    Args:
        base_dir: Directory to scan
        includes: Include patterns (DEFAULT_INCLUDES when empty or None)
        excludes: Exclude patterns, applied after includes
        use_default_excludes: Also apply DEFAULT_EXCLUDES

    Returns:
        Sorted base-relative POSIX paths

    Raises:
        FileNotFoundError: If base_dir doesn't exist
        NotADirectoryError: If base_dir is not a directory
    """
    base_dir = Path(base_dir)
    if not base_dir.exists():
        raise FileNotFoundError(f"Archive directory not found: {base_dir}")
    if not base_dir.is_dir():
        raise NotADirectoryError(f"Archive directory is not a directory: {base_dir}")

    include_patterns = [compile_pattern(p) for p in (split_patterns(includes) or DEFAULT_INCLUDES)]
    exclude_values = split_patterns(excludes)
    if use_default_excludes:
        exclude_values.extend(DEFAULT_EXCLUDES)
    exclude_patterns = [compile_pattern(p) for p in exclude_values]

    selected: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(base_dir):
        for filename in filenames:
            abs_path = Path(dirpath) / filename
            if not abs_path.is_file():
                continue
            rel_path = abs_path.relative_to(base_dir).as_posix()
            if matches_any(rel_path, include_patterns) and not matches_any(
                rel_path, exclude_patterns
            ):
                selected.append(rel_path)

    selected.sort()
    return selected
