#!/usr/bin/env python3
"""Command-line entry point: ``xzr <command> [options]``."""

from __future__ import annotations

import importlib
import sys
from typing import List, Optional, Tuple

__version__ = "1.0.0"

# command -> (module providing main(argv, prog), one-line summary)
_COMMANDS: dict[str, Tuple[str, str]] = {
    "repack": ("xzr_pipeline", "Repack archives as xz-compressed uncompressed ZIPs"),
    "zip": ("xzr_zip", "Write a directory as an uncompressed (STORED) ZIP"),
    "unzip": ("xzr_archive", "Extract or list a ZIP archive"),
}


def usage() -> str:
    width = max(len(name) for name in _COMMANDS) + 2
    lines = ["usage: xzr <command> [options]", "", "commands:"]
    lines += [f"  {name:<{width}}{summary}" for name, (_, summary) in _COMMANDS.items()]
    lines += ["", "Run 'xzr <command> --help' for the options of one command."]
    return "\n".join(lines)


def run_command(command: str, argv: List[str]) -> int:
    """Run one subcommand, turning argparse exits into a return code."""
    module = importlib.import_module(_COMMANDS[command][0])
    try:
        return int(module.main(argv, prog=f"xzr {command}") or 0)
    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 2


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)

    if not args or args[0] in {"-h", "--help"}:
        print(usage())
        return 0
    if args[0] == "--version":
        print(f"xzr {__version__}")
        return 0

    command, rest = args[0], args[1:]
    if command not in _COMMANDS:
        print(f"xzr: unknown command '{command}'", file=sys.stderr)
        print(usage(), file=sys.stderr)
        return 2
    return run_command(command, rest)


if __name__ == "__main__":
    sys.exit(main())
