#!/usr/bin/env python3
"""Repackage jar/war-style archives as xz-compressed, uncompressed ZIPs.

Each input archive goes through one job:
  1. Extract the archive into a scratch directory
  2. Rewrite the scratch directory as a STORED (uncompressed) ZIP
  3. Delete the scratch directory (best effort)
  4. Compress the uncompressed ZIP with xz into the output file
  5. Delete the uncompressed ZIP (best effort)

Per-entry deflate hides redundancy between entries from a whole-file
compressor; removing it first gives a noticeably smaller package.

Usage:
    # Repack every *.?ar under a directory, writing <name>.xz beside each
    python xzr_pipeline.py target/dist

    # Use a YAML config file, overriding the level
    python xzr_pipeline.py --config xzr.yaml --level 6

Exit codes:
    0 = All jobs succeeded
    1 = At least one job failed
    2 = Error (invalid configuration, missing directory, etc.)
"""

from __future__ import annotations

import argparse
import json
import logging
import lzma
import sys
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from xzr_archive import extract_from_container
from xzr_compress import DEFAULT_LEVEL, XZ_SUFFIX, compress_file
from xzr_config import ConfigError, RepackConfig, load_config
from xzr_io import delete_directory, delete_file
from xzr_select import select_archives
from xzr_zip import write_stored_zip

logger = logging.getLogger(__name__)

SCRATCH_SUFFIX = ".unpacked"
INTERMEDIATE_SUFFIX = ".zip"

_EXTRACT_ERRORS = (
    OSError,
    EOFError,
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    NotImplementedError,
    RuntimeError,
    ValueError,  # includes UnicodeDecodeError for entry names
)


# =============================================================================
# Jobs and outcomes
# =============================================================================


@dataclass(frozen=True)
class CompressionJob:
    """Paths and settings for repacking one archive."""

    name: str
    source: Path
    scratch_dir: Path
    intermediate: Path
    output: Path
    level: int = DEFAULT_LEVEL

    @classmethod
    def for_archive(
        cls,
        archive_directory: Path,
        filename: str,
        output_directory: Optional[Path] = None,
        level: int = DEFAULT_LEVEL,
    ) -> "CompressionJob":
        """
        Derive the job for ``filename`` (relative to ``archive_directory``).

        Scratch and intermediate paths sit beside the source and are unique
        per source file; the output lands at the same relative path under
        ``output_directory`` (default: the archive directory).
        """
        archive_directory = Path(archive_directory)
        output_directory = Path(output_directory) if output_directory else archive_directory
        return cls(
            name=filename,
            source=archive_directory / filename,
            scratch_dir=archive_directory / (filename + SCRATCH_SUFFIX),
            intermediate=archive_directory / (filename + INTERMEDIATE_SUFFIX),
            output=output_directory / (filename + XZ_SUFFIX),
            level=level,
        )


class JobStatus(Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class RepackError(Exception):
    """A hard failure that aborted a job."""

    category = "repack"

    def __init__(self, job: CompressionJob, path: Path, message: str):
        super().__init__(f"{job.name}: {message}: {path}")
        self.job = job
        self.path = path


class SourceReadError(RepackError):
    """The input archive is missing, truncated or unreadable."""

    category = "source-read"


class RepackFilesystemError(RepackError):
    """A directory or file could not be created or written."""

    category = "filesystem"


class CompressionError(RepackError):
    """The xz compressor failed."""

    category = "compression"


@dataclass
class JobOutcome:
    job: CompressionJob
    status: JobStatus
    error: Optional[RepackError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.SUCCEEDED


# =============================================================================
# Pipeline
# =============================================================================


def _is_under(filename: Any, root: Path) -> bool:
    if not filename:
        return False
    try:
        return Path(filename).resolve().is_relative_to(root.resolve())
    except (OSError, ValueError):
        return False


def _extract_failure(job: CompressionJob, exc: BaseException) -> RepackError:
    if isinstance(exc, OSError) and _is_under(exc.filename, job.scratch_dir):
        return RepackFilesystemError(job, Path(exc.filename), f"Cannot extract ({exc})")
    return SourceReadError(job, job.source, f"Cannot read source archive ({exc})")


def _extract(job: CompressionJob) -> None:
    if not job.source.is_file():
        raise SourceReadError(job, job.source, "Source archive not found")
    if job.scratch_dir.exists():
        raise RepackFilesystemError(job, job.scratch_dir, "Scratch directory already exists")

    logger.debug("uncompressing %s to %s", job.source, job.scratch_dir)
    try:
        extract_from_container(job.source, job.scratch_dir)
    except _EXTRACT_ERRORS as e:
        if job.scratch_dir.exists():
            delete_directory(job.scratch_dir)
        raise _extract_failure(job, e) from e


def _rewrite(job: CompressionJob) -> None:
    logger.debug("writing uncompressed %s", job.intermediate)
    try:
        write_stored_zip(job.scratch_dir, job.intermediate)
    except OSError as e:
        delete_directory(job.scratch_dir)
        if job.intermediate.exists():
            delete_file(job.intermediate)
        raise RepackFilesystemError(
            job, job.intermediate, f"Cannot write uncompressed archive ({e})"
        ) from e


def _compress(job: CompressionJob) -> None:
    logger.debug("compressing %s to %s", job.intermediate, job.output)
    try:
        try:
            job.output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RepackFilesystemError(
                job, job.output.parent, f"Cannot create output directory ({e})"
            ) from e
        try:
            compress_file(job.intermediate, job.output, job.level)
        except (OSError, lzma.LZMAError, ValueError) as e:
            raise CompressionError(job, job.output, f"Compression failed ({e})") from e
    finally:
        delete_file(job.intermediate)


def execute_job(job: CompressionJob) -> None:
    """
    Run one job, raising the first hard failure.

    Raises:
        SourceReadError: Step 1 could not read the source archive
        RepackFilesystemError: A scratch, intermediate or output path failed
        CompressionError: The xz step failed
    """
    _extract(job)
    _rewrite(job)
    delete_directory(job.scratch_dir)
    _compress(job)
    logger.debug("finished compressing %s", job.output)


def run_job(job: CompressionJob) -> JobOutcome:
    """Run one job and report its terminal state instead of raising."""
    try:
        execute_job(job)
    except RepackError as e:
        logger.error("%s failed [%s]: %s", job.name, e.category, e)
        return JobOutcome(job, JobStatus.FAILED, e)
    logger.info("repacked %s -> %s", job.name, job.output)
    return JobOutcome(job, JobStatus.SUCCEEDED)


# =============================================================================
# Batch
# =============================================================================


class BatchReport:
    def __init__(self, total: int = 0):
        self.total = total
        self.outcomes: List[JobOutcome] = []

    def add(self, outcome: JobOutcome):
        self.outcomes.append(outcome)

    @property
    def failures(self) -> List[JobOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def skipped(self) -> int:
        return self.total - len(self.outcomes)

    @property
    def passed(self) -> bool:
        return not self.failures and not self.skipped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "total": self.total,
            "skipped": self.skipped,
            "jobs": [
                {
                    "name": o.job.name,
                    "status": o.status.value,
                    "output": str(o.job.output),
                    "category": o.error.category if o.error else None,
                    "error": str(o.error) if o.error else None,
                }
                for o in self.outcomes
            ],
        }

    def print_report(self, verbose: bool = False):
        succeeded = [o for o in self.outcomes if o.succeeded]
        failures = self.failures

        if failures:
            print(f"\n❌ FAILED ({len(failures)}):")
            for o in failures:
                print(f"  [{o.error.category}] {o.job.name}")
                if verbose:
                    print(f"      Details: {o.error}")

        if verbose and succeeded:
            print(f"\n✅ REPACKED ({len(succeeded)}):")
            for o in succeeded:
                print(f"  {o.job.name} -> {o.job.output}")

        if self.skipped:
            print(f"\n⏭  SKIPPED: {self.skipped}")

        print("\n" + "-" * 60)
        print(f"RESULT: {'✅ PASSED' if self.passed else '❌ FAILED'}")
        print("-" * 60)


def plan_jobs(config: RepackConfig) -> List[CompressionJob]:
    """Select input archives and derive one job per archive."""
    filenames = select_archives(config.archive_directory, config.includes, config.excludes)
    return [
        CompressionJob.for_archive(
            config.archive_directory,
            filename,
            config.output_directory,
            config.compression_level,
        )
        for filename in filenames
    ]


def run_batch(
    jobs: List[CompressionJob], keep_going: bool = False, workers: int = 1
) -> BatchReport:
    """
    Run jobs and collect their outcomes in job order.

    Without ``keep_going`` no new job starts after the first failure.
    With ``workers`` > 1 independent jobs run on a thread pool.
    """
    report = BatchReport(total=len(jobs))
    logger.info("Compressing %d files", len(jobs))

    if workers <= 1:
        for job in jobs:
            outcome = run_job(job)
            report.add(outcome)
            if not outcome.succeeded and not keep_going:
                break
        return report

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(run_job, job) for job in jobs]
        for future in futures:
            if future.cancelled():
                continue
            outcome = future.result()
            report.add(outcome)
            if not outcome.succeeded and not keep_going:
                for pending in futures:
                    pending.cancel()
    return report


# =============================================================================
# CLI Interface
# =============================================================================


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def main(argv: Optional[List[str]] = None, prog: Optional[str] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Repack jar/war archives as xz-compressed uncompressed ZIPs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s target/dist                      # Repack **/*.?ar in place
  %(prog)s target/dist -o target/xz -l 6    # Separate output, level 6
  %(prog)s --config xzr.yaml --keep-going   # Settings from a YAML file
        """,
    )
    parser.add_argument(
        "archive_directory", type=Path, nargs="?", help="Base directory to scan for archives"
    )
    parser.add_argument("--config", "-c", type=Path, help="YAML configuration file")
    parser.add_argument("--output-dir", "-o", type=Path, help="Directory for .xz files")
    parser.add_argument(
        "--include", action="append", help="Ant-style include pattern (repeatable, comma lists)"
    )
    parser.add_argument(
        "--exclude", action="append", help="Ant-style exclude pattern (repeatable, comma lists)"
    )
    parser.add_argument("--level", "-l", type=int, help="xz preset 0-9 (default 9)")
    parser.add_argument(
        "--keep-going", action="store_true", default=None, help="Continue after a failed job"
    )
    parser.add_argument("--jobs", "-j", type=int, help="Number of archives to repack concurrently")
    parser.add_argument("--dry-run", action="store_true", help="List planned jobs and exit")
    parser.add_argument("--json", action="store_true", help="Output report as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging and details")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")

    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    overrides = {
        "archiveDirectory": str(args.archive_directory) if args.archive_directory else None,
        "outputDirectory": str(args.output_dir) if args.output_dir else None,
        "includes": args.include,
        "excludes": args.exclude,
        "xzCompressionLevel": args.level,
        "keepGoing": args.keep_going,
        "workers": args.jobs,
    }

    try:
        config = load_config(args.config, overrides)
        jobs = plan_jobs(config)
    except (ConfigError, FileNotFoundError, NotADirectoryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.dry_run:
        for job in jobs:
            print(f"{job.source} -> {job.output}")
        return 0

    report = run_batch(jobs, keep_going=config.keep_going, workers=config.workers)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        report.print_report(verbose=args.verbose)

    return 0 if report.passed else 1


if __name__ == "__main__":
    sys.exit(main())
