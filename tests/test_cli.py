from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import xzr


def test_help_lists_commands(capsys) -> None:
    assert xzr.main(["--help"]) == 0
    out = capsys.readouterr().out
    assert "usage: xzr <command>" in out
    for command in ("repack", "zip", "unzip"):
        assert command in out


def test_unknown_command(capsys) -> None:
    assert xzr.main(["nope"]) == 2
    err = capsys.readouterr().err
    assert "unknown command 'nope'" in err
    assert "usage:" in err


def test_version(capsys) -> None:
    assert xzr.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == f"xzr {xzr.__version__}"


def test_subcommand_help_exits_cleanly(capsys) -> None:
    assert xzr.main(["repack", "--help"]) == 0
    out = capsys.readouterr().out
    assert "xzr repack" in out
    assert "--level" in out


def test_zip_and_unzip_commands(sample_tree: Path, tmp_path: Path, capsys) -> None:
    out_zip = tmp_path / "tree.zip"
    assert xzr.main(["zip", str(sample_tree), str(out_zip), "-v"]) == 0
    assert "entries written" in capsys.readouterr().out

    assert xzr.main(["unzip", str(out_zip), "--list"]) == 0
    assert "lib/b.txt" in capsys.readouterr().out

    dest = tmp_path / "dest"
    assert xzr.main(["unzip", str(out_zip), str(dest), "--stream"]) == 0
    assert (dest / "lib" / "b.txt").read_bytes() == b"bye"


def test_unzip_requires_dest(tmp_path: Path) -> None:
    assert xzr.main(["unzip", str(tmp_path / "x.zip")]) == 2


def test_repack_json_report(tmp_path: Path, make_jar, capsys) -> None:
    dist = tmp_path / "dist"
    make_jar({"a.txt": b"hi"}, path=dist / "app.jar")

    code = xzr.main(["repack", str(dist), "--level", "1", "--json", "--quiet"])

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["passed"] is True
    assert report["jobs"][0]["name"] == "app.jar"
    assert (dist / "app.jar.xz").exists()


def test_repack_dry_run(tmp_path: Path, make_jar, capsys) -> None:
    dist = tmp_path / "dist"
    make_jar({"a.txt": b"hi"}, path=dist / "app.jar")

    assert xzr.main(["repack", str(dist), "-o", str(tmp_path / "out"), "--dry-run"]) == 0
    assert "app.jar.xz" in capsys.readouterr().out
    assert not (tmp_path / "out").exists()


def test_repack_reports_failures(tmp_path: Path, capsys) -> None:
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "bad.jar").write_bytes(b"not a zip")

    assert xzr.main(["repack", str(dist), "--quiet"]) == 1
    assert "RESULT: ❌ FAILED" in capsys.readouterr().out


def test_repack_configuration_errors(tmp_path: Path, capsys) -> None:
    assert xzr.main(["repack", str(tmp_path / "missing")]) == 2
    assert "Archive directory not found" in capsys.readouterr().err

    assert xzr.main(["repack", str(tmp_path), "--level", "12"]) == 2
    assert "xzCompressionLevel" in capsys.readouterr().err

    assert xzr.main(["repack"]) == 2
    assert "archiveDirectory" in capsys.readouterr().err


def test_cli_script_runs(repo_root: Path) -> None:
    result = subprocess.run(
        [sys.executable, str(repo_root / "xzr.py"), "--help"],
        capture_output=True,
        text=True,
        check=False,
        cwd=repo_root,
    )
    assert result.returncode == 0
    assert "repack" in result.stdout
