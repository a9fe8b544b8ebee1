from __future__ import annotations

import zipfile
import zlib
from pathlib import Path

import pytest

import xzr_walk
import xzr_zip


def test_every_entry_is_stored_with_exact_metadata(sample_tree: Path, tmp_path: Path) -> None:
    out_zip = tmp_path / "out.zip"
    xzr_zip.write_stored_zip(sample_tree, out_zip)

    with zipfile.ZipFile(out_zip, "r") as zf:
        infos = zf.infolist()
        assert infos, "zip should contain entries"
        for info in infos:
            assert info.compress_type == zipfile.ZIP_STORED
            assert info.compress_size == info.file_size
            payload = zf.read(info)
            assert zlib.crc32(payload) == info.CRC
            if not info.is_dir():
                assert payload == (sample_tree / info.filename).read_bytes()


def test_empty_directories_get_explicit_entries(sample_tree: Path, tmp_path: Path) -> None:
    out_zip = tmp_path / "out.zip"
    entries = xzr_zip.write_stored_zip(sample_tree, out_zip)

    dir_entries = {e.name: e for e in entries if e.is_directory}
    assert set(dir_entries) == {"empty/", "only-dirs/leaf/"}
    for entry in dir_entries.values():
        assert entry.size == 0
        assert entry.compressed_size == 0
        assert entry.crc32 == 0


def test_file_entries_report_crc_and_sizes(sample_tree: Path, tmp_path: Path) -> None:
    entries = xzr_zip.write_stored_zip(sample_tree, tmp_path / "out.zip")
    by_name = {e.name: e for e in entries}

    a_txt = by_name["a.txt"]
    assert (a_txt.size, a_txt.compressed_size, a_txt.crc32) == (2, 2, zlib.crc32(b"hi"))
    assert a_txt.method == zipfile.ZIP_STORED
    assert not a_txt.is_directory
    assert by_name["lib/b.txt"].crc32 == zlib.crc32(b"bye")


def test_entries_follow_walk_order(sample_tree: Path, tmp_path: Path) -> None:
    out_zip = tmp_path / "out.zip"
    written = xzr_zip.write_stored_zip(sample_tree, out_zip)

    expected = []
    for item in xzr_walk.walk_tree(sample_tree):
        if not item.is_dir:
            expected.append(item.relative)
        elif xzr_walk.is_empty_dir(item.path):
            expected.append(item.relative + "/")

    assert [e.name for e in written] == expected
    assert xzr_zip.read_entries(out_zip) == written


def test_zip_creates_parent_directory(sample_tree: Path, tmp_path: Path) -> None:
    out_zip = tmp_path / "nested" / "bundle.zip"
    xzr_zip.write_stored_zip(sample_tree, out_zip)
    assert out_zip.exists()


def test_empty_root_produces_empty_container(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    out_zip = tmp_path / "out.zip"
    assert xzr_zip.write_stored_zip(root, out_zip) == []
    assert xzr_zip.read_entries(out_zip) == []


def test_missing_root_raises_without_output(tmp_path: Path) -> None:
    out_zip = tmp_path / "out.zip"
    with pytest.raises(FileNotFoundError, match="Archive root not found"):
        xzr_zip.write_stored_zip(tmp_path / "missing", out_zip)
    assert not out_zip.exists()


def test_directory_entry_constructor_adds_separator() -> None:
    entry = xzr_zip.ArchiveEntry.directory("lib")
    assert entry == xzr_zip.ArchiveEntry("lib/", True, 0, 0, 0, zipfile.ZIP_STORED)
    assert xzr_zip.ArchiveEntry.directory("lib/").name == "lib/"


def test_format_entries_lists_names(sample_tree: Path, tmp_path: Path) -> None:
    entries = xzr_zip.write_stored_zip(sample_tree, tmp_path / "out.zip")
    rendered = xzr_zip.format_entries(entries)
    assert "a.txt" in rendered
    assert f"{zlib.crc32(b'hi'):08x}" in rendered
    assert "dir " in rendered
