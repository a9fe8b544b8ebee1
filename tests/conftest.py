from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional, Set, Tuple

import pytest

TreeSnapshot = Tuple[Dict[str, bytes], Set[str]]


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _snapshot(root: Path) -> TreeSnapshot:
    files: Dict[str, bytes] = {}
    empty_dirs: Set[str] = set()
    for path in root.rglob("*"):
        rel = path.relative_to(root).as_posix()
        if path.is_dir():
            if not any(path.iterdir()):
                empty_dirs.add(rel)
        else:
            files[rel] = path.read_bytes()
    return files, empty_dirs


@pytest.fixture
def snapshot() -> Callable[[Path], TreeSnapshot]:
    """Relative file contents plus the set of empty directories under a root."""
    return _snapshot


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    root = tmp_path / "tree"
    (root / "lib" / "nested").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "only-dirs" / "leaf").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"hi")
    (root / "lib" / "b.txt").write_bytes(b"bye")
    (root / "lib" / "nested" / "big.bin").write_bytes(bytes(range(256)) * 64)
    (root / "META-INF").mkdir()
    (root / "META-INF" / "MANIFEST.MF").write_text("Manifest-Version: 1.0\n", encoding="utf-8")
    return root


@pytest.fixture
def make_jar(tmp_path: Path) -> Callable[..., Path]:
    """Build a DEFLATED zip from a {name: bytes} mapping; names ending in / are directories."""

    def _make(entries: Dict[str, bytes], path: Path = tmp_path / "app.jar") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in entries.items():
                zf.writestr(name, data)
        return path

    return _make


class ForwardOnlySink:
    """A writable that cannot tell or seek, forcing zipfile to use data descriptors."""

    def __init__(self) -> None:
        self.buffer = io.BytesIO()

    def write(self, data: bytes) -> int:
        return self.buffer.write(data)

    def flush(self) -> None:
        pass


@pytest.fixture
def stream_zip() -> Callable[..., bytes]:
    """Zip bytes as written to a non-seekable sink: every entry has a data descriptor."""

    def _make(entries: Dict[str, bytes], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
        sink = ForwardOnlySink()
        with zipfile.ZipFile(sink, "w", compression=compression) as zf:
            for name, data in entries.items():
                with zf.open(name, "w") as dest:
                    dest.write(data)
        return sink.buffer.getvalue()

    return _make


@pytest.fixture
def undecodable_jar(make_jar) -> Callable[..., Path]:
    """A jar whose entry name carries the UTF-8 flag but holds invalid UTF-8 bytes."""

    def _make(path: Optional[Path] = None) -> Path:
        kwargs = {"path": path} if path is not None else {}
        jar = make_jar({"café.txt": b"coffee"}, **kwargs)
        data = jar.read_bytes()
        good = "café".encode("utf-8")
        assert data.count(good) == 2  # local header and central directory
        jar.write_bytes(data.replace(good, b"caf\xff\xfe"))
        return jar

    return _make
